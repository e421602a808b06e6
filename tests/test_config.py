"""Tests for config loading and the CLI front end."""

from __future__ import annotations

import json

import pytest

from coreset_perf.cli import main, parse_args
from coreset_perf.config import load_config, parse_core_set
from coreset_perf.network.coreset import CatchupRecent


def write_config(tmp_path, **extra):
    raw = {
        "nonce": "ssc-cfg",
        "namespace": "perf",
        "metrics_port": 11700,
        "timeout_seconds": 3,
        "core_sets": [
            {"name": "core", "current_count": 2, "max_size": 3, "catchup_mode": "recent:1001"},
            {"name": "watcher", "node_count": 1},
        ],
    }
    raw.update(extra)
    path = tmp_path / "network.json"
    path.write_text(json.dumps(raw))
    return path


class TestLoadConfig:
    def test_basic(self, tmp_path):
        cfg = load_config(write_config(tmp_path), environ={})
        net = cfg.network
        assert net.nonce == "ssc-cfg"
        assert net.namespace == "perf"
        assert cfg.metrics_port == 11700
        assert cfg.timeout_seconds == 3.0
        assert [p.short_name for p in net.each_peer()] == ["core-0", "core-1", "watcher-0"]
        assert net.core_set("core").catchup_mode == CatchupRecent(1001)

    def test_env_override(self, tmp_path):
        cfg = load_config(write_config(tmp_path), environ={"CSP_NONCE": "ssc-env", "CSP_OUTPUT_DIR": "/tmp/x"})
        assert cfg.network.nonce == "ssc-env"
        assert cfg.output_dir == "/tmp/x"

    def test_cli_override_wins(self, tmp_path):
        cfg = load_config(
            write_config(tmp_path),
            overrides={"nonce": "ssc-cli", "output_dir": None},
            environ={"CSP_NONCE": "ssc-env"},
        )
        assert cfg.network.nonce == "ssc-cli"
        assert cfg.output_dir == "./perf-out"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.json", environ={})

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ValueError):
            load_config(path, environ={})

    def test_invalid_core_set(self, tmp_path):
        path = write_config(tmp_path, core_sets=[{"name": "core", "current_count": 5, "max_size": 2}])
        with pytest.raises(ValueError):
            load_config(path, environ={})

    def test_core_set_entry_not_object(self, tmp_path):
        path = write_config(tmp_path, core_sets=["core"])
        with pytest.raises(ValueError):
            load_config(path, environ={})

    def test_core_sets_not_list(self, tmp_path):
        path = write_config(tmp_path, core_sets={"name": "core"})
        with pytest.raises(ValueError):
            load_config(path, environ={})

    def test_quorum_keys_wrong_type(self):
        with pytest.raises(ValueError):
            parse_core_set({"name": "core", "quorum_set_keys": ["a", "b"]})

    def test_count_wrong_type(self):
        with pytest.raises(ValueError):
            parse_core_set({"name": "core", "node_count": [3]})

    def test_port_wrong_type(self, tmp_path):
        path = write_config(tmp_path, metrics_port=[1])
        with pytest.raises(ValueError):
            load_config(path, environ={})

    def test_core_set_requires_name(self):
        with pytest.raises(ValueError):
            parse_core_set({"node_count": 1})

    def test_core_set_options(self):
        cs = parse_core_set({
            "name": "pub",
            "node_count": 2,
            "quorum_set": ["core_live_001"],
            "history_get_commands": {"core_live_001": "curl -sf http://h/{0} -o {1}"},
            "peers_dns": ["core-live4.example.org"],
            "force_scp": False,
        })
        assert cs.current_count == cs.max_size == 2
        assert cs.options.quorum_set == ("core_live_001",)
        assert "core_live_001" in cs.options.history_get_commands
        assert cs.options.force_scp is False


class TestCli:
    def test_parse_args(self):
        args = parse_args(["--config", "c.json", "--label", "pay", "--tx-rate", "50"])
        assert args.label == "pay"
        assert args.tx_rate == 50
        assert args.duration == 60.0

    def test_missing_config_exits_nonzero(self, tmp_path, capsys):
        assert main(["--config", str(tmp_path / "missing.json")]) == 1
        assert "config file not found" in capsys.readouterr().err

    def test_bad_core_set_exits_nonzero(self, tmp_path, capsys):
        path = write_config(tmp_path, core_sets=[{"name": "core", "quorum_set_keys": ["a"]}])
        assert main(["--config", str(path)]) == 1
        assert "quorum_set_keys" in capsys.readouterr().err
