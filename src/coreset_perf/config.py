"""Harness configuration — JSON topology file plus environment/CLI overrides.

Example::

    {
      "nonce": "ssc-1a2b3c4d",
      "namespace": "perf-runs",
      "metrics_port": 11626,
      "timeout_seconds": 10,
      "output_dir": "./perf-out",
      "core_sets": [
        {"name": "core", "current_count": 2, "max_size": 3,
         "catchup_mode": "recent:1001",
         "history_get_commands": {"a1": "curl -sf http://a1/{0} -o {1}"}}
      ]
    }

Environment variables (overridden in turn by CLI flags):
    CSP_NONCE:      Run nonce
    CSP_NAMESPACE:  Artifact namespace
    CSP_OUTPUT_DIR: Artifact root directory
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from coreset_perf.network.cfg import NetworkCfg
from coreset_perf.network.coreset import (
    CoreSet,
    CoreSetOptions,
    make_core_set,
    parse_catchup_mode,
)
from coreset_perf.network.transport import DEFAULT_METRICS_PORT, DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

ENV_OVERRIDES = {
    "CSP_NONCE": "nonce",
    "CSP_NAMESPACE": "namespace",
    "CSP_OUTPUT_DIR": "output_dir",
}


@dataclass
class HarnessConfig:
    network: NetworkCfg
    metrics_port: int = DEFAULT_METRICS_PORT
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    output_dir: str = "./perf-out"


def _int_field(name: str, key: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"core set {name}: {key} must be an integer, got {value!r}")
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"core set {name}: {key} must be an integer, got {value!r}") from None


def _str_map(name: str, key: str, value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        raise ValueError(f"core set {name}: {key} must be an object")
    return {str(k): str(v) for k, v in value.items()}


def _str_list(name: str, key: str, value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"core set {name}: {key} must be a list")
    return tuple(str(v) for v in value)


def parse_core_set(raw: Any) -> CoreSet:
    """Build a core set from its config entry.

    Raises:
        ValueError: the entry is not an object or a field has the wrong type.
    """
    if not isinstance(raw, Mapping):
        raise ValueError(f"core set entry must be an object, got {raw!r}")
    if "name" not in raw:
        raise ValueError("core set entry lacks 'name'")
    name = raw["name"]
    if not isinstance(name, str):
        raise ValueError(f"core set name must be a string, got {name!r}")

    node_count = _int_field(name, "node_count", raw.get("node_count", raw.get("max_size", 3)))
    max_size = _int_field(name, "max_size", raw.get("max_size", node_count))
    current = _int_field(name, "current_count", raw.get("current_count", node_count))
    catchup = raw.get("catchup_mode", "none")
    if not isinstance(catchup, str):
        raise ValueError(f"core set {name}: catchup_mode must be a string")
    quorum = raw.get("quorum_set")
    options = CoreSetOptions(
        node_count=node_count,
        catchup_mode=parse_catchup_mode(catchup),
        quorum_set=_str_list(name, "quorum_set", quorum) if quorum is not None else None,
        quorum_set_keys=_str_map(name, "quorum_set_keys", raw.get("quorum_set_keys", {})),
        history_get_commands=_str_map(name, "history_get_commands", raw.get("history_get_commands", {})),
        peers_dns=_str_list(name, "peers_dns", raw.get("peers_dns", [])),
        force_scp=bool(raw.get("force_scp", True)),
    )
    return make_core_set(name, current, max_size, options)


def load_config(
    config_path: str | Path,
    overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> HarnessConfig:
    """Load harness configuration.

    Precedence: CLI overrides, then environment, then the file.

    Raises:
        FileNotFoundError: config file missing.
        ValueError: config content invalid.
    """
    path = Path(config_path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"config file not found: {path}")

    with open(path) as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"invalid JSON in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ValueError(f"config root must be an object: {path}")

    env = os.environ if environ is None else environ
    for var, key in ENV_OVERRIDES.items():
        if env.get(var):
            raw[key] = env[var]
    for key, value in (overrides or {}).items():
        if value is not None:
            raw[key] = value

    entries = raw.get("core_sets", [])
    if not isinstance(entries, list):
        raise ValueError(f"'core_sets' must be a list: {path}")
    core_sets = [parse_core_set(cs) for cs in entries]
    network = NetworkCfg(
        core_sets,
        nonce=raw.get("nonce", ""),
        namespace=raw.get("namespace", ""),
    )
    logger.debug("Loaded %d core sets from %s", len(core_sets), path)
    try:
        metrics_port = int(raw.get("metrics_port", DEFAULT_METRICS_PORT))
        timeout_seconds = float(raw.get("timeout_seconds", DEFAULT_TIMEOUT_SECONDS))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"invalid metrics_port/timeout_seconds in {path}: {exc}") from exc
    return HarnessConfig(
        network=network,
        metrics_port=metrics_port,
        timeout_seconds=timeout_seconds,
        output_dir=str(raw.get("output_dir", "./perf-out")),
    )
