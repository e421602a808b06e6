"""Artifact destinations — where exported reports are persisted."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from coreset_perf.errors import WriteError

logger = logging.getLogger(__name__)


class Destination(Protocol):
    """Sink for named text artifacts grouped by namespace."""

    def write_string(self, namespace: str, artifact_name: str, content: str) -> None:
        ...


class LocalDestination:
    """Writes artifacts to ``<root>/<namespace>/<artifact_name>``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, namespace: str, artifact_name: str) -> Path:
        return self.root / namespace / artifact_name

    def write_string(self, namespace: str, artifact_name: str, content: str) -> None:
        path = self.path_for(namespace, artifact_name)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise WriteError(namespace, artifact_name, str(exc)) from exc
        logger.debug("Wrote %d bytes to %s", len(content), path)
