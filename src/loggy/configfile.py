"""JSON config files — loading and change polling for hot reload.

The watcher compares the file's (mtime, size) signature on every poll; it
never holds the file open, so editors that replace the file atomically are
handled the same as in-place writes.

Usage::

    watcher = ConfigWatcher("/etc/loggy/config.json")
    chain.update_config(watcher.load())
    ...
    doc = watcher.poll()
    if doc is not None:
        chain.update_config(doc)
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from .errors import ConfigError

logger = logging.getLogger(__name__)


def load_config(path: str | Path) -> dict[str, Any]:
    """Read a JSON config document.

    Raises ConfigError if the file is missing, is not valid JSON, or does not
    hold a JSON object.
    """
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {config_path}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(
            f"Invalid JSON in {config_path} (line {exc.lineno}, column {exc.colno}): {exc.msg}"
        ) from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: top level must be a JSON object")
    return data


class ConfigWatcher:
    """Detect changes to a config file by polling its stat signature."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._signature: tuple[int, int] | None = None

    def _stat(self) -> tuple[int, int] | None:
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            return None
        return st.st_mtime_ns, st.st_size

    def load(self) -> dict[str, Any]:
        """Load the file unconditionally and remember its signature."""
        signature = self._stat()
        data = load_config(self.path)
        self._signature = signature
        return data

    def poll(self) -> dict[str, Any] | None:
        """Return the new document if the file changed since the last load, else None.

        A changed file that cannot be loaded is logged and skipped; it is
        retried when it changes again.
        """
        signature = self._stat()
        if signature is None:
            if self._signature is not None:
                logger.warning("Config file %s disappeared; keeping current config", self.path)
                self._signature = None
            return None
        if signature == self._signature:
            return None
        self._signature = signature
        try:
            data = load_config(self.path)
        except ConfigError as exc:
            logger.error("Ignoring changed config file: %s", exc)
            return None
        logger.info("Config file %s changed", self.path)
        return data
