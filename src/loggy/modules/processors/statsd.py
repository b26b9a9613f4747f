"""StatsD processor — turn parsed lines into counters, gauges and timers.

Metrics are declared per parser binding, with ``#key#`` placeholders filled
from the parsed fields::

    "processParams": {
        "counters": {"http.status.#status#": 1},
        "timers":   {"http.latency": "#duration_ms#"},
        "gauges":   {"queue.depth": "#depth#"}
    }

Each call sends one UDP datagram using the plain StatsD text protocol
(``name:value|c``, ``|g``, ``|ms``), one metric per line.
"""
from __future__ import annotations

import logging
import re
import socket
from typing import Any

from pydantic import Field

from ...errors import ConfigError
from ..base import Fields, ProcessorOptions, ProcessParams
from ..placeholders import check_placeholders, substitute

logger = logging.getLogger(__name__)

# processParams section -> StatsD type suffix
METRIC_TYPES = {"counters": "c", "gauges": "g", "timers": "ms"}

# Characters with a meaning in the StatsD line protocol
_UNSAFE_KEY_RE = re.compile(r"[:|@\s]+")


def format_value(raw: Any) -> str:
    """Render a metric value, raising ValueError if it is not numeric."""
    value = float(raw)
    return str(int(value)) if value.is_integer() else repr(value)


class StatsDProcessor:
    """Send StatsD metrics over UDP.

    Delivery is fire-and-forget: a failed send is logged as a warning and the
    line is not retried.
    """

    description = "Send counters, gauges and timers to a StatsD daemon"

    class Options(ProcessorOptions):
        host: str = Field(default="localhost", description="StatsD host name or address.")
        port: int = Field(default=8125, ge=1, le=65535, description="StatsD UDP port.")
        prefix: str = Field(default="", description="Prepended to every metric name, e.g. 'web.'.")

    def __init__(self, name: str, options: Options) -> None:
        self.name = name
        self.options = options
        self._sock: socket.socket | None = None

    def set_up(self, debug: bool) -> None:
        family, sock_type, proto, _, addr = socket.getaddrinfo(
            self.options.host, self.options.port, type=socket.SOCK_DGRAM
        )[0]
        sock = socket.socket(family, sock_type, proto)
        sock.connect(addr)
        self._sock = sock
        logger.info(
            "StatsD processor %s sending to %s:%d", self.name, self.options.host, self.options.port
        )

    def validate_processor_params(
        self, output_keys: list[str], params: ProcessParams
    ) -> None:
        path = f"processors.{self.name}.processParams"
        unknown = sorted(set(params) - set(METRIC_TYPES))
        if unknown:
            raise ConfigError(
                f"{path}: unknown key(s) {', '.join(unknown)} "
                f"(expected {', '.join(METRIC_TYPES)})"
            )
        if not any(params.get(section) for section in METRIC_TYPES):
            raise ConfigError(f"{path}: define at least one of {', '.join(METRIC_TYPES)}")
        for section in METRIC_TYPES:
            metrics = params.get(section)
            if metrics is None:
                continue
            if not isinstance(metrics, dict):
                raise ConfigError(f"{path}.{section}: must be a mapping of metric name to value")
            for key, value in metrics.items():
                if isinstance(value, bool) or not isinstance(value, (int, float, str)):
                    raise ConfigError(f"{path}.{section}.{key}: value must be a number or a string")
        check_placeholders(path, params, output_keys)

    def build_lines(self, fields: Fields, params: ProcessParams) -> list[str]:
        """Render the metrics declared in params against fields."""
        lines: list[str] = []
        for section, suffix in METRIC_TYPES.items():
            for key_template, value in (params.get(section) or {}).items():
                key = _UNSAFE_KEY_RE.sub("_", self.options.prefix + substitute(key_template, fields))
                if isinstance(value, str):
                    value = substitute(value, fields)
                lines.append(f"{key}:{format_value(value)}|{suffix}")
        return lines

    def process(self, fields: Fields, params: ProcessParams) -> None:
        if self._sock is None:
            raise RuntimeError(f"StatsD processor {self.name!r} used before set_up()")
        payload = "\n".join(self.build_lines(fields, params)).encode()
        try:
            self._sock.send(payload)
        except OSError as exc:
            logger.warning("StatsD send from %s failed: %s", self.name, exc)

    def stop(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
