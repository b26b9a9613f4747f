"""Redis counter processor — count matching lines in Redis.

Key schema::

    {prefix}{rendered key}            INCRBY   (no ``field`` param)
    {prefix}{rendered key} {field}    HINCRBY  (with ``field`` param)

Example binding::

    "processParams": {"key": "status:#status#", "increment": 1}

Set ``ttl`` on the processor to let counters expire, e.g. one key per day.
"""
from __future__ import annotations

import logging
from typing import Any

import redis
from pydantic import Field

from ...errors import ConfigError
from ..base import Fields, ProcessorOptions, ProcessParams
from ..placeholders import check_placeholders, substitute

logger = logging.getLogger(__name__)

_PARAM_KEYS = ("key", "increment", "field")


class RedisCounterProcessor:
    """Increment Redis counters for every line routed here.

    Args (options):
        url:     Redis connection URL (redis://host:port/db).
        prefix:  Prepended to every key (default: ``loggy:``).
        ttl:     Seconds before a touched key expires; 0 keeps keys forever.
    """

    description = "Increment Redis counters (INCRBY / HINCRBY)"

    class Options(ProcessorOptions):
        url: str = Field(default="redis://localhost:6379/0", description="Redis connection URL.")
        prefix: str = Field(default="loggy:", description="Prepended to every key.")
        ttl: int = Field(default=0, ge=0, description="Expire touched keys after this many seconds (0 = never).")

    def __init__(self, name: str, options: Options) -> None:
        self.name = name
        self.options = options
        self._client: Any = None

    def set_up(self, debug: bool) -> None:
        client = redis.Redis.from_url(self.options.url, decode_responses=True)
        client.ping()
        self._client = client
        logger.info("Redis processor %s connected: %s", self.name, self.options.url)

    def validate_processor_params(
        self, output_keys: list[str], params: ProcessParams
    ) -> None:
        path = f"processors.{self.name}.processParams"
        unknown = sorted(set(params) - set(_PARAM_KEYS))
        if unknown:
            raise ConfigError(f"{path}: unknown key(s) {', '.join(unknown)}")
        if not isinstance(params.get("key"), str) or not params["key"]:
            raise ConfigError(f"{path}.key: required, must be a non-empty string")
        increment = params.get("increment", 1)
        if isinstance(increment, bool) or not isinstance(increment, int):
            raise ConfigError(f"{path}.increment: must be an integer")
        if "field" in params and not isinstance(params["field"], str):
            raise ConfigError(f"{path}.field: must be a string")
        check_placeholders(path, params, output_keys)

    def process(self, fields: Fields, params: ProcessParams) -> None:
        if self._client is None:
            raise RuntimeError(f"Redis processor {self.name!r} used before set_up()")
        key = self.options.prefix + substitute(params["key"], fields)
        increment = params.get("increment", 1)
        field = params.get("field")
        if field is not None:
            self._client.hincrby(key, substitute(field, fields), increment)
        else:
            self._client.incrby(key, increment)
        if self.options.ttl:
            self._client.expire(key, self.options.ttl)

    def stop(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
