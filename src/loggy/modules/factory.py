"""Module factory — turn a config fragment into an unstarted parser or processor.

Class resolution order for the ``class`` key of a fragment:
  1. Short names known to this factory: the built-ins below plus anything
     added with ModuleFactory.register().
  2. Entry-points under the "loggy.modules" group (loaded by discover()).
  3. A fully qualified import path, ``package.module.ClassName`` or
     ``package.module:ClassName``.

Third-party packages publish modules like this::

    [project.entry-points."loggy.modules"]
    nginx = "my_package.parsers:NginxParser"

The factory validates options and builds the instance but never calls
set_up(): starting modules is the chain's job, after the whole document has
been validated.
"""
from __future__ import annotations

import importlib
import importlib.metadata
import logging
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from ..errors import ConfigError, describe_validation_error
from .base import ModuleOptions, Parser, Processor
from .parsers.json_parser import JsonParser
from .parsers.passthru import PassThruParser
from .parsers.regex import RegexParser
from .processors.composite import CompositeProcessor
from .processors.console import ConsoleProcessor
from .processors.redis_counter import RedisCounterProcessor
from .processors.statsd import StatsDProcessor

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "loggy.modules"

BUILTIN_MODULES: dict[str, type] = {
    "regex": RegexParser,
    "passthru": PassThruParser,
    "json": JsonParser,
    "console": ConsoleProcessor,
    "statsd": StatsDProcessor,
    "redis": RedisCounterProcessor,
    "composite": CompositeProcessor,
}

_PARSER_METHODS = ("parse", "set_up")
_PROCESSOR_METHODS = ("process", "stop", "validate_processor_params", "set_up")


def _has_options(cls: type) -> bool:
    options = getattr(cls, "Options", None)
    return isinstance(options, type) and issubclass(options, ModuleOptions)


def _describe(obj: Any) -> str:
    return getattr(obj, "__qualname__", None) or repr(obj)


def is_parser_class(cls: Any) -> bool:
    return (
        isinstance(cls, type)
        and _has_options(cls)
        and all(callable(getattr(cls, m, None)) for m in _PARSER_METHODS)
    )


def is_processor_class(cls: Any) -> bool:
    return (
        isinstance(cls, type)
        and _has_options(cls)
        and all(callable(getattr(cls, m, None)) for m in _PROCESSOR_METHODS)
    )


class ModuleFactory:
    """Builds parsers and processors from config fragments.

    Usage::

        factory = ModuleFactory()
        factory.discover()  # loads entry-point modules

        parser = factory.create_parser("access", {"class": "regex", "pattern": r"(?P<ip>\\S+)"})
        if parser is None:
            ...  # disabled in config
    """

    def __init__(self) -> None:
        self._classes: dict[str, type] = dict(BUILTIN_MODULES)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, short_name: str, cls: type) -> None:
        if not (is_parser_class(cls) or is_processor_class(cls)):
            raise TypeError(f"{cls!r} does not implement the Parser or Processor contract")
        self._classes[short_name] = cls
        logger.debug("Registered module class %s as %r", cls.__qualname__, short_name)

    def discover(self) -> int:
        """Load all module classes from the 'loggy.modules' entry-point group.

        Returns the number of classes successfully registered.
        """
        loaded = 0
        try:
            eps = importlib.metadata.entry_points(group=ENTRY_POINT_GROUP)
        except Exception as exc:
            logger.warning("Entry-point discovery failed: %s", exc)
            return 0

        for ep in eps:
            try:
                self.register(ep.name, ep.load())
                loaded += 1
            except Exception as exc:
                logger.warning("Failed to load module %r: %s", ep.name, exc)

        return loaded

    def available(self) -> list[tuple[str, type]]:
        """Return (short name, class) pairs, sorted by name."""
        return sorted(self._classes.items())

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def create_parser(self, name: str, fragment: Mapping[str, Any]) -> Parser | None:
        """Build the parser described by fragment, or return None if it is disabled."""
        path = f"parsers.{name}"
        cls = self._resolve(path, fragment)
        if not is_parser_class(cls):
            raise ConfigError(f"{path}.class: {_describe(cls)} is not a parser")
        options = self._options(path, cls, fragment)
        if options is None:
            return None
        return cls(name, options)

    def create_processor(
        self,
        name: str,
        fragment: Mapping[str, Any],
        processors: Mapping[str, Processor] | None = None,
    ) -> Processor | None:
        """Build the processor described by fragment, or return None if it is disabled.

        ``processors`` is the set of processors built so far; composites
        resolve their children against it.
        """
        path = f"processors.{name}"
        cls = self._resolve(path, fragment)
        if not is_processor_class(cls):
            raise ConfigError(f"{path}.class: {_describe(cls)} is not a processor")
        options = self._options(path, cls, fragment)
        if options is None:
            return None
        if getattr(cls, "is_composite", False):
            return cls(name, options, processors or {})
        return cls(name, options)

    def is_composite(self, name: str, fragment: Mapping[str, Any]) -> bool:
        """True when fragment resolves to a processor that wraps other processors."""
        return bool(getattr(self._resolve(f"processors.{name}", fragment), "is_composite", False))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve(self, path: str, fragment: Mapping[str, Any]) -> type:
        if not isinstance(fragment, Mapping):
            raise ConfigError(f"{path}: module config must be a mapping, got {type(fragment).__name__}")
        ref = fragment.get("class")
        if not isinstance(ref, str) or not ref:
            raise ConfigError(f"{path}.class: missing or not a string")

        cls = self._classes.get(ref)
        if cls is not None:
            return cls

        if ":" in ref:
            module_name, _, attr = ref.partition(":")
        else:
            module_name, _, attr = ref.rpartition(".")
        if not module_name or not attr:
            raise ConfigError(
                f"{path}.class: unknown module class {ref!r} "
                f"(known: {', '.join(sorted(self._classes))})"
            )
        try:
            return getattr(importlib.import_module(module_name), attr)
        except Exception as exc:
            raise ConfigError(f"{path}.class: cannot import {ref!r}: {exc}") from exc

    def _options(
        self, path: str, cls: type, fragment: Mapping[str, Any]
    ) -> ModuleOptions | None:
        raw = {k: v for k, v in fragment.items() if k != "class"}
        if raw.get("enabled", True) is False:
            logger.debug("%s is disabled, skipping", path)
            return None
        try:
            return cls.Options.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(describe_validation_error(path, exc)) from exc
