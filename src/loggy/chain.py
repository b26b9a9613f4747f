"""Module chain — routes each line to the first matching parser's processor.

The chain owns one ModuleRegistry and three operations:

    chain = ModuleChain()
    chain.update_config(config_doc, debug=False)   # (re)configure
    for line in source:
        chain.handle(line)                         # dispatch
    chain.stop()                                   # release resources

Dispatch rules:
  * Parsers are tried in config order.  The first parser that matches and is
    not run-always "consumes" the line: later ordinary parsers are skipped.
  * Run-always parsers are tried on every line, before or after the first
    match, and never consume it.
  * A match calls the bound processor with ``(fields, processParams)``.

Reconfiguration is atomic.  The next registry is built and validated in
full; only then are new modules set up, retired processors stopped and the
registry swapped.  A failure at any point leaves the running configuration
untouched.  Processors whose config fragment did not change are carried
over as-is, so a reload does not reopen their sockets.

The chain is not thread-safe: handle() and update_config() must be called
from one thread (see loggy.runner).
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .errors import ConfigError
from .modules.base import Parser, Processor
from .modules.factory import ModuleFactory
from .modules.registry import Binding, ModuleRegistry

logger = logging.getLogger(__name__)

SECTIONS = ("processors", "parsers")

# Keys of a parser fragment that describe its binding, not the parser itself
BINDING_KEYS = ("processor", "processParams")


def split_sections(config: Mapping[str, Any] | None) -> tuple[Mapping[str, Any], Mapping[str, Any]]:
    """Return the (processors, parsers) sections of a config document."""
    if config is None:
        config = {}
    if not isinstance(config, Mapping):
        raise ConfigError(f"config: must be a mapping, got {type(config).__name__}")
    unknown = sorted(str(k) for k in config if k not in SECTIONS)
    if unknown:
        raise ConfigError(
            f"config: unknown top-level key(s) {', '.join(unknown)} "
            f"(expected {' and '.join(SECTIONS)})"
        )
    sections: list[Mapping[str, Any]] = []
    for section in SECTIONS:
        value = config.get(section)
        if value is None:
            value = {}
        if not isinstance(value, Mapping):
            raise ConfigError(f"{section}: must be a mapping of name to module config")
        sections.append(value)
    return sections[0], sections[1]


class ModuleChain:
    """Top-level dispatcher: registry owner, line router, lifecycle driver."""

    def __init__(self, factory: ModuleFactory | None = None) -> None:
        self._factory = factory or ModuleFactory()
        self._registry = ModuleRegistry()
        self._dispatch: tuple[tuple[Parser, Binding], ...] = ()

    @property
    def registry(self) -> ModuleRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def update_config(self, config: Mapping[str, Any] | None, debug: bool = False) -> None:
        """Replace the running configuration with config.

        Raises ConfigError, leaving the running configuration in place, if the
        document is invalid or a new module fails to set up.
        """
        successor, fresh = self._build(config)
        self._commit(successor, fresh, debug)

    def validate_config(self, config: Mapping[str, Any] | None) -> ModuleRegistry:
        """Build (but do not start or install) the registry config describes.

        Raises ConfigError exactly as update_config() would.
        """
        successor, _ = self._build(config)
        return successor

    def _build(self, config: Mapping[str, Any] | None) -> tuple[ModuleRegistry, list[str]]:
        """Build the next registry; return it with the names of newly built processors."""
        processors_cfg, parsers_cfg = split_sections(config)
        successor = ModuleRegistry()
        fresh: list[str] = []

        # Pass 1: plain processors.  Composites wait until their children exist.
        deferred: dict[str, Mapping[str, Any]] = {}
        for name, fragment in processors_cfg.items():
            if self._factory.is_composite(name, fragment):
                deferred[name] = fragment
                continue
            previous = self._registry.get_processor_entry(name)
            if previous is not None and previous.fragment == fragment:
                successor.add_processor(name, previous.processor, fragment)
                continue
            processor = self._factory.create_processor(name, fragment)
            if processor is None:
                continue
            successor.add_processor(name, processor, fragment)
            fresh.append(name)

        # Pass 2: composites, children first.
        self._build_composites(deferred, successor, fresh)

        # Parsers are always rebuilt.
        for name, fragment in parsers_cfg.items():
            self._build_parser(name, fragment, successor)

        return successor, fresh

    def _build_composites(
        self,
        deferred: Mapping[str, Mapping[str, Any]],
        successor: ModuleRegistry,
        fresh: list[str],
    ) -> None:
        done: set[str] = set()
        visiting: list[str] = []

        def build(name: str) -> None:
            if name in done:
                return
            if name in visiting:
                cycle = " -> ".join(visiting[visiting.index(name):] + [name])
                raise ConfigError(f"processors.{name}.processors: cycle {cycle}")
            visiting.append(name)
            fragment = deferred[name]
            children = fragment.get("processors")
            if isinstance(children, list):
                for child in children:
                    if isinstance(child, str) and child in deferred:
                        build(child)
            visiting.pop()
            done.add(name)

            previous = self._registry.get_processor_entry(name)
            if (
                previous is not None
                and previous.fragment == fragment
                and isinstance(children, list)
                and _same_children(previous.processor, [successor.get_processor(c) for c in children])
            ):
                successor.add_processor(name, previous.processor, fragment)
                return
            processor = self._factory.create_processor(
                name, fragment, successor.processors_by_name()
            )
            if processor is None:
                return
            successor.add_processor(name, processor, fragment)
            fresh.append(name)

        for name in deferred:
            build(name)

    def _build_parser(
        self, name: str, fragment: Mapping[str, Any], successor: ModuleRegistry
    ) -> None:
        path = f"parsers.{name}"
        if not isinstance(fragment, Mapping):
            raise ConfigError(f"{path}: module config must be a mapping, got {type(fragment).__name__}")
        parser = self._factory.create_parser(
            name, {k: v for k, v in fragment.items() if k not in BINDING_KEYS}
        )
        if parser is None:
            return

        target = fragment.get("processor")
        if not isinstance(target, str) or not target:
            raise ConfigError(f"{path}.processor: required, must be a processor name")
        params = fragment.get("processParams")
        if params is None:
            params = {}
        if not isinstance(params, Mapping):
            raise ConfigError(f"{path}.processParams: must be a mapping")
        processor = successor.get_processor(target)
        if processor is None:
            raise ConfigError(f"{path}.processor: unknown processor {target!r}")

        try:
            processor.validate_processor_params(list(parser.output_keys), dict(params))
        except Exception as exc:
            raise ConfigError(f"{path}: {exc}") from exc

        successor.add_parser(name, parser, Binding(target, dict(params)))

    def _commit(self, successor: ModuleRegistry, fresh: list[str], debug: bool) -> None:
        started: list[tuple[str, Processor]] = []
        current = "?"
        built = successor.processors_by_name()
        try:
            for name in fresh:
                current = f"processors.{name}"
                processor = built[name]
                processor.set_up(debug)
                started.append((name, processor))
            for entry in successor.iter_parsers():
                current = f"parsers.{entry.name}"
                entry.parser.set_up(debug)
        except Exception as exc:
            for name, processor in reversed(started):
                _stop_quietly(name, processor)
            raise ConfigError(f"{current}: set-up failed: {exc}") from exc

        retired = self._registry.retired(successor)
        for entry in retired:
            _stop_quietly(entry.name, entry.processor)

        self._registry = successor
        self._dispatch = tuple((e.parser, e.binding) for e in successor.iter_parsers())
        logger.info(
            "Configuration applied: %d parser(s), %d processor(s); %d started, %d stopped",
            len(self._dispatch),
            len(successor.processor_names()),
            len(started),
            len(retired),
        )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, line: str) -> None:
        """Route line to its processors.

        Exceptions raised by processors propagate to the caller.
        """
        matched = False
        for parser, binding in self._dispatch:
            run_always = parser.run_always
            if matched and not run_always:
                continue
            fields = parser.parse(line)
            if fields is None:
                continue
            binding.processor.process(fields, binding.process_params)  # type: ignore[union-attr]
            if not run_always:
                matched = True

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    def stop(self) -> None:
        """Stop every processor in registration order and empty the chain."""
        for entry in self._registry.iter_processors():
            _stop_quietly(entry.name, entry.processor)
        self._registry = ModuleRegistry()
        self._dispatch = ()
        logger.debug("Module chain stopped")


def _same_children(composite: Processor, children: list[Processor | None]) -> bool:
    current = getattr(composite, "children", None)
    if current is None or len(current) != len(children):
        return False
    return all(a is b for a, b in zip(current, children))


def _stop_quietly(name: str, processor: Processor) -> None:
    try:
        processor.stop()
    except Exception:
        logger.exception("Failed to stop processor %s", name)
