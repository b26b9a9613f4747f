"""Module registry — the named tables of live parsers and processors.

Both tables keep insertion order: parser order is dispatch order, processor
order is shutdown order.
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping
import copy
from dataclasses import dataclass, field
from typing import Any

from .base import Parser, ProcessParams, Processor


@dataclass
class Binding:
    """Where a parser's matches go: a processor name plus the params it receives.

    ``processor`` is the resolved reference, filled in when the binding is
    registered so dispatch never has to look the name up.
    """

    processor_name: str
    process_params: ProcessParams = field(default_factory=dict)
    processor: Processor | None = field(default=None, repr=False, compare=False)


@dataclass
class ParserEntry:
    name: str
    parser: Parser
    binding: Binding


@dataclass
class ProcessorEntry:
    name: str
    processor: Processor
    # The config fragment the processor was built from; an equal fragment in
    # the next document means the live instance can be kept.
    fragment: Mapping[str, Any] = field(default_factory=dict)


class ModuleRegistry:
    """Insertion-ordered ``name -> module`` tables for one chain.

    Usage::

        registry = ModuleRegistry()
        registry.add_processor("stdout", console)
        registry.add_parser("all", passthru, Binding("stdout"))

        for entry in registry.iter_parsers():
            ...
    """

    def __init__(self) -> None:
        self._parsers: dict[str, ParserEntry] = {}
        self._processors: dict[str, ProcessorEntry] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_processor(
        self,
        name: str,
        processor: Processor,
        fragment: Mapping[str, Any] | None = None,
    ) -> None:
        if name in self._processors:
            raise KeyError(f"Processor {name!r} is already registered")
        self._processors[name] = ProcessorEntry(name, processor, copy.deepcopy(dict(fragment or {})))

    def add_parser(self, name: str, parser: Parser, binding: Binding) -> None:
        """Register parser and resolve its binding against the processor table."""
        if name in self._parsers:
            raise KeyError(f"Parser {name!r} is already registered")
        target = self._processors.get(binding.processor_name)
        if target is None:
            raise KeyError(f"Parser {name!r} is bound to unknown processor {binding.processor_name!r}")
        binding.processor = target.processor
        self._parsers[name] = ParserEntry(name, parser, binding)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_parser(self, name: str) -> ParserEntry | None:
        return self._parsers.get(name)

    def get_processor(self, name: str) -> Processor | None:
        entry = self._processors.get(name)
        return entry.processor if entry is not None else None

    def get_processor_entry(self, name: str) -> ProcessorEntry | None:
        return self._processors.get(name)

    def has_processor(self, name: str) -> bool:
        return name in self._processors

    def iter_parsers(self) -> Iterator[ParserEntry]:
        return iter(list(self._parsers.values()))

    def iter_processors(self) -> Iterator[ProcessorEntry]:
        return iter(list(self._processors.values()))

    def processor_names(self) -> list[str]:
        return list(self._processors)

    def parser_names(self) -> list[str]:
        return list(self._parsers)

    def processors_by_name(self) -> dict[str, Processor]:
        return {name: entry.processor for name, entry in self._processors.items()}

    # ------------------------------------------------------------------
    # Reconfiguration
    # ------------------------------------------------------------------

    def retired(self, successor: ModuleRegistry) -> list[ProcessorEntry]:
        """Processors of this registry that successor does not carry over.

        A name missing from successor is retired, and so is a name whose
        successor entry holds a different instance (the module was rebuilt).
        This is the stop list for a reconfiguration.
        """
        stop_list: list[ProcessorEntry] = []
        for name, entry in self._processors.items():
            kept = successor.get_processor(name)
            if kept is not entry.processor:
                stop_list.append(entry)
        return stop_list

    def clear(self) -> None:
        self._parsers.clear()
        self._processors.clear()

    def __len__(self) -> int:
        return len(self._parsers) + len(self._processors)

    def __repr__(self) -> str:
        return f"ModuleRegistry({len(self._parsers)} parsers, {len(self._processors)} processors)"
