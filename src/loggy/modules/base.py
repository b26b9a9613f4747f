"""Module contracts — the shapes every parser and processor implements.

Parsers and processors are duck-typed Protocols: a module class only has to
provide the attributes below, plus an ``Options`` pydantic model describing
its configuration schema.  The schema is what the factory validates config
fragments against, and what ``loggy modules`` prints.

A minimal processor::

    class PrintProcessor:
        Options = ProcessorOptions
        description = "Print the parsed fields"

        def __init__(self, name: str, options: ProcessorOptions) -> None:
            self.name = name
            self.options = options

        def set_up(self, debug: bool) -> None: ...
        def process(self, fields: Fields, params: ProcessParams) -> None:
            print(fields)
        def stop(self) -> None: ...
        def validate_processor_params(self, output_keys, params) -> None: ...
"""
from __future__ import annotations

from typing import Any, ClassVar, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Parser output: extracted field name -> value
Fields = dict[str, str]

# Per-binding parameters handed to a processor alongside the parsed fields
ProcessParams = dict[str, Any]


class ModuleOptions(BaseModel):
    """Options shared by every module.

    Unknown keys are rejected and values are not coerced, so a typo or a
    ``"8125"`` where an int is expected surfaces as a ConfigError.  Option
    names may be written in snake_case or camelCase (``run_always`` /
    ``runAlways``).
    """

    model_config = ConfigDict(
        extra="forbid",
        strict=True,
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    enabled: bool = Field(
        default=True,
        description="Set to false to skip the module without deleting it.",
    )


class ParserOptions(ModuleOptions):
    run_always: bool = Field(
        default=False,
        description="Run on every line, even after an earlier parser matched.",
    )


class ProcessorOptions(ModuleOptions):
    pass


@runtime_checkable
class Module(Protocol):
    """Attributes common to parsers and processors."""

    Options: ClassVar[type[ModuleOptions]]
    description: ClassVar[str]
    name: str

    def set_up(self, debug: bool) -> None:
        """Acquire resources. Called exactly once, after validation succeeds."""
        ...


@runtime_checkable
class Parser(Module, Protocol):
    """Extracts a field map from a line, or returns None when it does not match."""

    @property
    def run_always(self) -> bool: ...

    @property
    def output_keys(self) -> list[str]:
        """Keys guaranteed to be present in every successful parse."""
        ...

    def parse(self, line: str) -> Fields | None: ...


@runtime_checkable
class Processor(Module, Protocol):
    """Consumes parsed fields and performs a side effect."""

    def process(self, fields: Fields, params: ProcessParams) -> None: ...

    def stop(self) -> None:
        """Release everything acquired in set_up."""
        ...

    def validate_processor_params(
        self, output_keys: list[str], params: ProcessParams
    ) -> None:
        """Raise ConfigError if a parser producing output_keys cannot feed params."""
        ...
