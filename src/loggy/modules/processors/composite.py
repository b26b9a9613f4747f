"""Composite processor — fan every call out to an ordered list of processors."""
from __future__ import annotations

from collections.abc import Iterable, Mapping

from pydantic import Field

from ...errors import ConfigError
from ..base import Fields, ProcessorOptions, ProcessParams, Processor


class CompositeProcessor:
    """Call each child processor in declared order with the same arguments.

    Children are looked up by name when the composite is built and held as
    direct references from then on, so a composite has to be rebuilt when one
    of its children is replaced.  The children belong to the chain's
    registry: the composite never sets them up or stops them.

    Example fragment::

        {"class": "composite", "processors": ["stdout", "stats"]}
    """

    description = "Send every call to an ordered list of other processors"

    is_composite = True

    class Options(ProcessorOptions):
        processors: list[str] = Field(
            min_length=1,
            description="Names of the child processors, in call order.",
        )

    def __init__(
        self,
        name: str,
        options: Options,
        processors: Mapping[str, Processor],
    ) -> None:
        self.name = name
        self.options = options
        children: list[Processor] = []
        for child_name in options.processors:
            if child_name == name:
                raise ConfigError(f"processors.{name}.processors: a composite cannot contain itself")
            child = processors.get(child_name)
            if child is None:
                raise ConfigError(
                    f"processors.{name}.processors: unknown processor {child_name!r}"
                )
            children.append(child)
        self._children = tuple(children)
        self._check_cycle(self._children)

    def _check_cycle(self, children: Iterable[Processor]) -> None:
        for child in children:
            if child is self or (
                getattr(child, "is_composite", False) and child.name == self.name
            ):
                raise ConfigError(f"processors.{self.name}.processors: cycle through {self.name!r}")
            self._check_cycle(getattr(child, "children", ()))

    @property
    def children(self) -> tuple[Processor, ...]:
        return self._children

    def set_up(self, debug: bool) -> None:
        pass

    def process(self, fields: Fields, params: ProcessParams) -> None:
        for child in self._children:
            child.process(fields, params)

    def stop(self) -> None:
        pass

    def validate_processor_params(
        self, output_keys: list[str], params: ProcessParams
    ) -> None:
        for child in self._children:
            child.validate_processor_params(output_keys, params)
