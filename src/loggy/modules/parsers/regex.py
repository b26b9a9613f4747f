"""Regex parser — every named group of the pattern becomes a field."""
from __future__ import annotations

import logging
import re
from typing import Literal

from pydantic import Field, field_validator

from ..base import Fields, ParserOptions

logger = logging.getLogger(__name__)


class RegexParser:
    r"""Match lines against a regular expression with named groups.

    Example fragment::

        {
            "class": "regex",
            "pattern": "(?P<method>GET|POST) (?P<path>\\S+) (?P<status>\\d{3})",
            "processor": "stats",
            "processParams": {"counters": {"http.#status#": 1}}
        }

    By default the pattern is anchored at the start of the line (``re.match``);
    set ``search`` to find it anywhere.  Optional groups that did not take
    part in the match are returned as empty strings so every output key is
    always present.
    """

    description = "Extract the named groups of a regular expression"

    class Options(ParserOptions):
        pattern: str = Field(description="Regular expression with at least one named group.")
        flags: list[Literal["IGNORECASE", "MULTILINE", "DOTALL"]] = Field(
            default_factory=list,
            description="re flags applied when compiling the pattern.",
        )
        search: bool = Field(
            default=False,
            description="Find the pattern anywhere in the line instead of only at the start.",
        )

        @field_validator("pattern")
        @classmethod
        def _check_pattern(cls, value: str) -> str:
            try:
                compiled = re.compile(value)
            except re.error as exc:
                raise ValueError(f"invalid regular expression: {exc}") from exc
            if not compiled.groupindex:
                raise ValueError("pattern must define at least one named group, e.g. (?P<name>...)")
            return value

    def __init__(self, name: str, options: Options) -> None:
        self.name = name
        self.options = options
        flags = 0
        for flag in options.flags:
            flags |= getattr(re, flag)
        self._regex = re.compile(options.pattern, flags)
        self._match = self._regex.search if options.search else self._regex.match
        self._output_keys = sorted(self._regex.groupindex, key=self._regex.groupindex.__getitem__)

    @property
    def run_always(self) -> bool:
        return self.options.run_always

    @property
    def output_keys(self) -> list[str]:
        return list(self._output_keys)

    def set_up(self, debug: bool) -> None:
        logger.debug("Parser %s ready, pattern %r", self.name, self.options.pattern)

    def parse(self, line: str) -> Fields | None:
        m = self._match(line)
        if m is None:
            return None
        return {k: ("" if v is None else v) for k, v in m.groupdict().items()}
