"""Pass-through parser — matches every line as-is."""
from __future__ import annotations

from ..base import Fields, ParserOptions


class PassThruParser:
    """Return ``{"line": <the line>}`` for every line."""

    description = "Forward every line unchanged under the 'line' key"

    Options = ParserOptions

    def __init__(self, name: str, options: ParserOptions) -> None:
        self.name = name
        self.options = options

    @property
    def run_always(self) -> bool:
        return self.options.run_always

    @property
    def output_keys(self) -> list[str]:
        return ["line"]

    def set_up(self, debug: bool) -> None:
        pass

    def parse(self, line: str) -> Fields | None:
        return {"line": line}
