"""JSON parser — one JSON object per line (NDJSON), flattened to string fields."""
from __future__ import annotations

import json
from typing import Any

from pydantic import Field

from ..base import Fields, ParserOptions


def _flatten(obj: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in obj.items():
        full = f"{prefix}{key}"
        if isinstance(value, dict):
            out.update(_flatten(value, f"{full}."))
        else:
            out[full] = value
    return out


def _to_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    # true/false/null and nested lists keep their JSON spelling
    return json.dumps(value, default=str)


class JsonParser:
    """Parse newline-delimited JSON log lines.

    Only JSON objects match.  Nested objects are flattened into dotted keys
    (``{"http": {"status": 200}}`` -> ``{"http.status": "200"}``) unless
    ``flatten`` is off, in which case nested values are kept as JSON text.

    ``output_keys`` lists the keys this parser promises to processors; a line
    that lacks any of them is treated as a non-match, so a processor bound to
    this parser can rely on them.
    """

    description = "Parse one JSON object per line"

    class Options(ParserOptions):
        flatten: bool = Field(default=True, description="Flatten nested objects into dotted keys.")
        output_keys: list[str] = Field(
            default_factory=list,
            description="Keys every matching line must contain; lines missing one are skipped.",
        )

    def __init__(self, name: str, options: Options) -> None:
        self.name = name
        self.options = options

    @property
    def run_always(self) -> bool:
        return self.options.run_always

    @property
    def output_keys(self) -> list[str]:
        return list(self.options.output_keys)

    def set_up(self, debug: bool) -> None:
        pass

    def parse(self, line: str) -> Fields | None:
        line = line.strip()
        if not line:
            return None
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            return None
        if not isinstance(entry, dict):
            return None
        if self.options.flatten:
            entry = _flatten(entry)
        fields = {str(k): _to_str(v) for k, v in entry.items()}
        if any(k not in fields for k in self.options.output_keys):
            return None
        return fields
