"""``#key#`` placeholders — how processor params refer to parsed fields.

A param value such as ``"requests.#status#"`` is rendered against the parser
output ``{"status": "404"}`` as ``"requests.404"``.  Processors validate at
config time that every placeholder they use is one of the parser's output
keys, so a rendered template never has a hole in it.
"""
from __future__ import annotations

import re
from typing import Any

from ..errors import ConfigError

_PLACEHOLDER_RE = re.compile(r"#([A-Za-z0-9_.\-]+)#")


def find_placeholders(value: Any) -> list[str]:
    """Return placeholder names used anywhere in value, in order of first use.

    Strings, lists/tuples and dict keys and values are searched recursively.
    """
    found: list[str] = []

    def _walk(obj: Any) -> None:
        if isinstance(obj, str):
            for name in _PLACEHOLDER_RE.findall(obj):
                if name not in found:
                    found.append(name)
        elif isinstance(obj, dict):
            for k, v in obj.items():
                _walk(k)
                _walk(v)
        elif isinstance(obj, (list, tuple)):
            for item in obj:
                _walk(item)

    _walk(value)
    return found


def substitute(template: str, fields: dict[str, str]) -> str:
    """Replace every ``#key#`` in template with ``fields[key]``.

    Placeholders without a matching field are left untouched.
    """
    return _PLACEHOLDER_RE.sub(lambda m: str(fields.get(m.group(1), m.group(0))), template)


def check_placeholders(owner: str, value: Any, output_keys: list[str]) -> None:
    """Raise ConfigError if value uses a placeholder the parser does not produce."""
    missing = [name for name in find_placeholders(value) if name not in output_keys]
    if missing:
        raise ConfigError(
            f"{owner}: placeholder(s) {', '.join(f'#{m}#' for m in missing)} "
            f"not produced by the parser (output keys: {', '.join(output_keys) or 'none'})"
        )
