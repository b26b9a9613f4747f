"""Exception types raised by loggy."""
from __future__ import annotations

from pydantic import ValidationError


class ConfigError(ValueError):
    """A configuration document (or part of one) cannot be applied.

    The message always names the offending section, module and option path,
    e.g. ``parsers.access.pattern: Field required``.
    """


def describe_validation_error(path: str, exc: ValidationError) -> str:
    """Flatten a pydantic ValidationError into ``path.option: message`` parts."""
    parts: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{path}.{loc}: {err['msg']}" if loc else f"{path}: {err['msg']}")
    return "; ".join(parts)
