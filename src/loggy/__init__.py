"""loggy: route log lines through configurable parsers and processors."""
from __future__ import annotations

__version__ = "1.0.0"

from .chain import ModuleChain
from .errors import ConfigError

__all__ = ["ConfigError", "ModuleChain", "__version__"]
