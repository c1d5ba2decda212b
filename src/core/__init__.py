from __future__ import annotations

from core import config, protocols, types

__all__ = [
    "protocols",
    "types",
    "config",
]
