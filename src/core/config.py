from __future__ import annotations

"""Unified config exports for public consumption."""

from backends import ProviderPoolConfig
from chunking import PackOptions
from delivery import DeliveryConfig
from generation_types import RefinementConfig

__all__ = [
    "ProviderPoolConfig",
    "RefinementConfig",
    "PackOptions",
    "DeliveryConfig",
]
