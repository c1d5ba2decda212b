from __future__ import annotations

"""Unified protocol exports for public consumption.

Protocols stay defined next to the code that consumes them; this module only
gives them a single import surface.
"""

from delivery import TextProducer, Transport
from model import CompletionCell, LLMModel
from quality.gate import KindLookup, KindRules

__all__ = [
    "LLMModel",
    "CompletionCell",
    "KindRules",
    "KindLookup",
    "Transport",
    "TextProducer",
]
