"""
Processor module for pre- and post-processing stages.

Processors alter indexed items, queries and result sets. They are
attached to an index and run in weight order.
"""

from .base import (
    Processor,
    STAGES,
    STAGE_PREPROCESS_INDEX,
    STAGE_PREPROCESS_QUERY,
    STAGE_POSTPROCESS_QUERY
)
from .ignore_character import IgnoreCharacter, CHARACTER_CATEGORIES

__all__ = [
    "Processor",
    "STAGES",
    "STAGE_PREPROCESS_INDEX",
    "STAGE_PREPROCESS_QUERY",
    "STAGE_POSTPROCESS_QUERY",
    "IgnoreCharacter",
    "CHARACTER_CATEGORIES"
]
