"""
Processor removing ignorable characters from fulltext values and keys.

Characters are removed when they match the configured "ignorable"
regular expression or belong to one of the configured Unicode general
categories (e.g. "Pc" for connector punctuation).
"""

import re
import unicodedata
from typing import Any, Dict

from ..core import get_logger
from ..query.keyword_parser import KeywordGroup
from .base import (
    Processor,
    STAGE_PREPROCESS_INDEX,
    STAGE_PREPROCESS_QUERY,
)

logger = get_logger(__name__)

# Unicode general categories accepted in "character_sets".
CHARACTER_CATEGORIES = (
    "Cc", "Cf", "Co",
    "Mc", "Me", "Mn",
    "Pc", "Pd", "Pe", "Pf", "Pi", "Po", "Ps",
    "Sc", "Sk", "Sm", "So",
)


class IgnoreCharacter(Processor):
    """
    Strips ignorable characters at index and query time.

    Configuration:
        ignorable: Regular expression of characters to remove.
        character_sets: Unicode general categories to remove.
        fields: Fields to process at index time. Empty means the index's
                fulltext fields.
    """

    plugin_id = "ignore_character"

    def default_configuration(self) -> Dict[str, Any]:
        return {
            "ignorable": "['¿¡!?,.:;]",
            "character_sets": [],
            "fields": [],
        }

    def set_configuration(self, configuration: Dict[str, Any]) -> None:
        super().set_configuration(configuration)
        unknown = set(self.configuration["character_sets"]) - set(CHARACTER_CATEGORIES)
        if unknown:
            logger.warning(f"Ignoring unknown character categories: {', '.join(sorted(unknown))}")

    def supports_stage(self, stage: str) -> bool:
        return stage in (STAGE_PREPROCESS_INDEX, STAGE_PREPROCESS_QUERY)

    def process_field_value(self, value: str) -> str:
        """
        Remove ignorable characters from a single string.

        Args:
            value: Text to clean.

        Returns:
            The text without ignorable characters.
        """
        ignorable = self.configuration.get("ignorable")
        if ignorable:
            value = re.sub(ignorable, "", value)

        categories = set(self.configuration.get("character_sets") or ())
        if categories:
            value = "".join(
                char for char in value
                if unicodedata.category(char) not in categories
            )

        return value

    def preprocess_index_items(self, index, items: Dict[str, Dict[str, Any]]) -> None:
        fields = self.configuration.get("fields") or index.get_fulltext_fields()
        for item in items.values():
            for field in fields:
                value = item.get(field)
                if isinstance(value, str):
                    item[field] = self.process_field_value(value)
                elif isinstance(value, list):
                    item[field] = [
                        self.process_field_value(v) if isinstance(v, str) else v
                        for v in value
                    ]

    def preprocess_search_query(self, query) -> None:
        keys = query.get_keys()
        if isinstance(keys, KeywordGroup):
            self._process_keys(keys)
        elif isinstance(keys, str):
            query.replace_keys(self.process_field_value(keys))

    def _process_keys(self, keys: KeywordGroup) -> None:
        """Clean every term in place, dropping terms that end up empty."""
        processed = []
        for term in keys:
            if isinstance(term, KeywordGroup):
                self._process_keys(term)
                if term:
                    processed.append(term)
            else:
                term = self.process_field_value(term)
                if term.strip():
                    processed.append(term)
        keys[:] = processed


if __name__ == "__main__":
    processor = IgnoreCharacter({"character_sets": ["Pc", "Pd"]})
    for sample in ["word_s", "w–ord⸗s", "¿Qué?", "hello, world."]:
        print(f"  {sample!r} -> {processor.process_field_value(sample)!r}")
