"""
Result set returned by query execution.

A ResultSet belongs to exactly one Query. The backend fills it during
execution and processors may alter it during post-processing.
"""

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional


@dataclass
class ResultItem:
    """
    A single search result.

    Attributes:
        id: Identifier of the matched item.
        score: Relevance score, higher is better.
        extra_data: Backend-specific data (snippets, field values).
    """
    id: str
    score: float = 1.0
    extra_data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"id": self.id, "score": self.score, "extra_data": dict(self.extra_data)}


class ResultSet:
    """
    Mutable container for the results of one query.

    Holds the result items in order, the estimated total count, warnings,
    search keys ignored by the backend and arbitrary extra data.
    """

    def __init__(self, query):
        """
        Initialize an empty result set.

        Args:
            query: The Query owning this result set.
        """
        self.query = query
        self.result_items: "OrderedDict[str, ResultItem]" = OrderedDict()
        self.result_count = 0
        self.warnings: List[str] = []
        self.ignored_search_keys: List[str] = []
        self.extra_data: Dict[str, Any] = {}

    def get_query(self):
        return self.query

    def get_result_count(self) -> int:
        return self.result_count

    def set_result_count(self, result_count: int) -> "ResultSet":
        self.result_count = int(result_count)
        return self

    def get_result_items(self) -> "OrderedDict[str, ResultItem]":
        """Return the items keyed by id. The mapping is live."""
        return self.result_items

    def add_result_item(self, item: ResultItem) -> "ResultSet":
        self.result_items[item.id] = item
        return self

    def set_result_items(self, items: Iterable[ResultItem]) -> "ResultSet":
        self.result_items = OrderedDict((item.id, item) for item in items)
        return self

    def get_warnings(self) -> List[str]:
        return self.warnings

    def add_warning(self, warning: str) -> "ResultSet":
        self.warnings.append(warning)
        return self

    def set_warnings(self, warnings: Iterable[str]) -> "ResultSet":
        self.warnings = list(warnings)
        return self

    def get_ignored_search_keys(self) -> List[str]:
        return self.ignored_search_keys

    def add_ignored_search_key(self, ignored_search_key: str) -> "ResultSet":
        if ignored_search_key not in self.ignored_search_keys:
            self.ignored_search_keys.append(ignored_search_key)
        return self

    def set_ignored_search_keys(self, ignored_search_keys: Iterable[str]) -> "ResultSet":
        self.ignored_search_keys = list(ignored_search_keys)
        return self

    def has_extra_data(self, key: str) -> bool:
        return key in self.extra_data

    def get_extra_data(self, key: str, default: Any = None) -> Any:
        return self.extra_data.get(key, default)

    def get_all_extra_data(self) -> Dict[str, Any]:
        return self.extra_data

    def set_extra_data(self, key: str, data: Any = None) -> "ResultSet":
        """Store extra data under a key. Passing None removes the key."""
        if data is None:
            self.extra_data.pop(key, None)
        else:
            self.extra_data[key] = data
        return self

    def to_dict(self) -> dict:
        """Convert the contents (not the owning query) to a dict."""
        return {
            "result_count": self.result_count,
            "items": [item.to_dict() for item in self.result_items.values()],
            "warnings": list(self.warnings),
            "ignored_search_keys": list(self.ignored_search_keys),
            "extra_data": dict(self.extra_data),
        }

    def load_dict(self, data: Optional[dict]) -> "ResultSet":
        """Restore contents produced by to_dict() into this result set."""
        if not data:
            return self
        self.result_count = data.get("result_count", 0)
        self.set_result_items(
            ResultItem(item["id"], item.get("score", 1.0), dict(item.get("extra_data", {})))
            for item in data.get("items", [])
        )
        self.warnings = list(data.get("warnings", []))
        self.ignored_search_keys = list(data.get("ignored_search_keys", []))
        self.extra_data = dict(data.get("extra_data", {}))
        return self

    def __iter__(self):
        return iter(self.result_items.values())

    def __len__(self) -> int:
        return len(self.result_items)

    def __repr__(self) -> str:
        return f"ResultSet({len(self.result_items)} items, count={self.result_count})"
