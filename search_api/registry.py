"""
Index registry used to resolve indexes by id.

Rehydrated queries only carry their index id. The active registry stands
for the running application; without one, ids stay unresolved.
"""

from typing import Dict, Iterator, Optional

from .core import get_logger

logger = get_logger(__name__)


class IndexRegistry:
    """In-memory mapping of index ids to Index objects."""

    def __init__(self, indexes=()):
        self._indexes: Dict[str, object] = {}
        for index in indexes:
            self.register(index)

    def register(self, index) -> None:
        """Add or replace an index under its id."""
        self._indexes[index.id()] = index
        logger.debug(f"Registered index '{index.id()}'")

    def remove(self, index_id: str) -> None:
        self._indexes.pop(index_id, None)

    def load_index_by_id(self, index_id: str):
        """Return the index with the given id, or None."""
        return self._indexes.get(index_id)

    def __contains__(self, index_id: str) -> bool:
        return index_id in self._indexes

    def __iter__(self) -> Iterator:
        return iter(self._indexes.values())


_active_registry: Optional[IndexRegistry] = None


def get_active_registry() -> Optional[IndexRegistry]:
    """Return the registry of the running application, if any."""
    return _active_registry


def set_active_registry(registry: Optional[IndexRegistry]) -> None:
    """Install (or with None, remove) the application's registry."""
    global _active_registry
    _active_registry = registry
