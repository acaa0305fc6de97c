"""Base search backend interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List


class SearchBackend(ABC):
    """
    Abstract interface for search servers.

    Only search() is required. Backends that store data themselves also
    implement the indexing methods.
    """

    def add_index(self, index) -> None:
        """Prepare storage for a new index."""

    def remove_index(self, index) -> None:
        """Drop the storage of an index."""

    def index_items(self, index, items: Dict[str, Dict[str, Any]]) -> List[str]:
        """Index items given as field values keyed by item id.

        Returns:
            Ids of the items successfully indexed.
        """
        raise NotImplementedError(f"{self.__class__.__name__} doesn't store items")

    def delete_items(self, index, item_ids: List[str]) -> None:
        raise NotImplementedError(f"{self.__class__.__name__} doesn't store items")

    def delete_all_items(self, index) -> None:
        raise NotImplementedError(f"{self.__class__.__name__} doesn't store items")

    def supports_feature(self, feature: str) -> bool:
        return False

    @abstractmethod
    def search(self, query) -> None:
        """Execute a query, filling its result set in place.

        Args:
            query: The Query to execute. Its get_results() set is populated.

        Raises:
            SearchError: If search execution fails
        """
        pass
