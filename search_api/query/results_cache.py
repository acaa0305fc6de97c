"""
Process-wide cache of executed result sets.

Result sets are stored under their query's "search id" option, so later
consumers in the same request (e.g. facet blocks) can reuse them.
"""

from typing import Dict, Optional

from ..core import get_logger

logger = get_logger(__name__)


class ResultsCache:
    """Maps search ids to the most recently stored ResultSet."""

    def __init__(self):
        self._results: Dict[str, object] = {}

    @staticmethod
    def _search_id(query_or_search_id) -> str:
        if isinstance(query_or_search_id, str):
            return query_or_search_id
        return query_or_search_id.get_option("search id")

    def add_results(self, results) -> None:
        """
        Store a result set, replacing any earlier one for the same search id.

        Args:
            results: ResultSet whose query carries a "search id" option.
        """
        search_id = self._search_id(results.get_query())
        self._results[search_id] = results
        logger.debug(f"Cached results for search '{search_id}'")

    def get_results(self, query_or_search_id):
        """
        Get the last stored result set.

        Args:
            query_or_search_id: A Query or a search id string.

        Returns:
            The cached ResultSet, or None.
        """
        return self._results.get(self._search_id(query_or_search_id))

    def remove_results(self, query_or_search_id) -> None:
        self._results.pop(self._search_id(query_or_search_id), None)

    def clear(self) -> None:
        self._results.clear()

    def __len__(self) -> int:
        return len(self._results)


_results_cache: Optional[ResultsCache] = None


def get_results_cache() -> ResultsCache:
    """Get the singleton ResultsCache instance."""
    global _results_cache
    if _results_cache is None:
        _results_cache = ResultsCache()
    return _results_cache
