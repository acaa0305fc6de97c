"""
Custom exception hierarchy for the search API.

Provides specific exception types for different failure modes:
configuration errors, invalid queries, database issues, and search problems.
"""


class SearchApiError(Exception):
    """Base exception for all search API errors."""

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(SearchApiError):
    """Raised when configuration is invalid or missing."""
    pass


class InvalidQuery(SearchApiError):
    """Raised when a query cannot be built, e.g. on a disabled index."""

    def __init__(self, message: str, index_id: str = None, details: dict = None):
        """
        Initialize invalid query error.

        Args:
            message: Error description.
            index_id: ID of the index the query targeted.
            details: Additional context.
        """
        super().__init__(message, details)
        self.index_id = index_id


class DatabaseError(SearchApiError):
    """Raised when SQLite operations fail."""
    pass


class SearchError(SearchApiError):
    """Raised when search query execution fails."""

    def __init__(self, message: str, query: str = None, details: dict = None):
        """
        Initialize search error.

        Args:
            message: Error description.
            query: The problematic search expression.
            details: Additional context.
        """
        super().__init__(message, details)
        self.query = query


if __name__ == "__main__":
    try:
        raise InvalidQuery("Can't search on index 'news' which is disabled.", index_id="news")
    except SearchApiError as e:
        print(f"Caught: {e.__class__.__name__}: {e.message}")
        print(f"Index: {e.index_id}")

    try:
        raise SearchError("fts5: syntax error", query='"unbalanced')
    except SearchError as e:
        print(f"Search failed for: {e.query}")
