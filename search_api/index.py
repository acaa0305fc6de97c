"""
Search index definition.

An Index ties together a backend server, its fulltext fields and an
ordered list of processors, and is the entry point for building queries.
"""

from typing import Any, Dict, Iterable, List

from .core import get_logger
from .processor import (
    Processor,
    STAGE_PREPROCESS_INDEX,
    STAGE_PREPROCESS_QUERY,
    STAGE_POSTPROCESS_QUERY,
)
from .query import Query

logger = get_logger(__name__)


class Index:
    """
    A search index hosted on a backend server.

    Attributes:
        options: Free-form index settings.
    """

    def __init__(
        self,
        index_id: str,
        label: str = None,
        server=None,
        status: bool = True,
        fulltext_fields: Iterable[str] = (),
        processors: Iterable[Processor] = (),
        options: Dict[str, Any] = None
    ):
        """
        Initialize an index.

        Args:
            index_id: Machine name of the index.
            label: Human-readable name. Defaults to the id.
            server: SearchBackend executing searches for this index.
            status: Whether the index is enabled.
            fulltext_fields: Fields eligible for keyword matching.
            processors: Processors attached to the index.
            options: Free-form index settings.
        """
        self._id = index_id
        self._label = label or index_id
        self._server = server
        self._status = status
        self._fulltext_fields = list(fulltext_fields)
        self._processors = list(processors)
        self.options = dict(options or {})

    def id(self) -> str:
        return self._id

    def label(self) -> str:
        return self._label

    def status(self) -> bool:
        return self._status

    def enable(self) -> None:
        self._status = True

    def disable(self) -> None:
        self._status = False

    def get_server_instance(self):
        return self._server

    def get_fulltext_fields(self) -> List[str]:
        return self._fulltext_fields

    def add_processor(self, processor: Processor) -> None:
        self._processors.append(processor)

    def get_processors(self, stage: str = None) -> List[Processor]:
        """
        Return the processors in weight order.

        Args:
            stage: If given, only processors supporting this stage.

        Returns:
            Processors sorted by weight, ties in attachment order.
        """
        processors = sorted(self._processors, key=lambda processor: processor.weight)
        if stage is None:
            return processors
        return [processor for processor in processors if processor.supports_stage(stage)]

    def preprocess_search_query(self, query: Query) -> None:
        for processor in self.get_processors(STAGE_PREPROCESS_QUERY):
            processor.preprocess_search_query(query)

    def postprocess_search_results(self, results) -> None:
        for processor in self.get_processors(STAGE_POSTPROCESS_QUERY):
            processor.postprocess_search_results(results)

    def query(self, options: Dict[str, Any] = None, results_cache=None, dispatcher=None) -> Query:
        """Create a query on this index."""
        return Query.create(self, results_cache, options, dispatcher)

    def index_items(self, items: Dict[str, Dict[str, Any]]) -> List[str]:
        """
        Process items and hand them to the server.

        Args:
            items: Field values keyed by item id. Altered in place by the
                   index-stage processors.

        Returns:
            Ids of the items the server indexed.
        """
        if not items:
            return []

        for processor in self.get_processors(STAGE_PREPROCESS_INDEX):
            processor.preprocess_index_items(self, items)

        indexed = self._server.index_items(self, items)
        logger.info(f"Indexed {len(indexed)} of {len(items)} items on index '{self._id}'")
        return indexed

    def delete_items(self, item_ids: Iterable[str]) -> None:
        self._server.delete_items(self, list(item_ids))

    def clear(self) -> None:
        """Delete all items of this index from the server."""
        self._server.delete_all_items(self)

    def __repr__(self) -> str:
        return f"Index({self._id!r})"
