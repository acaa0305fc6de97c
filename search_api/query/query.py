"""
Search query orchestration.

A Query accumulates search keys, conditions, sorts and options for one
index, then runs the execution lifecycle: pre-processing, backend search,
post-processing and caching of the results.
"""

import pprint
from typing import Any, Dict, Iterable, List, Optional

from ..core import InvalidQuery, SearchError, get_config_or_defaults, get_logger
from ..events import EventKind, get_event_dispatcher
from ..registry import get_active_registry
from .condition_group import ConditionGroup
from .keyword_parser import PARSE_MODES, KeywordGroup, ParsedKeys, parse_keys
from .result_set import ResultSet
from .results_cache import get_results_cache

logger = get_logger(__name__)

_SCALAR_TYPES = (str, int, float, bool, type(None))


class Query:
    """
    A search query on a single index.

    The getters for keys, fulltext fields, sorts, options and tags return
    the live objects: editing them in place edits the query. String keys
    are immutable, use replace_keys() to swap them.

    A query executes at most once. The executed and pre-execute flags
    stay set even when a later stage raises, so calling execute() again
    after such a failure returns the partial result set.
    """

    SORT_ASC = "ASC"
    SORT_DESC = "DESC"

    def __init__(self, index, results_cache=None, options: Dict[str, Any] = None, dispatcher=None):
        """
        Initialize a query.

        Args:
            index: Index to search. Must be enabled.
            results_cache: Cache receiving the results. Defaults to the
                           process-wide cache.
            options: Options merged over the defaults ("conjunction",
                     "search id").
            dispatcher: EventDispatcher for alter events. Defaults to the
                        process-wide dispatcher.

        Raises:
            InvalidQuery: If the index is disabled.
        """
        if not index.status():
            raise InvalidQuery(
                f"Can't search on index '{index.label()}' which is disabled.",
                index_id=index.id()
            )

        defaults = get_config_or_defaults().query

        self._index = index
        self._index_id = index.id()
        self._results = ResultSet(self)
        self._results_cache = results_cache if results_cache is not None else get_results_cache()
        self._dispatcher = dispatcher if dispatcher is not None else get_event_dispatcher()

        self._options = dict(options or {})
        self._options.setdefault("conjunction", defaults.default_conjunction)
        self._options.setdefault("search id", defaults.default_search_id)

        self._parse_mode = defaults.default_parse_mode
        self._languages: Optional[List[str]] = None
        self._keys: ParsedKeys = None
        self._original_keys = None
        self._fields: Optional[List[str]] = None
        self._condition_group = self.create_condition_group("AND")
        self._sorts: Dict[str, str] = {}
        self._aborted = None
        self._tags: Dict[str, None] = {}
        self._pre_execute_ran = False
        self._executed = False

    @classmethod
    def create(cls, index, results_cache=None, options: Dict[str, Any] = None, dispatcher=None) -> "Query":
        return cls(index, results_cache, options, dispatcher)

    # Keys

    @staticmethod
    def parse_modes() -> Dict[str, Dict[str, str]]:
        """Return the available parse modes, keyed by id."""
        return {mode: dict(info) for mode, info in PARSE_MODES.items()}

    def get_parse_mode(self) -> str:
        return self._parse_mode

    def set_parse_mode(self, parse_mode: str) -> "Query":
        """Set the parse mode used by subsequent keys() calls."""
        self._parse_mode = parse_mode
        return self

    def keys(self, keys=None) -> "Query":
        """
        Set the search keys.

        The raw value is kept as the original keys; the parsed form
        depends on the parse mode and the "conjunction" option.

        Args:
            keys: Raw user input, an already structured KeywordGroup, or
                  None for a filter-only search.

        Returns:
            This query, for chaining.
        """
        self._original_keys = keys
        if keys is None:
            self._keys = None
        else:
            self._keys = parse_keys(keys, self._parse_mode, self._options["conjunction"])
        return self

    def get_keys(self) -> ParsedKeys:
        return self._keys

    def replace_keys(self, keys: ParsedKeys) -> "Query":
        """Replace the parsed keys without re-parsing or touching the original keys."""
        self._keys = keys
        return self

    def get_original_keys(self):
        return self._original_keys

    def set_fulltext_fields(self, fields: Iterable[str] = None) -> "Query":
        """Restrict keyword matching to the given fields. None means all fulltext fields."""
        self._fields = list(fields) if fields is not None else None
        return self

    def get_fulltext_fields(self) -> Optional[List[str]]:
        return self._fields

    def get_languages(self) -> Optional[List[str]]:
        return self._languages

    def set_languages(self, languages: Iterable[str] = None) -> "Query":
        """
        Restrict the search to some languages.

        Args:
            languages: Language codes, or None for all languages. An empty
                       list makes the query abort on execution.
        """
        self._languages = list(languages) if languages is not None else None
        return self

    # Conditions, sorts and range

    def create_condition_group(self, conjunction: str = "AND", tags: Iterable[str] = None) -> ConditionGroup:
        return ConditionGroup(conjunction, tags)

    def add_condition_group(self, condition_group: ConditionGroup) -> "Query":
        self._condition_group.add_condition_group(condition_group)
        return self

    def add_condition(self, field: str, value: Any, operator: str = "=") -> "Query":
        self._condition_group.add_condition(field, value, operator)
        return self

    def get_condition_group(self) -> ConditionGroup:
        return self._condition_group

    def sort(self, field: str, order: str = SORT_ASC) -> "Query":
        """
        Add a sort, or change the direction of an existing one.

        An existing field keeps its position in the sort precedence.

        Args:
            field: Field to sort on.
            order: "DESC" (case-insensitive, surrounding whitespace
                   ignored) sorts descending, anything else ascending.
        """
        order = self.SORT_DESC if str(order).strip().upper() == self.SORT_DESC else self.SORT_ASC
        self._sorts[field] = order
        return self

    def get_sorts(self) -> Dict[str, str]:
        return self._sorts

    def range(self, offset: int = None, limit: int = None) -> "Query":
        self._options["offset"] = offset
        self._options["limit"] = limit
        return self

    # Options and tags

    def get_option(self, name: str, default: Any = None) -> Any:
        return self._options.get(name, default)

    def set_option(self, name: str, value: Any) -> Any:
        """Set an option and return its previous value (None if unset)."""
        old = self._options.get(name)
        self._options[name] = value
        return old

    def get_options(self) -> Dict[str, Any]:
        return self._options

    def add_tag(self, tag: str) -> "Query":
        self._tags[tag] = None
        return self

    def has_tag(self, tag: str) -> bool:
        return tag in self._tags

    def has_all_tags(self, *tags: str) -> bool:
        return all(tag in self._tags for tag in tags)

    def has_any_tag(self, *tags: str) -> bool:
        return any(tag in self._tags for tag in tags)

    def get_tags(self) -> Dict[str, None]:
        """Return the tags as an insertion-ordered dict (keys are the tags)."""
        return self._tags

    # Abort

    def abort(self, error_message: str = None) -> None:
        """Mark the query as aborted, replacing any earlier abort message."""
        self._aborted = error_message if error_message is not None else True

    def was_aborted(self) -> bool:
        return self._aborted is not None

    def get_abort_message(self) -> Optional[str]:
        return self._aborted if isinstance(self._aborted, str) else None

    # Execution

    def execute(self) -> ResultSet:
        """
        Execute the query, at most once.

        Returns:
            The query's result set. Later calls return the same object
            without running any stage again.
        """
        if self._executed:
            return self._results

        self._executed = True

        # Aborts are checked both before and after pre-processing.
        if self._should_abort():
            return self._results

        self.pre_execute()

        if self._should_abort():
            return self._results

        index = self._require_index()
        logger.debug(f"Executing search '{self._options['search id']}' on index '{self._index_id}'")
        index.get_server_instance().search(self)

        self.post_execute()

        return self._results

    def _should_abort(self) -> bool:
        """Post-process and report True if the query must not reach the backend."""
        if not self.was_aborted() and self._languages != []:
            return False

        if self.get_abort_message():
            logger.warning(f"Search on index '{self._index_id}' aborted: {self.get_abort_message()}")
        else:
            logger.debug(f"Search on index '{self._index_id}' aborted")

        self.post_execute()
        return True

    def pre_execute(self) -> None:
        """Run the index processors and query alter listeners, once per query."""
        if self._pre_execute_ran:
            return

        self._pre_execute_ran = True

        self._require_index().preprocess_search_query(self)
        self._dispatcher.dispatch(EventKind.QUERY_ALTER, list(self._tags), self)

    def post_execute(self) -> None:
        """Run the result processors and alter listeners, then cache the results."""
        self._require_index().postprocess_search_results(self._results)
        self._dispatcher.dispatch(EventKind.RESULTS_ALTER, list(self._tags), self._results)
        self._results_cache.add_results(self._results)

    def has_executed(self) -> bool:
        return self._executed

    def get_results(self) -> ResultSet:
        return self._results

    def get_index(self):
        """Return the index, or None if it could not be resolved after rehydration."""
        return self._index

    def get_index_id(self) -> Optional[str]:
        return self._index_id

    def _require_index(self):
        if self._index is None:
            raise SearchError(
                f"The index '{self._index_id}' of this query could not be loaded",
                details={"index_id": self._index_id}
            )
        return self._index

    # Persistence

    def to_persisted(self) -> Dict[str, Any]:
        """
        Export the query state as a JSON-compatible dict.

        The index itself is left out; only its id is kept.
        """
        return {
            "index_id": self._index_id,
            "parse_mode": self._parse_mode,
            "original_keys": _export_keys(self._original_keys),
            "keys": _export_keys(self._keys),
            "fields": list(self._fields) if self._fields is not None else None,
            "languages": list(self._languages) if self._languages is not None else None,
            "condition_group": self._condition_group.to_dict(),
            "sorts": dict(self._sorts),
            "options": dict(self._options),
            "tags": list(self._tags),
            "aborted": self._aborted,
            "pre_execute_ran": self._pre_execute_ran,
            "executed": self._executed,
            "results": self._results.to_dict(),
        }

    @classmethod
    def from_persisted(cls, data: Dict[str, Any], registry=None, results_cache=None, dispatcher=None) -> "Query":
        """
        Rebuild a query exported by to_persisted().

        The index is looked up by id in the given registry, or in the
        active application registry. Without either, or if the id is
        unknown, the index stays unresolved and the query fails when it
        next needs it.

        Args:
            data: Persisted query state.
            registry: IndexRegistry to resolve the index with.
            results_cache: Cache for the rebuilt query.
            dispatcher: EventDispatcher for the rebuilt query.

        Returns:
            The rebuilt Query.
        """
        query = cls.__new__(cls)
        query._index = None
        query._index_id = data.get("index_id")
        query._results_cache = results_cache if results_cache is not None else get_results_cache()
        query._dispatcher = dispatcher if dispatcher is not None else get_event_dispatcher()
        query._options = dict(data.get("options", {}))
        query._parse_mode = data.get("parse_mode", "terms")
        query._languages = data.get("languages")
        query._keys = _import_keys(data.get("keys"))
        query._original_keys = _import_keys(data.get("original_keys"))
        query._fields = data.get("fields")
        query._condition_group = ConditionGroup.from_dict(data.get("condition_group", {}))
        query._sorts = dict(data.get("sorts", {}))
        query._aborted = data.get("aborted")
        query._tags = dict.fromkeys(data.get("tags", []))
        query._pre_execute_ran = data.get("pre_execute_ran", False)
        query._executed = data.get("executed", False)
        query._results = ResultSet(query).load_dict(data.get("results"))

        if registry is None:
            registry = get_active_registry()
        if registry is not None and query._index_id:
            query._index = registry.load_index_by_id(query._index_id)

        if query._index is None:
            logger.debug(f"Index '{query._index_id}' left unresolved on rehydrated query")

        return query

    # Debugging

    def __str__(self) -> str:
        lines = [f"Index: {self._index_id}"]
        lines.append("Keys: " + _export(self._original_keys))
        if self._keys is not None:
            lines.append("Parsed keys: " + _export(self._keys))
            fields = ", ".join(self._fields) if self._fields is not None else "[ALL]"
            lines.append(f"Searched fields: {fields}")
        if self._languages is not None:
            lines.append("Searched languages: " + ", ".join(self._languages))
        conditions = str(self._condition_group)
        if conditions:
            conditions = conditions.replace("\n", "\n  ")
            lines.append(f"Conditions:\n  {conditions}")
        if self._sorts:
            sorts = ", ".join(f"{field} {order}" for field, order in self._sorts.items())
            lines.append(f"Sorting: {sorts}")
        lines.append("Options: " + _export(self._sanitize_options(self._options)))
        return "\n".join(lines) + "\n"

    def _sanitize_options(self, options):
        """Replace objects by a type tag, recursing into dicts and sequences."""
        if isinstance(options, dict):
            return {key: self._sanitize_options(value) for key, value in options.items()}
        if isinstance(options, (list, tuple)):
            return [self._sanitize_options(value) for value in options]
        if isinstance(options, _SCALAR_TYPES):
            return options
        return f"object ({type(options).__name__})"


def _export(value) -> str:
    return pprint.pformat(value).replace("\n", "\n  ")


def _export_keys(keys):
    if isinstance(keys, KeywordGroup):
        return {"keyword_group": keys.to_dict()}
    return keys


def _import_keys(data):
    if isinstance(data, dict) and "keyword_group" in data:
        return KeywordGroup.from_dict(data["keyword_group"])
    return data
