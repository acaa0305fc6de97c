"""
Typed event dispatch for query and result alteration.

Listeners register for an event kind, optionally scoped to a tag. A
dispatch runs the unscoped listeners first, then the listeners of each
tag of the payload's query, in tag order.
"""

from collections import defaultdict
from enum import Enum
from itertools import count
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .core import get_logger

logger = get_logger(__name__)


class EventKind(Enum):
    """Events fired while a query executes."""
    QUERY_ALTER = "search_api_query"
    RESULTS_ALTER = "search_api_results"


Listener = Callable[[object], None]


class EventDispatcher:
    """
    Ordered listener registry keyed by (event kind, tag).

    Within one key, listeners run by ascending priority, ties in
    registration order. Listeners alter the payload in place; return
    values are ignored.
    """

    def __init__(self):
        self._listeners: Dict[Tuple[EventKind, Optional[str]], List[Tuple[int, int, Listener]]] = defaultdict(list)
        self._sequence = count()

    def add_listener(
        self,
        kind: EventKind,
        listener: Listener,
        tag: str = None,
        priority: int = 0
    ) -> None:
        """
        Register a listener.

        Args:
            kind: Event kind to listen for.
            listener: Callable receiving the payload.
            tag: Only fire for payloads whose query carries this tag.
            priority: Lower runs first.
        """
        entries = self._listeners[(kind, tag)]
        entries.append((priority, next(self._sequence), listener))
        entries.sort(key=lambda entry: (entry[0], entry[1]))

    def remove_listener(self, kind: EventKind, listener: Listener, tag: str = None) -> None:
        key = (kind, tag)
        self._listeners[key] = [
            entry for entry in self._listeners[key] if entry[2] != listener
        ]

    def get_listeners(self, kind: EventKind, tag: str = None) -> List[Listener]:
        return [entry[2] for entry in self._listeners.get((kind, tag), [])]

    def dispatch(self, kind: EventKind, tags: Iterable[str], payload) -> None:
        """
        Invoke all listeners for the event kind and the given tags.

        Args:
            kind: Event kind being fired.
            tags: Tags of the query, in iteration order.
            payload: Query or ResultSet passed to every listener.
        """
        scopes = [None] + list(tags)
        for tag in scopes:
            for listener in self.get_listeners(kind, tag):
                listener(payload)

        logger.debug(f"Dispatched {', '.join(hook_names(kind, scopes[1:]))}")

    def clear(self) -> None:
        self._listeners.clear()


def hook_names(kind: EventKind, tags: Iterable[str]) -> List[str]:
    """Return the hook names an event covers, e.g. search_api_query_<tag>."""
    return [kind.value] + [f"{kind.value}_{tag}" for tag in tags]


_event_dispatcher: Optional[EventDispatcher] = None


def get_event_dispatcher() -> EventDispatcher:
    """Get the singleton EventDispatcher instance."""
    global _event_dispatcher
    if _event_dispatcher is None:
        _event_dispatcher = EventDispatcher()
    return _event_dispatcher
