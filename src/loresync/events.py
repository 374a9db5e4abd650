"""EventBus and event types for knowledge-base activity."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Kinds of knowledge-base events."""

    DOCUMENT_SYNCED = "document_synced"
    DOCUMENT_ROLLED_BACK = "document_rolled_back"
    DOCUMENT_DELETED = "document_deleted"
    DOCUMENTS_SEARCHED = "documents_searched"
    DOCUMENT_READ = "document_read"
    DRIFT_DETECTED = "drift_detected"
    DRIFT_RESOLVED = "drift_resolved"


@dataclass(frozen=True, slots=True)
class KnowledgeEvent:
    """Immutable record of something that happened in one project.

    Attributes:
        event_type: The kind of event.
        project_id: Tenant the event belongs to.
        document_id: Affected document, when there is one.
        path: File path of the affected document or drift source.
        user_id: Caller that triggered the event.
        payload: Event-specific details (query, counts, timings).
    """

    event_type: EventType
    project_id: str
    document_id: str | None = None
    path: str | None = None
    user_id: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)


class EventBus:
    """Dispatches events to registered handlers.

    Handlers are called sequentially in registration order.
    Exceptions are logged but never propagated: a failing handler
    degrades bookkeeping, it does not fail the operation that emitted.
    """

    def __init__(self) -> None:
        self._handlers: dict[EventType, list[Callable[..., Any]]] = {et: [] for et in EventType}

    def register(self, event_type: EventType, handler: Callable[..., Any]) -> None:
        """Append *handler* to the list for *event_type*."""
        self._handlers[event_type].append(handler)

    def unregister(self, event_type: EventType, handler: Callable[..., Any]) -> bool:
        """Remove first occurrence of *handler*. Return True if found."""
        handlers = self._handlers[event_type]
        try:
            handlers.remove(handler)
            return True
        except ValueError:
            return False

    async def emit(self, event: KnowledgeEvent) -> None:
        """Dispatch *event* to all registered handlers for its type."""
        for handler in self._handlers[event.event_type]:
            try:
                await handler(event)
            except Exception:
                logger.warning(
                    "Handler %r failed for %s in project %s",
                    handler,
                    event.event_type.value,
                    event.project_id,
                    exc_info=True,
                )

    @property
    def handler_count(self) -> int:
        """Total number of registered handlers across all event types."""
        return sum(len(h) for h in self._handlers.values())
