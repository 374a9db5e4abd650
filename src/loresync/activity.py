"""ActivityRecorder: turns knowledge events into ``activity_events`` rows."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from loresync.events import EventType
from loresync.models import ActivityEvent
from loresync.repositories import ActivityRepository

if TYPE_CHECKING:
    from loresync._db import Database
    from loresync.events import EventBus, KnowledgeEvent

logger = logging.getLogger(__name__)

# Event type -> activity_events.event_type
ACTIVITY_TYPES: dict[EventType, str] = {
    EventType.DOCUMENTS_SEARCHED: "search",
    EventType.DOCUMENT_READ: "read",
    EventType.DOCUMENT_SYNCED: "sync",
    EventType.DOCUMENT_ROLLED_BACK: "rollback",
}


class ActivityRecorder:
    """Event handler that persists usage events.

    Registered on an :class:`EventBus`; a failed insert is raised to the bus,
    which logs it without failing the operation that emitted.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._activity = ActivityRepository()

    def attach(self, bus: EventBus) -> None:
        for event_type in ACTIVITY_TYPES:
            bus.register(event_type, self.record)

    def detach(self, bus: EventBus) -> None:
        for event_type in ACTIVITY_TYPES:
            bus.unregister(event_type, self.record)

    async def record(self, event: KnowledgeEvent) -> None:
        activity_type = ACTIVITY_TYPES.get(event.event_type)
        if activity_type is None:
            return
        payload = dict(event.payload)
        row = ActivityEvent(
            project_id=event.project_id,
            user_id=event.user_id,
            event_type=activity_type,
            query=payload.pop("query", None),
            document_id=event.document_id,
            result_count=payload.pop("result_count", None),
            response_time_ms=payload.pop("response_time_ms", None),
            context=payload,
        )
        async with self._db.session() as session:
            self._activity.add(session, row)
        logger.debug("Recorded %s activity in %s", activity_type, event.project_id)
