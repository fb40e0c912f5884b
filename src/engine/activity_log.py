"""
ActivityLog: append-only, bounded history of notification side effects.
"""

import threading
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Callable, List, Optional

from engine.models import NotificationEvent

DEFAULT_LIMIT = 50
GENERAL_SOURCE = "General"


class ActivityLog:
    def __init__(self, limit: int = DEFAULT_LIMIT, clock: Optional[Callable[[], datetime]] = None):
        if limit < 1:
            raise ValueError("activity log limit must be at least 1")
        self.limit = limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        # deque drops from the left once full, i.e. oldest insertion first
        self._events = deque(maxlen=limit)
        self.lock = threading.Lock()

    def append(self, message: str, source: str = GENERAL_SOURCE) -> NotificationEvent:
        event = NotificationEvent(
            id=str(uuid.uuid4()),
            timestamp=self._clock(),
            message=message,
            source=source,
        )
        with self.lock:
            self._events.append(event)
        return event

    def entries(self) -> List[NotificationEvent]:
        """Events in insertion order, oldest first."""
        with self.lock:
            return list(self._events)

    def recent(self, limit: Optional[int] = None) -> List[NotificationEvent]:
        """Events newest first, for activity feeds."""
        events = self.entries()
        events.reverse()
        return events if limit is None else events[:limit]

    def __len__(self) -> int:
        return len(self._events)
