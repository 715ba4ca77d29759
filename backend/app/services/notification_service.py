"""
Notification Service

Advisory, per-admin notifications ("Order ORD-... marked as dispatched").
Held in memory in a bounded queue per user; the admin UI drains its queue
with GET /admin/notifications. Delivery is best effort.
"""
import threading
from collections import deque
from datetime import datetime
from typing import Deque, Dict, List, Optional

from app.core.config import settings

SEVERITIES = ("success", "info", "warning", "error")


class NotificationService:
    """Bounded in-process notification queues keyed by user id."""

    def __init__(self, max_per_user: Optional[int] = None):
        self.max_per_user = max_per_user or settings.NOTIFICATION_QUEUE_SIZE
        self._queues: Dict[int, Deque[dict]] = {}
        self._lock = threading.Lock()

    def notify(self, user_id: int, message: str, severity: str = "info", **context) -> dict:
        if severity not in SEVERITIES:
            severity = "info"
        note = {
            "message": message,
            "severity": severity,
            "created_at": datetime.utcnow().isoformat(),
            **context,
        }
        with self._lock:
            queue = self._queues.setdefault(user_id, deque(maxlen=self.max_per_user))
            queue.append(note)
        return note

    def peek(self, user_id: int) -> List[dict]:
        with self._lock:
            return list(self._queues.get(user_id, ()))

    def drain(self, user_id: int) -> List[dict]:
        """Return and clear everything queued for a user."""
        with self._lock:
            queue = self._queues.pop(user_id, None)
        return list(queue or ())

    def clear(self) -> None:
        with self._lock:
            self._queues.clear()


notifications = NotificationService()
