"""
Change Feed

Sequence-numbered stream of entity snapshots published after every applied
transition. List views poll ``GET /admin/changes?since=<seq>`` and replace
their copy of each entity with the snapshot they receive.
"""
import threading
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional

from app.core.config import settings


class ChangeFeed:
    """Bounded in-process change log."""

    def __init__(self, max_size: Optional[int] = None):
        self._entries: Deque[Dict[str, Any]] = deque(maxlen=max_size or settings.CHANGE_FEED_SIZE)
        self._seq = 0
        self._lock = threading.Lock()

    @property
    def last_seq(self) -> int:
        return self._seq

    def publish(
        self,
        entity_type: str,
        entity_id: int,
        action: str,
        snapshot: Dict[str, Any],
    ) -> Dict[str, Any]:
        with self._lock:
            self._seq += 1
            entry = {
                "seq": self._seq,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "action": action,
                "entity": snapshot,
                "published_at": datetime.utcnow().isoformat(),
            }
            self._entries.append(entry)
        return entry

    def since(self, seq: int = 0, entity_type: Optional[str] = None) -> List[Dict[str, Any]]:
        """Entries newer than ``seq``, oldest first."""
        with self._lock:
            entries = [e for e in self._entries if e["seq"] > seq]
        if entity_type:
            entries = [e for e in entries if e["entity_type"] == entity_type]
        return entries

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._seq = 0


change_feed = ChangeFeed()
