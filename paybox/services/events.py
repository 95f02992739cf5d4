"""In-process change feed: one event per successful transition or note."""
import logging
import threading
from datetime import datetime
from typing import Any, Callable

from paybox.core.clock import utc_now
from paybox.core.config import settings

log = logging.getLogger("paybox.events")

Subscriber = Callable[[dict[str, Any]], None]


class ChangeFeed:
    def __init__(self, limit: int = 500):
        self.limit = limit
        self._events: list[dict[str, Any]] = []
        self._seq = 0
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def publish(self, box, event_type: str, actor_id: str | None = None, ts: datetime | None = None) -> dict[str, Any]:
        with self._lock:
            self._seq += 1
            event = {
                "seq": self._seq,
                "id": f"{box.id}:{self._seq}",
                "ts": (ts or utc_now()).isoformat(),
                "type": event_type,
                "box_id": box.id,
                "sender_id": box.sender_id,
                "receiver_id": box.receiver_id,
                "status": box.status,
                "phase": box.phase,
                "actor_id": actor_id,
            }
            self._events.append(event)
            if self.limit and len(self._events) > self.limit:
                self._events = self._events[-self.limit :]
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                log.exception("Change subscriber failed: event=%s", event["id"])
        return event

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; returns a function that removes it again."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def list_events(self, after: int | None = None, user_id: str | None = None) -> tuple[list[dict[str, Any]], int]:
        """Events newer than cursor ``after``; with ``user_id`` only that user's boxes."""
        with self._lock:
            events = list(self._events)
            cursor = self._seq
        if after is not None:
            events = [e for e in events if e["seq"] > after]
        if user_id is not None:
            events = [e for e in events if user_id in (e["sender_id"], e["receiver_id"])]
        return events, cursor

    def clear(self) -> None:
        with self._lock:
            self._events = []
            self._seq = 0


feed = ChangeFeed(limit=settings.change_feed_limit)
