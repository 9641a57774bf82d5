import asyncio
from typing import Any, Dict, Iterable, Optional, Set

import anyio
import structlog
from fastapi import WebSocket


logger = structlog.get_logger()

TOPICS = (
    "companies",
    "sites",
    "tickets",
    "users",
    "timeclock",
    "checkins",
    "schedules",
    "attendance",
    "vacations",
    "config",
)


class EventHub:
    def __init__(self) -> None:
        # topic -> set of WebSocket connections
        self._subscribers: Dict[str, Set[WebSocket]] = {}
        # created on first use, inside the running loop
        self._lock: Optional[asyncio.Lock] = None

    def _get_lock(self) -> asyncio.Lock:
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def connect(self, ws: WebSocket, topics: Optional[Iterable[str]] = None) -> Set[str]:
        wanted = {t for t in (topics or TOPICS) if t in TOPICS} or set(TOPICS)
        async with self._get_lock():
            for topic in wanted:
                self._subscribers.setdefault(topic, set()).add(ws)
        return wanted

    async def disconnect(self, ws: WebSocket) -> None:
        async with self._get_lock():
            for topic in list(self._subscribers):
                conns = self._subscribers[topic]
                conns.discard(ws)
                if not conns:
                    self._subscribers.pop(topic, None)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, ()))

    async def _deliver(self, ws: WebSocket, data: dict) -> bool:
        try:
            await ws.send_json(data)
            return True
        except Exception as e:
            # best-effort; drop the connection on failure
            logger.warning("event_delivery_failed", topic=data["topic"], event_name=data["event"], error=str(e))
            return False

    async def publish(self, topic: str, event: str, payload: Any) -> None:
        data = {"topic": topic, "event": event, "data": payload}
        async with self._get_lock():
            targets = list(self._subscribers.get(topic, set()))
        # one slow socket must not hold back the others
        results = await asyncio.gather(*(self._deliver(ws, data) for ws in targets))
        for ws, ok in zip(targets, results):
            if not ok:
                await self.disconnect(ws)


# Global singleton hub
hub = EventHub()

# Strong references to in-flight publish tasks until they finish
_pending: Set["asyncio.Task[None]"] = set()


def _spawn(topic: str, event: str, payload: Any) -> None:
    task = asyncio.get_running_loop().create_task(hub.publish(topic, event, payload))
    _pending.add(task)
    task.add_done_callback(_pending.discard)


def notify(topic: str, event: str, payload: Any) -> None:
    """
    Publish from a sync request handler running in a worker thread.

    The publish is scheduled on the event loop and not awaited, so the
    request returns without waiting on subscriber sockets.
    """
    try:
        anyio.from_thread.run_sync(_spawn, topic, event, payload)
    except RuntimeError as e:
        # Not running inside an anyio worker thread (scripts, direct service calls)
        logger.debug("event_not_published", topic=topic, event_name=event, error=str(e))
