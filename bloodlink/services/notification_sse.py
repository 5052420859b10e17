"""
SSE Notification Manager

Room-based publish/subscribe for Server-Sent Events. Every account listens
on its personal room (its id); donors with a city also listen on
``donors_<city>``. Delivery is best effort: a subscriber whose queue is
full, or a room with nobody in it, simply misses the event.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from bloodlink.utils.logging_config import get_logger

logger = get_logger(__name__)

QUEUE_SIZE = 100


def city_room(city: str) -> str:
    return f"donors_{city.strip().lower()}"


def rooms_for(user) -> List[str]:
    """Rooms an account is subscribed to when it opens a stream"""
    rooms = [str(user.id)]
    if user.role == "donor" and user.city:
        rooms.append(city_room(user.city))
    return rooms


class ConnectionManager:
    """Manages SSE subscriber queues grouped by room"""

    def __init__(self):
        # room -> list of subscriber queues
        self._rooms: Dict[str, List[asyncio.Queue]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, rooms: Iterable[str]) -> asyncio.Queue:
        """
        Register a new SSE connection in every given room.

        Returns:
            asyncio.Queue: Queue the stream reads events from
        """
        queue: asyncio.Queue = asyncio.Queue(maxsize=QUEUE_SIZE)
        rooms = list(rooms)
        async with self._lock:
            for room in rooms:
                self._rooms.setdefault(room, []).append(queue)

        logger.info(
            "SSE connection added",
            extra={"event_type": "sse_connected", "rooms": rooms},
        )
        return queue

    async def unsubscribe(self, rooms: Iterable[str], queue: asyncio.Queue) -> None:
        async with self._lock:
            for room in rooms:
                queues = self._rooms.get(room)
                if not queues or queue not in queues:
                    continue
                queues.remove(queue)
                # Clean up empty rooms
                if not queues:
                    del self._rooms[room]

        logger.info("SSE connection removed", extra={"event_type": "sse_disconnected"})

    def publish(self, room: str, event: str, data: dict) -> int:
        """
        Push an event to every queue in a room without waiting.

        Returns:
            int: Number of connections the event was queued for
        """
        queues = list(self._rooms.get(room, ()))
        if not queues:
            logger.debug(
                "No subscribers for room",
                extra={"event_type": "sse_no_subscribers", "room": room, "event": event},
            )
            return 0

        message = {
            "event": event,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        delivered = 0
        for queue in queues:
            try:
                queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(
                    "Dropping event for slow subscriber",
                    extra={"event_type": "sse_queue_full", "room": room, "event": event},
                )
        return delivered

    def connection_count(self, room: Optional[str] = None) -> int:
        if room is not None:
            return len(self._rooms.get(room, ()))
        return len({id(q) for queues in self._rooms.values() for q in queues})

    def get_stats(self) -> dict:
        return {
            "total_connections": self.connection_count(),
            "rooms": {room: len(queues) for room, queues in self._rooms.items()},
        }


# Global connection manager instance
manager = ConnectionManager()


__all__ = ["ConnectionManager", "manager", "city_room", "rooms_for"]
