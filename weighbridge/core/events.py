from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Union

from weighbridge.core.log import get_logger

LOG = get_logger("events")


def _isoformat(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class WeightEvent:
    weight: float
    stable: bool
    stable_weight: int
    simulation: bool
    timestamp: float


@dataclass(frozen=True, slots=True)
class StatusEvent:
    connected: bool
    simulation: bool


FeedEvent = Union[WeightEvent, StatusEvent]


def serialize(event: FeedEvent) -> Dict[str, Any]:
    """Wire representation sent to subscribers."""

    if isinstance(event, WeightEvent):
        return {
            "type": "weight",
            "weight": event.weight,
            "stable": event.stable,
            "stableWeight": event.stable_weight,
            "simulation": event.simulation,
            "timestamp": _isoformat(event.timestamp),
        }
    return {"type": "status", "connected": event.connected, "simulation": event.simulation}


SendCallable = Callable[[Dict[str, Any]], Awaitable[None]]


class Subscription:
    """One subscriber's ordered event queue."""

    def __init__(self, broadcaster: "Broadcaster", token: int, queue_size: int) -> None:
        self.token = token
        self.queue: asyncio.Queue[FeedEvent] = asyncio.Queue(queue_size)
        self._broadcaster = broadcaster

    async def pump(self, send: SendCallable) -> None:
        """Forward queued events to ``send`` until it fails or the task is cancelled."""

        try:
            while True:
                event = await self.queue.get()
                await send(serialize(event))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOG.debug("Subscriber %d dropped: %s", self.token, exc)
        finally:
            self._broadcaster.unsubscribe(self.token)


class Broadcaster:
    """Fan-out of feed events to every registered subscriber.

    Publishing never blocks: events go into each subscriber's bounded queue and
    a slow subscriber loses events instead of stalling the feed.
    """

    def __init__(
        self,
        *,
        snapshot: Optional[Callable[[], Iterable[FeedEvent]]] = None,
        queue_size: int = 64,
    ) -> None:
        self._subscribers: Dict[int, Subscription] = {}
        self._next_token = 1
        self._queue_size = max(1, queue_size)
        self._snapshot = snapshot

    def set_snapshot_provider(self, snapshot: Callable[[], Iterable[FeedEvent]]) -> None:
        self._snapshot = snapshot

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> Subscription:
        subscription = Subscription(self, self._next_token, self._queue_size)
        self._next_token += 1
        self._subscribers[subscription.token] = subscription
        if self._snapshot is not None:
            for event in self._snapshot():
                self._offer(subscription, event)
        return subscription

    def unsubscribe(self, token: int) -> None:
        self._subscribers.pop(token, None)

    def publish(self, event: FeedEvent) -> int:
        delivered = 0
        for subscription in list(self._subscribers.values()):
            if self._offer(subscription, event):
                delivered += 1
        return delivered

    @staticmethod
    def _offer(subscription: Subscription, event: FeedEvent) -> bool:
        try:
            subscription.queue.put_nowait(event)
        except asyncio.QueueFull:
            # Drop if subscriber is slow; ordering of what it does get is kept.
            return False
        return True


__all__ = [
    "Broadcaster",
    "FeedEvent",
    "StatusEvent",
    "Subscription",
    "WeightEvent",
    "serialize",
]
