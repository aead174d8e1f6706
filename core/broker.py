"""
Publish/subscribe channel for real-time order events.

Services only ever call ``publish``. Delivery is best effort: a subscriber
that falls behind loses its oldest payloads, and publishing never blocks or
raises because of a subscriber.
"""

import asyncio
from collections import defaultdict
from threading import Lock
from typing import Any, AsyncIterator, Dict, Protocol, Set
from utils.logger import get_logger

logger = get_logger(__name__)


def order_channel(order_id: int) -> str:
    return f"order_{order_id}"


class Broker(Protocol):
    def publish(self, channel: str, payload: Dict[str, Any]) -> None: ...

    def subscribe(self, channel: str) -> "Subscription": ...


class Subscription:
    """
    One subscriber's view of a channel.

    Registered as soon as it is created, so nothing published after
    ``broker.subscribe()`` returns is missed. Iterate it with ``async for``;
    call ``close()`` (or leave the ``async with`` block) to unregister.
    """

    def __init__(self, broker: "InMemoryBroker", channel: str, maxsize: int):
        self.channel = channel
        self._broker = broker
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._loop = asyncio.get_running_loop()
        self.closed = False

    def offer(self, payload: Dict[str, Any]) -> None:
        # Always runs on the subscriber's own loop
        if self._queue.full():
            self._queue.get_nowait()
            logger.debug("Subscriber queue full, dropped oldest payload", extra={"channel": self.channel})
        self._queue.put_nowait(payload)

    def deliver(self, payload: Dict[str, Any]) -> None:
        self._loop.call_soon_threadsafe(self.offer, payload)

    async def get(self) -> Dict[str, Any]:
        return await self._queue.get()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._broker.unsubscribe(self)

    def __aiter__(self) -> AsyncIterator[Dict[str, Any]]:
        return self

    async def __anext__(self) -> Dict[str, Any]:
        if self.closed:
            raise StopAsyncIteration
        return await self.get()

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()


class InMemoryBroker:
    """Process-local fan-out broker."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscribers: Dict[str, Set[Subscription]] = defaultdict(set)
        self._lock = Lock()

    def subscribe(self, channel: str) -> Subscription:
        """Must be called from a running event loop."""
        subscription = Subscription(self, channel, self.queue_size)
        with self._lock:
            self._subscribers[channel].add(subscription)
        logger.debug("Subscribed", extra={"channel": channel})
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.channel)
            if subscribers is not None:
                subscribers.discard(subscription)
                if not subscribers:
                    del self._subscribers[subscription.channel]
        logger.debug("Unsubscribed", extra={"channel": subscription.channel})

    def subscriber_count(self, channel: str) -> int:
        with self._lock:
            return len(self._subscribers.get(channel, ()))

    def publish(self, channel: str, payload: Dict[str, Any]) -> None:
        with self._lock:
            subscribers = list(self._subscribers.get(channel, ()))

        for subscription in subscribers:
            try:
                subscription.deliver(payload)
            except RuntimeError:
                # Subscriber's loop is gone; it will never read again
                self.unsubscribe(subscription)

        logger.debug(
            "Published event",
            extra={"channel": channel, "event": payload.get("type"), "subscribers": len(subscribers)}
        )


def publish_event(broker: Broker | None, channel: str, payload: Dict[str, Any]) -> None:
    """
    Fire-and-forget publish used by the services.

    The write that produced the event has already been committed, so a broken
    transport is logged and otherwise ignored.
    """
    if broker is None:
        return
    try:
        broker.publish(channel, payload)
    except Exception as e:
        logger.warning(
            f"Failed to publish event: {str(e)}",
            extra={"channel": channel, "event": payload.get("type"), "error_type": type(e).__name__}
        )
