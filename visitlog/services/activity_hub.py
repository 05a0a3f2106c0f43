"""
Live activity broadcast.

The hub is owned by the application; each Server-Sent Events connection
subscribes for its lifetime and unsubscribes when the client goes away.
"""
import json
import logging
import queue
import threading
from typing import Any, Dict, Iterator, Optional

from visitlog.config.settings import Config
from visitlog.utils.response_utils import to_json_safe

logger = logging.getLogger(__name__)


class Subscription:
    """One listener's bounded event queue."""

    def __init__(self, max_size: int):
        self.events = queue.Queue(maxsize=max_size)

    def deliver(self, event: Dict[str, Any]) -> bool:
        try:
            self.events.put_nowait(event)
            return True
        except queue.Full:
            return False

    def next_event(self, timeout: float) -> Optional[Dict[str, Any]]:
        """Wait up to ``timeout`` seconds; None means nothing arrived."""
        try:
            return self.events.get(timeout=timeout)
        except queue.Empty:
            return None


class ActivityHub:
    """Publish/subscribe channel for check-in and check-out events."""

    def __init__(self, queue_size: int = None):
        self.queue_size = queue_size or Config.ACTIVITY_QUEUE_SIZE
        self._subscribers = set()
        self._lock = threading.Lock()

    def subscribe(self) -> Subscription:
        subscription = Subscription(self.queue_size)
        with self._lock:
            self._subscribers.add(subscription)
        logger.info(f"Activity listener subscribed ({self.subscriber_count} active)")
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            self._subscribers.discard(subscription)
        logger.info(f"Activity listener unsubscribed ({self.subscriber_count} active)")

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event: Dict[str, Any]) -> int:
        """
        Send an event to every subscriber.

        Listeners whose queue is full miss the event rather than blocking
        the publisher.

        Returns:
            Number of subscribers that received the event
        """
        with self._lock:
            subscribers = list(self._subscribers)

        delivered = 0
        for subscription in subscribers:
            if subscription.deliver(event):
                delivered += 1
            else:
                logger.warning("Activity listener queue full, event dropped")
        return delivered


def format_sse(event: Dict[str, Any]) -> str:
    """Encode an event as a Server-Sent Events data frame."""
    return f"data: {json.dumps(to_json_safe(event))}\n\n"


def stream_events(hub: ActivityHub, keepalive_seconds: float = None) -> Iterator[str]:
    """
    Yield SSE frames for one client until the generator is closed.

    A comment frame is sent first and whenever no event arrives within the
    keep-alive interval so proxies keep the connection open.
    """
    keepalive_seconds = keepalive_seconds or Config.ACTIVITY_KEEPALIVE_SECONDS
    subscription = hub.subscribe()
    try:
        yield ": connected\n\n"
        while True:
            event = subscription.next_event(timeout=keepalive_seconds)
            if event is None:
                yield ": ping\n\n"
            else:
                yield format_sse(event)
    finally:
        hub.unsubscribe(subscription)
