"""In-process change feed delivering full-state snapshots to live subscribers

Every event carries the complete current result set for its topic. Consumers
replace their copy of that topic wholesale; nothing is patched incrementally.
"""
import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)


def files_topic(owner_id: str) -> str:
    return f"files/{owner_id}"


def uploads_topic(owner_id: str) -> str:
    return f"uploads/{owner_id}"


def conversations_topic(uid: str) -> str:
    return f"conversations/{uid}"


def messages_topic(conversation_id: str) -> str:
    return f"messages/{conversation_id}"


class Subscription:
    """A subscriber's view of one or more topics

    Only the newest undelivered snapshot per topic is kept, so a slow consumer
    skips intermediate states instead of replaying them.
    """

    def __init__(self, feed: "ChangeFeed", topics: Iterable[str]):
        self.feed = feed
        self.topics: Tuple[str, ...] = tuple(topics)
        self._loop = asyncio.get_running_loop()
        self._pending: Dict[str, Any] = {}
        self._ready = asyncio.Event()
        self.closed = False

    def _deliver(self, topic: str, snapshot: Any):
        if self.closed:
            return
        # Insertion order is delivery order; re-inserting moves the topic last
        self._pending.pop(topic, None)
        self._pending[topic] = snapshot
        self._ready.set()

    def push(self, topic: str, snapshot: Any):
        """Thread-safe delivery entry point used by the feed"""
        self._loop.call_soon_threadsafe(self._deliver, topic, snapshot)

    async def next(self) -> Tuple[str, Any]:
        """Wait for the next (topic, snapshot) pair"""
        while not self._pending:
            self._ready.clear()
            await self._ready.wait()
        topic = next(iter(self._pending))
        snapshot = self._pending.pop(topic)
        return topic, snapshot

    def close(self):
        self.closed = True
        self.feed.unsubscribe(self)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Tuple[str, Any]:
        if self.closed:
            raise StopAsyncIteration
        return await self.next()


class ChangeFeed:
    """Topic-based publish/subscribe hub for snapshots"""

    def __init__(self):
        self._subscribers: Dict[str, Set[Subscription]] = defaultdict(set)

    def subscribe(self, *topics: str) -> Subscription:
        """Create a subscription; must be called from within the event loop"""
        subscription = Subscription(self, topics)
        for topic in topics:
            self._subscribers[topic].add(subscription)
        logger.debug(f"Subscribed to {', '.join(topics)}")
        return subscription

    def unsubscribe(self, subscription: Subscription):
        for topic in subscription.topics:
            subscribers = self._subscribers.get(topic)
            if subscribers is None:
                continue
            subscribers.discard(subscription)
            if not subscribers:
                del self._subscribers[topic]

    def publish(self, topic: str, snapshot: Any) -> int:
        """Push a full snapshot to every subscriber of ``topic``

        Safe to call from worker threads. Returns the number of subscribers.
        """
        subscribers: List[Subscription] = list(self._subscribers.get(topic, ()))
        for subscription in subscribers:
            try:
                subscription.push(topic, snapshot)
            except RuntimeError:
                # Subscriber's loop is gone
                logger.warning(f"Dropping subscriber on closed loop for {topic}")
                self.unsubscribe(subscription)
        return len(subscribers)

    def subscriber_count(self, topic: Optional[str] = None) -> int:
        if topic is not None:
            return len(self._subscribers.get(topic, ()))
        return sum(len(s) for s in self._subscribers.values())


# Global feed instance
change_feed = ChangeFeed()
