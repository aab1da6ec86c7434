import logging
import weakref
from typing import List, Protocol

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    def on_data_changed(self) -> None: ...


class ChangeNotifier:
    """Broadcast a payload-free "data changed" signal to every subscriber.

    Subscribers are called synchronously in subscription order and re-read
    whatever they need. A subscriber that raises is logged and skipped; the
    remaining subscribers still run and publish() itself never fails.

    Handles are held weakly. The owner keeps a subscriber alive; one that is
    garbage collected (a view whose session expired) drops out on its own.
    """

    def __init__(self):
        self._subscribers: List[weakref.ref] = []

    def _live(self) -> List[Subscriber]:
        handles = (ref() for ref in self._subscribers)
        return [h for h in handles if h is not None]

    def _prune(self) -> None:
        self._subscribers = [ref for ref in self._subscribers if ref() is not None]

    @property
    def subscriber_count(self) -> int:
        return len(self._live())

    def is_subscribed(self, handle) -> bool:
        return any(s is handle for s in self._live())

    def subscribe(self, handle: Subscriber) -> None:
        self._prune()
        if not self.is_subscribed(handle):
            self._subscribers.append(weakref.ref(handle))

    def unsubscribe(self, handle: Subscriber) -> None:
        self._subscribers = [ref for ref in self._subscribers if ref() is not None and ref() is not handle]

    def publish(self) -> None:
        self._prune()
        # Snapshot so callbacks may subscribe/unsubscribe while we iterate
        for subscriber in self._live():
            try:
                subscriber.on_data_changed()
            except Exception:
                logger.exception("Subscriber %r failed while handling data change", subscriber)
