"""Push-based progress event stream."""

import queue
import threading
from typing import Callable, Iterator, List, Optional

from apbatch.domain.events import ProgressEvent
from apbatch.shared.logging import get_logger

logger = get_logger(__name__)

EventCallback = Callable[[ProgressEvent], None]


class Subscription:
    """Handle returned by ProgressStream.subscribe."""

    def __init__(self, stream: "ProgressStream", callback: EventCallback):
        self._stream = stream
        self._callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        """Stop delivery to this subscriber. The batch keeps running."""
        self.active = False
        self._stream._remove(self)

    def _deliver(self, event: ProgressEvent) -> None:
        if not self.active:
            return
        try:
            self._callback(event)
        except Exception:
            logger.exception(f"Progress subscriber failed on {type(event).__name__}")


class ProgressStream:
    """
    Fan-out channel for the events of one batch.

    Events are kept so that a late subscriber can be replayed everything it
    missed; replay and live delivery share one delivery lock, so every
    subscriber sees events in publish order.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._delivery_lock = threading.RLock()
        self._subscribers: List[Subscription] = []
        self._history: List[ProgressEvent] = []
        self._terminal: Optional[ProgressEvent] = None

    @property
    def history(self) -> List[ProgressEvent]:
        with self._lock:
            return list(self._history)

    @property
    def closed(self) -> bool:
        """True once a terminal event has been published."""
        with self._lock:
            return self._terminal is not None

    def subscribe(self, callback: EventCallback, replay: bool = True) -> Subscription:
        """
        Register a callback for events.

        Args:
            callback: Invoked on the publishing thread for each event
            replay: Deliver already published events first

        Returns:
            Subscription handle
        """
        subscription = Subscription(self, callback)
        with self._delivery_lock:
            with self._lock:
                backlog = list(self._history) if replay else []
                self._subscribers.append(subscription)
            for event in backlog:
                subscription._deliver(event)
        return subscription

    def publish(self, event: ProgressEvent) -> None:
        with self._delivery_lock:
            with self._lock:
                if self._terminal is not None:
                    raise RuntimeError(f"Stream already closed by {type(self._terminal).__name__}")
                self._history.append(event)
                if event.is_terminal:
                    self._terminal = event
                subscribers = list(self._subscribers)
            for subscription in subscribers:
                subscription._deliver(event)

    def events(self, timeout: Optional[float] = None) -> Iterator[ProgressEvent]:
        """
        Iterate over all events of the batch, blocking until the terminal one.

        Args:
            timeout: Maximum seconds to wait for each event

        Raises:
            TimeoutError: If no event arrives within ``timeout``
        """
        inbox: "queue.Queue[ProgressEvent]" = queue.Queue()
        subscription = self.subscribe(inbox.put, replay=True)
        try:
            while True:
                try:
                    event = inbox.get(timeout=timeout)
                except queue.Empty:
                    raise TimeoutError(f"No progress event within {timeout}s") from None
                yield event
                if event.is_terminal:
                    return
        finally:
            subscription.unsubscribe()

    def __iter__(self) -> Iterator[ProgressEvent]:
        return self.events()

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)
