import threading
from typing import Any, Callable, List, Sequence

from app.schemas.change_event_schemas import RecordsChangedEvent
from app.utils.logging import get_logger

logger = get_logger()

ChangeObserver = Callable[[RecordsChangedEvent], None]


class ChangeBroadcaster:
    """
    Publish-on-mutation hook for dashboards that refresh on record changes.

    Events are delivered synchronously, in registration order, to the observers
    registered at publish time. Nothing is buffered, so a late subscriber
    catches up by reading the owning service's current records.
    """

    def __init__(self, source: str):
        self.source = source
        self._observers: List[ChangeObserver] = []
        self._lock = threading.Lock()

    def subscribe(self, observer: ChangeObserver) -> Callable[[], None]:
        """Register an observer and return a function that unregisters it."""
        with self._lock:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._lock:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def publish(self, records: Sequence[Any]) -> RecordsChangedEvent:
        event = RecordsChangedEvent(source=self.source, records=list(records))
        with self._lock:
            observers = list(self._observers)

        for observer in observers:
            try:
                observer(event)
            except Exception as e:
                logger.opt(exception=e).error(
                    f"Change observer {getattr(observer, '__name__', observer)!r} "
                    f"failed for '{self.source}': {e}"
                )

        return event
