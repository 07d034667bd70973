import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from app.db.record_store import RecordStore
from app.services.change_broadcaster import ChangeBroadcaster, ChangeObserver
from app.utils.datetime_utils import utc_now
from app.utils.errors import DatabaseError
from app.utils.logging import get_logger

logger = get_logger()

RecordT = TypeVar("RecordT", bound=BaseModel)

_DATETIME = TypeAdapter(datetime)


def has_values(*values: Optional[str]) -> bool:
    """True when every value is a non-blank string."""
    return all(isinstance(value, str) and value.strip() for value in values)


class RecordSetService(ABC, Generic[RecordT]):
    """
    Base for services that keep a whole record set in a `RecordStore`.

    Every load, mutate, persist and broadcast cycle runs under one re-entrant
    lock, so at most one mutation is in flight and readers never see a
    partially written set. Records are frozen models; callers and observers
    receive them directly.
    """

    source: str = "records"

    def __init__(
        self,
        store: RecordStore,
        broadcaster: Optional[ChangeBroadcaster] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.broadcaster = broadcaster or ChangeBroadcaster(self.source)
        self._clock = clock
        self._lock = threading.RLock()

    @abstractmethod
    def _parse_entry(self, entry: Dict[str, Any]) -> Optional[RecordT]:
        """Validate one stored entry; return None to drop it."""
        pass

    @staticmethod
    def _parse_timestamp(value: Any) -> Optional[datetime]:
        """Stored timestamp as a datetime, or None when it is missing or unreadable."""
        if value is None:
            return None
        try:
            return _DATETIME.validate_python(value)
        except ValidationError:
            return None

    def _timestamp_or_now(self, value: Any) -> datetime:
        return self._parse_timestamp(value) or self._clock()

    def subscribe(self, observer: ChangeObserver) -> Callable[[], None]:
        return self.broadcaster.subscribe(observer)

    def get_records(self) -> List[RecordT]:
        """Full current record set."""
        with self._lock:
            return self._read_records()

    def _parse_records(self, raw: Any) -> List[RecordT]:
        if not isinstance(raw, list):
            logger.warning(
                f"Stored '{self.store.collection}' data is not a list, treating it as empty"
            )
            return []

        records: List[RecordT] = []
        dropped = 0
        for entry in raw:
            record = self._parse_entry(entry) if isinstance(entry, dict) else None
            if record is None:
                dropped += 1
                continue
            records.append(record)

        if dropped:
            logger.warning(
                f"Dropped {dropped} malformed entr{'y' if dropped == 1 else 'ies'} "
                f"from '{self.store.collection}'"
            )
        return records

    def _load_records(self) -> List[RecordT]:
        return self._parse_records(self.store.load())

    def _read_records(self) -> List[RecordT]:
        try:
            return self._load_records()
        except DatabaseError as e:
            logger.warning(f"Serving empty '{self.source}' view: {e.message}")
            return []

    def _load_for_update(self) -> Optional[List[RecordT]]:
        """Load before a mutation; None means the store is unreachable and nothing may change."""
        try:
            return self._load_records()
        except DatabaseError as e:
            logger.error(f"Skipping '{self.source}' mutation, store unavailable: {e.message}")
            return None

    def _write_records(self, records: List[RecordT]) -> bool:
        try:
            self.store.save(
                [record.model_dump(by_alias=True, exclude_none=True) for record in records]
            )
        except DatabaseError as e:
            logger.error(f"Failed to persist '{self.source}' records: {e.message}")
            return False

        self.broadcaster.publish(records)
        return True
