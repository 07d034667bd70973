import json
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models import RecordCollection
from app.utils.errors import DatabaseError
from app.utils.logging import get_logger

logger = get_logger()


def _decode_payload(raw: str, collection: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        logger.warning(
            f"Stored payload for '{collection}' is not valid JSON, treating it as empty: {e}"
        )
        return []


class RecordStore(ABC):
    """Persistence for a whole record set. `save` always replaces the full set."""

    collection: str

    @abstractmethod
    def load(self) -> Any:
        """Return the decoded stored set; callers validate its shape."""
        pass

    @abstractmethod
    def save(self, records: List[Dict[str, Any]]) -> None:
        pass


class InMemoryRecordStore(RecordStore):
    """Process-local store that round-trips through JSON like a real backend."""

    def __init__(self, collection: str = "memory", raw: Optional[str] = None):
        self.collection = collection
        self._raw = raw

    @property
    def raw(self) -> Optional[str]:
        return self._raw

    def load(self) -> Any:
        if not self._raw:
            return []
        return _decode_payload(self._raw, self.collection)

    def save(self, records: List[Dict[str, Any]]) -> None:
        self._raw = json.dumps(records)


class SqlRecordStore(RecordStore):
    """Stores one record set as a JSON document row in `record_collections`."""

    def __init__(self, session_factory: Callable[[], Session], collection: str):
        self._session_factory = session_factory
        self.collection = collection

    def load(self) -> Any:
        try:
            with self._session_factory() as db:
                row = db.get(RecordCollection, self.collection)
                raw = row.payload if row is not None else None
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to load record collection '{self.collection}': {e}",
                error_code="RECORD_STORE_LOAD_FAILED",
            )

        if not raw:
            return []
        return _decode_payload(raw, self.collection)

    def save(self, records: List[Dict[str, Any]]) -> None:
        payload = json.dumps(records)
        try:
            with self._session_factory() as db:
                row = db.get(RecordCollection, self.collection)
                if row is None:
                    db.add(RecordCollection(name=self.collection, payload=payload))
                else:
                    row.payload = payload
                db.commit()
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to save record collection '{self.collection}': {e}",
                error_code="RECORD_STORE_SAVE_FAILED",
            )
