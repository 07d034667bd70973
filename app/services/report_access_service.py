from typing import Any, Dict, List, Optional, Union

from fastapi import Request
from pydantic import ValidationError

from app.schemas.report_access_schemas import (
    AccessCheckResult,
    AccessGrant,
    AccessSource,
)
from app.services.record_set_service import RecordSetService, has_values
from app.utils.logging import get_logger
from app.utils.term_utils import build_access_key, normalize_term

logger = get_logger()


class ReportAccessService(RecordSetService[AccessGrant]):
    """
    Entitlement ledger deciding whether a parent may view a student's report.

    Grants are keyed by (parent, student, session, term). A new grant for an
    existing key replaces it whatever its source, so a manual override
    replaces a payment grant and vice versa. No operation raises: invalid
    input and lookup misses leave the ledger untouched.
    """

    source = "report_access"

    def _parse_entry(self, entry: Dict[str, Any]) -> Optional[AccessGrant]:
        # Missing or unreadable grantedAt falls back to load time
        candidate = {**entry, "grantedAt": self._timestamp_or_now(entry.get("grantedAt"))}
        try:
            grant = AccessGrant.model_validate(candidate)
        except ValidationError:
            return None
        return grant.model_copy(update={"term": normalize_term(grant.term)})

    @staticmethod
    def _filter_period(
        records: List[AccessGrant], term: Optional[str], session: Optional[str]
    ) -> List[AccessGrant]:
        normalized_term = normalize_term(term)
        return [
            record
            for record in records
            if record.term == normalized_term and record.session == session
        ]

    def sync_access(self, term: str, session: str) -> List[AccessGrant]:
        """
        Grants for one term/session.

        This is a read-only filter. Grants for other terms and sessions stay
        in the store, so payment-granted access from an earlier term is never
        evicted by looking at a later one.
        """
        with self._lock:
            return self._filter_period(self._read_records(), term, session)

    def has_access(
        self, parent_id: str, student_id: str, term: str, session: str
    ) -> AccessCheckResult:
        match = next(
            (
                record
                for record in self.sync_access(term, session)
                if record.parent_id == parent_id and record.student_id == student_id
            ),
            None,
        )
        return AccessCheckResult(granted=match is not None, record=match)

    def list_parent_access(
        self,
        parent_id: str,
        term: Optional[str] = None,
        session: Optional[str] = None,
    ) -> List[AccessGrant]:
        """All grants held by a parent, optionally narrowed to a term and/or session."""
        normalized_term = normalize_term(term) if term else None
        return [
            record
            for record in self.get_records()
            if record.parent_id == parent_id
            and (normalized_term is None or record.term == normalized_term)
            and (session is None or record.session == session)
        ]

    def grant_access(
        self,
        parent_id: str,
        student_id: str,
        term: str,
        session: str,
        granted_by: Union[AccessSource, str] = AccessSource.MANUAL,
    ) -> List[AccessGrant]:
        """Create or replace the grant for a key; returns the term/session view."""
        try:
            source = AccessSource(granted_by)
        except ValueError:
            logger.debug(f"Ignoring access grant with unknown source {granted_by!r}")
            return self.sync_access(term, session)

        if not has_values(parent_id, student_id, term, session):
            logger.debug("Ignoring access grant with missing parent, student, term or session")
            return self.sync_access(term, session)

        with self._lock:
            records = self._load_for_update()
            if records is None:
                return []

            grant = AccessGrant(
                parent_id=parent_id,
                student_id=student_id,
                term=normalize_term(term),
                session=session,
                granted_by=source,
                granted_at=self._clock(),
            )
            updated = [record for record in records if record.key != grant.key]
            updated.append(grant)

            if not self._write_records(updated):
                return self._filter_period(records, term, session)

            logger.info(
                f"Granted report access {grant.key} via {source.value}"
            )
            return self._filter_period(updated, term, session)

    def revoke_access(
        self, parent_id: str, student_id: str, term: str, session: str
    ) -> List[AccessGrant]:
        """Remove the grant for the exact key; returns the term/session view."""
        if not has_values(parent_id, student_id, term, session):
            logger.debug("Ignoring access revocation with missing parent, student, term or session")
            return self.sync_access(term, session)

        key = build_access_key(parent_id, student_id, term, session)
        with self._lock:
            records = self._load_for_update()
            if records is None:
                return []

            updated = [record for record in records if record.key != key]
            if len(updated) == len(records):
                logger.debug(f"No report access to revoke for {key}")
                return self._filter_period(records, term, session)

            if not self._write_records(updated):
                return self._filter_period(records, term, session)

            logger.info(f"Revoked report access {key}")
            return self._filter_period(updated, term, session)

    def clear_all(self) -> List[AccessGrant]:
        """Empty the ledger. Used by reset and test paths."""
        with self._lock:
            if self._write_records([]):
                logger.info("Cleared all report access grants")
        return []


def get_report_access_service(request: Request) -> ReportAccessService:
    """Dependency to get the application's report access service"""
    return request.app.state.report_services.access
