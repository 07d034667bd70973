import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from fastapi import Request
from pydantic import ValidationError

from app.db.record_store import RecordStore
from app.schemas.notification_schemas import AudienceRole, Notice, NoticeType
from app.schemas.report_workflow_schemas import (
    StudentEntry,
    WorkflowRecord,
    WorkflowStatus,
    WorkflowSummary,
)
from app.services.change_broadcaster import ChangeBroadcaster
from app.services.notifications.base import BaseNotifier
from app.services.record_set_service import RecordSetService, has_values
from app.utils.datetime_utils import utc_now
from app.utils.logging import get_logger
from app.utils.term_utils import (
    KEY_SEPARATOR,
    build_workflow_record_id,
    normalize_key_segment,
    normalize_term,
)

logger = get_logger()

_LEADING_INTEGER = re.compile(r"^\s*[+-]?\d+")
_STATUS_VALUES = tuple(status.value for status in WorkflowStatus)


def summarize_workflow(records: Sequence[WorkflowRecord]) -> WorkflowSummary:
    """
    Aggregate a scope's records into one status.

    Precedence is fixed: any revoked record wins, then any pending record,
    then a fully approved set. An empty or mixed draft set is a draft.
    """
    if not records:
        return WorkflowSummary(status=WorkflowStatus.DRAFT)

    revoked = next(
        (record for record in records if record.status == WorkflowStatus.REVOKED),
        None,
    )
    if revoked is not None:
        return WorkflowSummary(
            status=WorkflowStatus.REVOKED,
            message=revoked.feedback,
            submitted_date=revoked.submitted_at,
        )

    if any(record.status == WorkflowStatus.PENDING for record in records):
        return WorkflowSummary(
            status=WorkflowStatus.PENDING, submitted_date=records[0].submitted_at
        )

    if all(record.status == WorkflowStatus.APPROVED for record in records):
        return WorkflowSummary(
            status=WorkflowStatus.APPROVED, submitted_date=records[0].submitted_at
        )

    return WorkflowSummary(status=WorkflowStatus.DRAFT)


class ReportWorkflowService(RecordSetService[WorkflowRecord]):
    """
    Teacher to admin approval workflow for report cards.

    One record per (student, class, subject, term, session). A tuple without a
    record is an implicit draft. Submission creates or restarts a record at
    pending, admins move it to approved or revoked, and a reset deletes it so
    the teacher can submit again.
    """

    source = "report_workflow"

    summarize = staticmethod(summarize_workflow)

    def __init__(
        self,
        store: RecordStore,
        notifier: Optional[BaseNotifier] = None,
        broadcaster: Optional[ChangeBroadcaster] = None,
        clock=utc_now,
    ):
        super().__init__(store, broadcaster=broadcaster, clock=clock)
        self.notifier = notifier

    def _parse_entry(self, entry: Dict[str, Any]) -> Optional[WorkflowRecord]:
        # Nulls fall back to field defaults; updatedAt to load time, status to draft
        candidate = {key: value for key, value in entry.items() if value is not None}
        candidate["updatedAt"] = self._timestamp_or_now(entry.get("updatedAt"))
        for field in ("submittedAt", "publishedAt"):
            if field in candidate:
                candidate[field] = self._parse_timestamp(candidate[field])
        if candidate.get("status") not in _STATUS_VALUES:
            candidate["status"] = WorkflowStatus.DRAFT
        try:
            record = WorkflowRecord.model_validate(candidate)
        except ValidationError:
            return None

        if not (record.student_id and record.term and record.session):
            return None

        normalized_term = normalize_term(record.term)
        updates: Dict[str, Any] = {"term": normalized_term}
        if not record.id:
            updates["id"] = build_workflow_record_id(
                record.student_id,
                record.class_name,
                record.subject,
                normalized_term,
                record.session,
            )
        return record.model_copy(update=updates)

    @staticmethod
    def _in_scope(
        record: WorkflowRecord,
        teacher_id: str,
        class_name: str,
        subject: str,
        term: str,
        session: str,
    ) -> bool:
        return (
            record.teacher_id == teacher_id
            and normalize_key_segment(record.class_name) == normalize_key_segment(class_name)
            and normalize_key_segment(record.subject) == normalize_key_segment(subject)
            and record.term == normalize_term(term)
            and normalize_key_segment(record.session) == normalize_key_segment(session)
        )

    def _dispatch_notice(self, notice: Notice) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(notice)
        except Exception as e:
            logger.opt(exception=e).error(
                f"Failed to dispatch notice '{notice.title}': {e}"
            )

    # Queries

    def get_records_for_period(self, term: str, session: str) -> List[WorkflowRecord]:
        normalized_term = normalize_term(term)
        return [
            record
            for record in self.get_records()
            if record.term == normalized_term and record.session == session
        ]

    def get_scope_records(
        self, teacher_id: str, class_name: str, subject: str, term: str, session: str
    ) -> List[WorkflowRecord]:
        return [
            record
            for record in self.get_records()
            if self._in_scope(record, teacher_id, class_name, subject, term, session)
        ]

    def summarize_scope(
        self, teacher_id: str, class_name: str, subject: str, term: str, session: str
    ) -> WorkflowSummary:
        return summarize_workflow(
            self.get_scope_records(teacher_id, class_name, subject, term, session)
        )

    def get_approved_report_keys(self) -> List[str]:
        """
        Lookup keys for every approved report: the student id, its integer
        form when it starts with digits, and `studentId::className`.
        """
        keys: Dict[str, None] = {}
        for record in self.get_records():
            if record.status != WorkflowStatus.APPROVED:
                continue
            keys[record.student_id] = None
            match = _LEADING_INTEGER.match(record.student_id)
            if match:
                keys[str(int(match.group(0)))] = None
            if record.class_name:
                keys[f"{record.student_id}{KEY_SEPARATOR}{record.class_name}"] = None
        return list(keys)

    # Mutations

    @staticmethod
    def _coerce_students(
        students: Iterable[Union[StudentEntry, Mapping[str, Any]]],
    ) -> List[StudentEntry]:
        entries: Dict[str, StudentEntry] = {}
        for student in students:
            try:
                entry = (
                    student
                    if isinstance(student, StudentEntry)
                    else StudentEntry.model_validate(student)
                )
            except ValidationError:
                logger.warning(f"Skipping malformed student entry {student!r}")
                continue
            if not entry.id.strip():
                continue
            entries[entry.id] = entry
        return list(entries.values())

    def submit_for_approval(
        self,
        teacher_id: str,
        teacher_name: str,
        class_name: str,
        subject: str,
        term: str,
        session: str,
        students: Iterable[Union[StudentEntry, Mapping[str, Any]]],
    ) -> List[WorkflowRecord]:
        """Put every listed student's report into pending; returns the full set."""
        entries = self._coerce_students(students)
        if not entries or not has_values(teacher_id, class_name, subject, session):
            logger.debug("Ignoring report submission with no students or missing scope")
            return self.get_records()

        normalized_term = normalize_term(term)
        with self._lock:
            records = self._load_for_update()
            if records is None:
                return []

            timestamp = self._clock()
            existing = {record.id: record for record in records}
            submitted: List[WorkflowRecord] = []
            for student in entries:
                record_id = build_workflow_record_id(
                    student.id, class_name, subject, normalized_term, session
                )
                prior = existing.get(record_id)
                submitted.append(
                    WorkflowRecord(
                        id=record_id,
                        student_id=student.id,
                        student_name=student.name,
                        class_name=class_name,
                        subject=subject,
                        term=normalized_term,
                        session=session,
                        teacher_id=teacher_id,
                        teacher_name=teacher_name,
                        status=WorkflowStatus.PENDING,
                        submitted_at=timestamp,
                        updated_at=timestamp,
                        admin_id=prior.admin_id if prior else None,
                        admin_name=prior.admin_name if prior else None,
                    )
                )

            submitted_ids = {record.id for record in submitted}
            merged = [record for record in records if record.id not in submitted_ids]
            merged.extend(submitted)

            if not self._write_records(merged):
                return records

        logger.info(
            f"{teacher_name} submitted {len(submitted)} {class_name} {subject} "
            f"report(s) for {normalized_term} {session}"
        )
        self._dispatch_notice(
            Notice(
                title="Report cards submitted",
                message=f"{teacher_name} submitted {class_name} {subject} results for approval",
                audience=[AudienceRole.ADMIN, AudienceRole.SUPER_ADMIN],
                type=NoticeType.INFO,
                metadata={
                    "className": class_name,
                    "subject": subject,
                    "term": normalized_term,
                    "session": session,
                },
            )
        )
        return merged

    def update_status(
        self,
        student_id: str,
        class_name: str,
        subject: str,
        term: str,
        session: str,
        status: Union[WorkflowStatus, str],
        admin_id: Optional[str] = None,
        admin_name: Optional[str] = None,
        feedback: Optional[str] = None,
    ) -> List[WorkflowRecord]:
        """Move one record to `status`; a missing record is left as an implicit draft."""
        try:
            next_status = WorkflowStatus(status)
        except ValueError:
            logger.debug(f"Ignoring workflow update with unknown status {status!r}")
            return self.get_records()

        record_id = build_workflow_record_id(student_id, class_name, subject, term, session)
        with self._lock:
            records = self._load_for_update()
            if records is None:
                return []

            current = next((record for record in records if record.id == record_id), None)
            if current is None:
                logger.debug(f"No workflow record {record_id} to update")
                return records

            timestamp = self._clock()
            submitted_at = current.submitted_at
            if next_status != WorkflowStatus.PENDING and submitted_at is None:
                submitted_at = timestamp

            affected = current.model_copy(
                update={
                    "status": next_status,
                    "updated_at": timestamp,
                    "submitted_at": submitted_at,
                    "published_at": (
                        timestamp
                        if next_status == WorkflowStatus.APPROVED
                        else current.published_at
                    ),
                    "admin_id": admin_id if admin_id is not None else current.admin_id,
                    "admin_name": (
                        admin_name if admin_name is not None else current.admin_name
                    ),
                    "feedback": feedback if next_status == WorkflowStatus.REVOKED else None,
                }
            )
            updated = [affected if record.id == record_id else record for record in records]

            if not self._write_records(updated):
                return records

        logger.info(f"Workflow record {record_id} moved to {next_status.value}")

        metadata = {
            "studentId": affected.student_id,
            "className": affected.class_name,
            "subject": affected.subject,
            "term": affected.term,
            "session": affected.session,
        }
        student_label = affected.student_name or affected.student_id
        if next_status == WorkflowStatus.APPROVED:
            self._dispatch_notice(
                Notice(
                    title="Report card published",
                    message=f"{student_label}'s result has been published to parents",
                    audience=[AudienceRole.TEACHER, AudienceRole.PARENT],
                    type=NoticeType.SUCCESS,
                    metadata=metadata,
                )
            )
        elif next_status == WorkflowStatus.REVOKED:
            message = f"{student_label}'s result was returned for correction"
            if affected.feedback:
                message = f"{message}: {affected.feedback}"
            self._dispatch_notice(
                Notice(
                    title="Report card needs revision",
                    message=message,
                    audience=[AudienceRole.TEACHER],
                    type=NoticeType.WARNING,
                    metadata={**metadata, "feedback": affected.feedback},
                )
            )

        return updated

    def reset_submission(
        self, teacher_id: str, class_name: str, subject: str, term: str, session: str
    ) -> List[WorkflowRecord]:
        """Delete a teacher's records for a scope, returning those students to draft."""
        if not has_values(teacher_id, class_name, subject, session):
            logger.debug("Ignoring submission reset with missing scope")
            return self.get_records()

        with self._lock:
            records = self._load_for_update()
            if records is None:
                return []

            remaining = [
                record
                for record in records
                if not self._in_scope(record, teacher_id, class_name, subject, term, session)
            ]
            removed = len(records) - len(remaining)
            if not removed:
                logger.debug(f"No {class_name} {subject} submission to reset for {teacher_id}")
                return records

            if not self._write_records(remaining):
                return records

        logger.info(
            f"Reset {removed} {class_name} {subject} workflow record(s) for teacher {teacher_id}"
        )
        return remaining


def get_report_workflow_service(request: Request) -> ReportWorkflowService:
    """Dependency to get the application's report workflow service"""
    return request.app.state.report_services.workflow
