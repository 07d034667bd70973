import json
from datetime import datetime, timezone

import pytest
from unittest.mock import Mock

from app.db.record_store import InMemoryRecordStore
from app.schemas.notification_schemas import AudienceRole, NoticeType
from app.schemas.report_workflow_schemas import (
    StudentEntry,
    WorkflowRecord,
    WorkflowStatus,
)
from app.services.report_workflow_service import (
    ReportWorkflowService,
    summarize_workflow,
)
from app.utils.term_utils import build_workflow_record_id

TEACHER_ID = "T1"
TEACHER_NAME = "Mrs Adeyemi"
CLASS_NAME = "JSS 1"
SUBJECT = "Mathematics"
TERM = "First Term"
SESSION = "2024/2025"


def _record(status: WorkflowStatus, **overrides) -> WorkflowRecord:
    fields = {
        "student_id": "S1",
        "class_name": CLASS_NAME,
        "subject": SUBJECT,
        "term": TERM,
        "session": SESSION,
        "teacher_id": TEACHER_ID,
        "status": status,
    }
    fields.update(overrides)
    return WorkflowRecord(**fields)


def _submit(service: ReportWorkflowService, students, teacher_id: str = TEACHER_ID, **scope):
    return service.submit_for_approval(
        teacher_id,
        scope.get("teacher_name", TEACHER_NAME),
        scope.get("class_name", CLASS_NAME),
        scope.get("subject", SUBJECT),
        scope.get("term", TERM),
        scope.get("session", SESSION),
        students,
    )


def _set_status(service: ReportWorkflowService, student_id: str, status, **kwargs):
    return service.update_status(
        student_id, CLASS_NAME, SUBJECT, TERM, SESSION, status, **kwargs
    )


def _find(records, student_id: str) -> WorkflowRecord:
    return next(record for record in records if record.student_id == student_id)


class TestSummarizeWorkflow:
    """Test scope-level status precedence."""

    def test_empty_scope_is_draft(self):
        summary = summarize_workflow([])

        assert summary.status == WorkflowStatus.DRAFT
        assert summary.message is None
        assert summary.submitted_date is None

    def test_revoked_beats_approved_and_carries_feedback(self):
        submitted = datetime(2025, 1, 2, 9, 0, tzinfo=timezone.utc)
        records = [
            _record(WorkflowStatus.APPROVED, student_id="S2"),
            _record(WorkflowStatus.REVOKED, feedback="fix X", submitted_at=submitted),
        ]

        summary = summarize_workflow(records)

        assert summary.status == WorkflowStatus.REVOKED
        assert summary.message == "fix X"
        assert summary.submitted_date == submitted

    def test_revoked_beats_pending(self):
        records = [
            _record(WorkflowStatus.PENDING, student_id="S2"),
            _record(WorkflowStatus.REVOKED),
        ]

        assert summarize_workflow(records).status == WorkflowStatus.REVOKED

    def test_pending_beats_approved_and_carries_first_submission(self):
        first = datetime(2025, 1, 2, 9, 0, tzinfo=timezone.utc)
        records = [
            _record(WorkflowStatus.APPROVED, submitted_at=first),
            _record(WorkflowStatus.PENDING, student_id="S2"),
        ]

        summary = summarize_workflow(records)

        assert summary.status == WorkflowStatus.PENDING
        assert summary.submitted_date == first

    def test_all_approved_is_approved(self):
        records = [
            _record(WorkflowStatus.APPROVED),
            _record(WorkflowStatus.APPROVED, student_id="S2"),
        ]

        assert summarize_workflow(records).status == WorkflowStatus.APPROVED

    def test_mixed_approved_and_draft_is_draft(self):
        records = [
            _record(WorkflowStatus.APPROVED),
            _record(WorkflowStatus.DRAFT, student_id="S2"),
        ]

        assert summarize_workflow(records).status == WorkflowStatus.DRAFT

    def test_service_exposes_same_rule(self):
        assert ReportWorkflowService.summarize([]).status == WorkflowStatus.DRAFT


class TestSubmitForApproval:
    """Test teacher submissions."""

    def test_submission_creates_pending_records(self, workflow_service):
        records = _submit(
            workflow_service,
            [{"id": "S1", "name": "Ada"}, StudentEntry(id="S2", name="Bola")],
        )

        assert len(records) == 2
        ada = _find(records, "S1")
        assert ada.status == WorkflowStatus.PENDING
        assert ada.student_name == "Ada"
        assert ada.teacher_id == TEACHER_ID
        assert ada.submitted_at == ada.updated_at
        assert ada.id == build_workflow_record_id("S1", CLASS_NAME, SUBJECT, TERM, SESSION)

    def test_submission_normalizes_term_and_accepts_numeric_ids(self, workflow_service):
        records = _submit(workflow_service, [{"id": 42, "name": "Chidi"}], term="1st")

        assert records[0].student_id == "42"
        assert records[0].term == TERM

    def test_duplicate_students_collapse_to_one_record(self, workflow_service):
        records = _submit(workflow_service, [{"id": "S1"}, {"id": "S1", "name": "Ada"}])

        assert len(records) == 1
        assert records[0].student_name == "Ada"

    def test_submission_keeps_records_outside_the_scope(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}], subject="English")
        records = _submit(workflow_service, [{"id": "S1"}])

        assert {record.subject for record in records} == {"English", SUBJECT}

    def test_empty_submission_is_a_noop(self, workflow_service, workflow_store, notifier):
        listener = Mock()
        workflow_service.subscribe(listener)

        assert _submit(workflow_service, []) == []
        assert _submit(workflow_service, [{"id": "  "}]) == []

        assert workflow_store.raw is None
        listener.assert_not_called()
        assert notifier.notices == []

    @pytest.mark.parametrize("missing", ["teacher_id", "class_name", "subject", "session"])
    def test_submission_with_missing_scope_is_a_noop(self, workflow_service, missing):
        scope = {
            "teacher_id": TEACHER_ID,
            "class_name": CLASS_NAME,
            "subject": SUBJECT,
            "session": SESSION,
        }
        scope[missing] = ""
        teacher_id = scope.pop("teacher_id")

        assert _submit(workflow_service, [{"id": "S1"}], teacher_id=teacher_id, **scope) == []

    def test_submission_notifies_admins(self, workflow_service, notifier):
        _submit(workflow_service, [{"id": "S1"}])

        assert len(notifier.notices) == 1
        notice = notifier.notices[0]
        assert notice.audience == [AudienceRole.ADMIN, AudienceRole.SUPER_ADMIN]
        assert notice.type == NoticeType.INFO
        assert TEACHER_NAME in notice.message
        assert CLASS_NAME in notice.message
        assert SUBJECT in notice.message

    def test_submission_broadcasts_full_set(self, workflow_service):
        events = []
        workflow_service.subscribe(events.append)

        _submit(workflow_service, [{"id": "S1"}, {"id": "S2"}])

        assert len(events) == 1
        assert events[0].source == "report_workflow"
        assert len(events[0].records) == 2

    def test_resubmission_keeps_reviewer_and_clears_feedback(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}])
        _set_status(
            workflow_service,
            "S1",
            "revoked",
            admin_id="A1",
            admin_name="Mr Okafor",
            feedback="fix X",
        )

        records = _submit(workflow_service, [{"id": "S1"}])

        assert len(records) == 1
        assert records[0].status == WorkflowStatus.PENDING
        assert records[0].feedback is None
        assert records[0].admin_id == "A1"
        assert records[0].admin_name == "Mr Okafor"

    def test_failing_notifier_does_not_break_submission(
        self, workflow_store, failing_notifier, clock
    ):
        service = ReportWorkflowService(workflow_store, notifier=failing_notifier, clock=clock)

        records = _submit(service, [{"id": "S1"}])

        assert records[0].status == WorkflowStatus.PENDING
        assert len(service.get_records()) == 1


class TestUpdateStatus:
    """Test admin review transitions."""

    def test_approval_sets_published_at_and_admin(self, workflow_service, notifier):
        _submit(workflow_service, [{"id": "S1", "name": "Ada"}])

        records = _set_status(
            workflow_service, "S1", WorkflowStatus.APPROVED, admin_id="A1", admin_name="Mr Okafor"
        )

        record = _find(records, "S1")
        assert record.status == WorkflowStatus.APPROVED
        assert record.published_at is not None
        assert record.published_at == record.updated_at
        assert record.admin_id == "A1"

        notice = notifier.notices[-1]
        assert notice.audience == [AudienceRole.TEACHER, AudienceRole.PARENT]
        assert notice.type == NoticeType.SUCCESS
        assert "Ada" in notice.message

    def test_revocation_records_feedback_and_warns_teacher(self, workflow_service, notifier):
        _submit(workflow_service, [{"id": "S1"}])

        records = _set_status(workflow_service, "S1", "revoked", feedback="fix X")

        assert records[0].status == WorkflowStatus.REVOKED
        assert records[0].feedback == "fix X"
        notice = notifier.notices[-1]
        assert notice.audience == [AudienceRole.TEACHER]
        assert notice.type == NoticeType.WARNING
        assert "fix X" in notice.message

    def test_published_at_survives_later_transitions(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}])
        approved = _set_status(workflow_service, "S1", "approved")[0]

        revoked = _set_status(workflow_service, "S1", "revoked", feedback="typo")[0]

        assert revoked.published_at == approved.published_at
        assert revoked.updated_at > approved.updated_at

    def test_leaving_revoked_clears_feedback(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}])
        _set_status(workflow_service, "S1", "revoked", feedback="fix X")

        records = _set_status(workflow_service, "S1", "approved", feedback="ignored")

        assert records[0].feedback is None

    def test_admin_fields_kept_when_not_supplied(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}])
        _set_status(workflow_service, "S1", "revoked", admin_id="A1", admin_name="Mr Okafor")

        records = _set_status(workflow_service, "S1", "approved")

        assert records[0].admin_id == "A1"
        assert records[0].admin_name == "Mr Okafor"

    def test_lookup_ignores_case_spacing_and_term_spelling(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}])

        records = workflow_service.update_status(
            "S1", "jss  1", "MATHEMATICS", "1st term", SESSION, "approved"
        )

        assert records[0].status == WorkflowStatus.APPROVED

    def test_missing_record_is_left_as_implicit_draft(self, workflow_service, notifier):
        _submit(workflow_service, [{"id": "S1"}])
        listener = Mock()
        workflow_service.subscribe(listener)
        notices_before = len(notifier.notices)

        records = _set_status(workflow_service, "S9", "approved")

        assert [record.student_id for record in records] == ["S1"]
        listener.assert_not_called()
        assert len(notifier.notices) == notices_before

    def test_unknown_status_is_ignored(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}])

        records = _set_status(workflow_service, "S1", "archived")

        assert records[0].status == WorkflowStatus.PENDING

    def test_legacy_record_without_submission_time_is_backfilled(self, clock):
        raw = json.dumps(
            [
                {
                    "studentId": "S1",
                    "className": CLASS_NAME,
                    "subject": SUBJECT,
                    "term": "first",
                    "session": SESSION,
                    "teacherId": TEACHER_ID,
                    "status": "pending",
                    "updatedAt": "2024-12-01T10:00:00+00:00",
                }
            ]
        )
        service = ReportWorkflowService(InMemoryRecordStore("workflow", raw=raw), clock=clock)

        records = _set_status(service, "S1", "approved")

        assert records[0].submitted_at is not None
        assert records[0].id == build_workflow_record_id("S1", CLASS_NAME, SUBJECT, TERM, SESSION)

    def test_legacy_record_with_null_fields_is_kept(self, clock):
        raw = json.dumps(
            [
                {
                    "studentId": "S1",
                    "studentName": None,
                    "className": CLASS_NAME,
                    "subject": SUBJECT,
                    "term": "1st term",
                    "session": SESSION,
                    "teacherId": TEACHER_ID,
                    "status": None,
                    "updatedAt": None,
                    "submittedAt": "not a date",
                    "feedback": None,
                }
            ]
        )
        service = ReportWorkflowService(InMemoryRecordStore("workflow", raw=raw), clock=clock)

        records = service.get_records()

        assert len(records) == 1
        assert records[0].status == WorkflowStatus.DRAFT
        assert records[0].student_name == ""
        assert records[0].term == TERM
        assert records[0].submitted_at is None
        assert records[0].updated_at.year == 2025

    def test_legacy_record_without_student_is_dropped(self, clock):
        raw = json.dumps(
            [
                {"studentId": None, "term": TERM, "session": SESSION, "status": "pending"},
                {"studentId": "S2", "term": TERM, "session": None, "status": "pending"},
            ]
        )
        service = ReportWorkflowService(InMemoryRecordStore("workflow", raw=raw), clock=clock)

        assert service.get_records() == []


class TestResetSubmission:
    """Test returning a scope to draft."""

    def test_reset_deletes_only_the_teachers_scope(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}, {"id": "S2"}])
        _submit(workflow_service, [{"id": "S3"}], teacher_id="T2")
        _submit(workflow_service, [{"id": "S1"}], subject="English")

        remaining = workflow_service.reset_submission(
            TEACHER_ID, CLASS_NAME, SUBJECT, TERM, SESSION
        )

        assert {(record.student_id, record.subject) for record in remaining} == {
            ("S3", SUBJECT),
            ("S1", "English"),
        }
        summary = workflow_service.summarize_scope(
            TEACHER_ID, CLASS_NAME, SUBJECT, TERM, SESSION
        )
        assert summary.status == WorkflowStatus.DRAFT

    def test_reset_matches_class_and_subject_loosely(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}])

        remaining = workflow_service.reset_submission(
            TEACHER_ID, "jss 1", "mathematics", "first", SESSION
        )

        assert remaining == []

    def test_reset_with_nothing_to_remove_does_not_broadcast(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}])
        listener = Mock()
        workflow_service.subscribe(listener)

        workflow_service.reset_submission("T2", CLASS_NAME, SUBJECT, TERM, SESSION)

        listener.assert_not_called()
        assert len(workflow_service.get_records()) == 1


class TestRoundTrip:
    """Submit, approve, revoke, reset and submit again."""

    def test_full_cycle_restarts_at_pending(self, workflow_service):
        first = _submit(workflow_service, [{"id": "S1"}])[0]
        _set_status(workflow_service, "S1", "approved", admin_id="A1")
        _set_status(workflow_service, "S1", "revoked", feedback="fix X")
        assert (
            workflow_service.summarize_scope(TEACHER_ID, CLASS_NAME, SUBJECT, TERM, SESSION).message
            == "fix X"
        )

        workflow_service.reset_submission(TEACHER_ID, CLASS_NAME, SUBJECT, TERM, SESSION)
        records = _submit(workflow_service, [{"id": "S1"}])

        assert len(records) == 1
        assert records[0].status == WorkflowStatus.PENDING
        assert records[0].feedback is None
        assert records[0].published_at is None
        assert records[0].submitted_at > first.submitted_at


class TestQueries:
    """Test read-side helpers."""

    def test_records_for_period(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}])
        _submit(workflow_service, [{"id": "S2"}], term="Second Term")

        records = workflow_service.get_records_for_period("second", SESSION)

        assert [record.student_id for record in records] == ["S2"]
        assert workflow_service.get_records_for_period(TERM, "2023/2024") == []

    def test_scope_summary_is_pending_after_submission(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}, {"id": "S2"}])
        _set_status(workflow_service, "S1", "approved")

        summary = workflow_service.summarize_scope(
            TEACHER_ID, CLASS_NAME, SUBJECT, TERM, SESSION
        )

        assert summary.status == WorkflowStatus.PENDING
        assert summary.submitted_date is not None

    def test_approved_report_keys(self, workflow_service):
        _submit(workflow_service, [{"id": "007"}, {"id": "ABC"}, {"id": "S3"}])
        _set_status(workflow_service, "007", "approved")
        _set_status(workflow_service, "ABC", "approved")

        keys = workflow_service.get_approved_report_keys()

        assert keys == ["007", "7", "007::JSS 1", "ABC", "ABC::JSS 1"]

    def test_approved_keys_empty_without_approvals(self, workflow_service):
        _submit(workflow_service, [{"id": "S1"}])

        assert workflow_service.get_approved_report_keys() == []
