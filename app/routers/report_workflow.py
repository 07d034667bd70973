from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from app.schemas.report_workflow_schemas import (
    ResetSubmissionRequest,
    SubmitReportCardsRequest,
    UpdateWorkflowStatusRequest,
)
from app.services.report_workflow_service import (
    ReportWorkflowService,
    get_report_workflow_service,
)
from app.utils.responses import ResponseBuilder

report_workflow_router = APIRouter()


def _dump(records) -> list:
    return [record.model_dump(by_alias=True, exclude_none=True) for record in records]


def _touched(before, after, field: str) -> list:
    """Records in `after` that are new, or whose `field` moved since `before`."""
    previous = {record.id: getattr(record, field) for record in before}
    return [
        record
        for record in after
        if record.id not in previous or previous[record.id] != getattr(record, field)
    ]


@report_workflow_router.get(
    "",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Get workflow records for a term",
)
async def get_period_records(
    request: Request,
    term: Annotated[str, Query(description="Term label")],
    session: Annotated[str, Query(description="Academic session")],
    workflow_service: ReportWorkflowService = Depends(get_report_workflow_service),
):
    records = workflow_service.get_records_for_period(term, session)
    return ResponseBuilder.success(
        request=request,
        data=_dump(records),
        message=f"Retrieved {len(records)} workflow record{'s' if len(records) != 1 else ''}",
    )


@report_workflow_router.get(
    "/summary",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Get a submission scope summary",
    description="Aggregate status of a teacher's class and subject submission for a term.",
)
async def get_scope_summary(
    request: Request,
    teacher_id: Annotated[str, Query(alias="teacherId", description="Teacher identifier")],
    class_name: Annotated[str, Query(alias="className", description="Class name")],
    subject: Annotated[str, Query(description="Subject")],
    term: Annotated[str, Query(description="Term label")],
    session: Annotated[str, Query(description="Academic session")],
    workflow_service: ReportWorkflowService = Depends(get_report_workflow_service),
):
    summary = workflow_service.summarize_scope(teacher_id, class_name, subject, term, session)
    return ResponseBuilder.success(
        request=request,
        data=summary.model_dump(by_alias=True, exclude_none=True),
        message=f"Submission is {summary.status.value}",
    )


@report_workflow_router.get(
    "/approved-keys",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Get approved report lookup keys",
)
async def get_approved_keys(
    request: Request,
    workflow_service: ReportWorkflowService = Depends(get_report_workflow_service),
):
    keys = workflow_service.get_approved_report_keys()
    return ResponseBuilder.success(
        request=request,
        data=keys,
        message=f"Retrieved {len(keys)} approved report key{'s' if len(keys) != 1 else ''}",
    )


@report_workflow_router.post(
    "/submit",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Submit report cards for approval",
)
async def submit_for_approval(
    request: Request,
    body: SubmitReportCardsRequest,
    workflow_service: ReportWorkflowService = Depends(get_report_workflow_service),
):
    before = workflow_service.get_records()
    records = workflow_service.submit_for_approval(
        body.teacher_id,
        body.teacher_name,
        body.class_name,
        body.subject,
        body.term,
        body.session,
        body.students,
    )
    submitted = _touched(before, records, "submitted_at")
    summary = workflow_service.summarize_scope(
        body.teacher_id, body.class_name, body.subject, body.term, body.session
    )
    return ResponseBuilder.success(
        request=request,
        data={
            "submitted": len(submitted),
            "summary": summary.model_dump(by_alias=True, exclude_none=True),
            "records": _dump(records),
        },
        message=(
            f"Submitted {len(submitted)} report card{'s' if len(submitted) != 1 else ''} for approval"
            if submitted
            else "No report cards were submitted"
        ),
    )


@report_workflow_router.patch(
    "/status",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Update a report card's approval status",
)
async def update_status(
    request: Request,
    body: UpdateWorkflowStatusRequest,
    workflow_service: ReportWorkflowService = Depends(get_report_workflow_service),
):
    before = workflow_service.get_records()
    records = workflow_service.update_status(
        body.student_id,
        body.class_name,
        body.subject,
        body.term,
        body.session,
        body.status,
        admin_id=body.admin_id,
        admin_name=body.admin_name,
        feedback=body.feedback,
    )
    updated = bool(_touched(before, records, "updated_at"))
    return ResponseBuilder.success(
        request=request,
        data={"updated": updated, "records": _dump(records)},
        message=(
            f"Report card status set to {body.status.value}"
            if updated
            else "No submitted report card matches this student, class, subject and term"
        ),
    )


@report_workflow_router.post(
    "/reset",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Reset a submission back to draft",
)
async def reset_submission(
    request: Request,
    body: ResetSubmissionRequest,
    workflow_service: ReportWorkflowService = Depends(get_report_workflow_service),
):
    before = workflow_service.get_records()
    records = workflow_service.reset_submission(
        body.teacher_id, body.class_name, body.subject, body.term, body.session
    )
    removed = len(before) - len(records)
    return ResponseBuilder.success(
        request=request,
        data={"removed": removed, "records": _dump(records)},
        message=(
            f"Reset {removed} report card{'s' if removed != 1 else ''} to draft"
            if removed
            else "No submission to reset"
        ),
    )
