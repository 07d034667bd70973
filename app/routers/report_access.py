from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Request, status

from app.schemas.report_access_schemas import GrantAccessRequest, RevokeAccessRequest
from app.services.report_access_service import (
    ReportAccessService,
    get_report_access_service,
)
from app.utils.responses import ResponseBuilder

report_access_router = APIRouter()


def _dump(records) -> list:
    return [record.model_dump(by_alias=True, exclude_none=True) for record in records]


@report_access_router.get(
    "",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Get report access for a term",
    description="Retrieve every parent access grant for one term and session.",
)
async def get_period_access(
    request: Request,
    term: Annotated[str, Query(description="Term label")],
    session: Annotated[str, Query(description="Academic session")],
    access_service: ReportAccessService = Depends(get_report_access_service),
):
    records = access_service.sync_access(term, session)
    return ResponseBuilder.success(
        request=request,
        data=_dump(records),
        message=f"Retrieved {len(records)} access grant{'s' if len(records) != 1 else ''}",
    )


@report_access_router.get(
    "/all",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Get all report access grants",
)
async def get_all_access(
    request: Request,
    access_service: ReportAccessService = Depends(get_report_access_service),
):
    records = access_service.get_records()
    return ResponseBuilder.success(
        request=request,
        data=_dump(records),
        message=f"Retrieved {len(records)} access grant{'s' if len(records) != 1 else ''}",
    )


@report_access_router.get(
    "/check",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Check whether a parent may view a report",
)
async def check_access(
    request: Request,
    parent_id: Annotated[str, Query(alias="parentId", description="Parent identifier")],
    student_id: Annotated[str, Query(alias="studentId", description="Student identifier")],
    term: Annotated[str, Query(description="Term label")],
    session: Annotated[str, Query(description="Academic session")],
    access_service: ReportAccessService = Depends(get_report_access_service),
):
    result = access_service.has_access(parent_id, student_id, term, session)
    return ResponseBuilder.success(
        request=request,
        data=result.model_dump(by_alias=True, exclude_none=True),
        message="Access granted" if result.granted else "Access not granted",
    )


@report_access_router.get(
    "/parents/{parent_id}",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Get a parent's report access",
    description="Retrieve all grants held by a parent, optionally for one term and session.",
)
async def get_parent_access(
    request: Request,
    parent_id: Annotated[str, Path(description="Parent identifier")],
    term: Annotated[Optional[str], Query(description="Term label")] = None,
    session: Annotated[Optional[str], Query(description="Academic session")] = None,
    access_service: ReportAccessService = Depends(get_report_access_service),
):
    records = access_service.list_parent_access(parent_id, term=term, session=session)
    return ResponseBuilder.success(
        request=request,
        data=_dump(records),
        message=f"Retrieved {len(records)} access grant{'s' if len(records) != 1 else ''} for parent {parent_id}",
    )


@report_access_router.post(
    "/grant",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Grant report access",
    description="Grant or replace a parent's access to a student's report for a term.",
)
async def grant_access(
    request: Request,
    body: GrantAccessRequest,
    access_service: ReportAccessService = Depends(get_report_access_service),
):
    records = access_service.grant_access(
        body.parent_id, body.student_id, body.term, body.session, body.granted_by
    )
    result = access_service.has_access(
        body.parent_id, body.student_id, body.term, body.session
    )
    return ResponseBuilder.success(
        request=request,
        data={
            "granted": result.granted,
            "records": _dump(records),
        },
        message="Access granted" if result.granted else "No access was granted",
    )


@report_access_router.post(
    "/revoke",
    response_model=None,
    status_code=status.HTTP_200_OK,
    summary="Revoke report access",
)
async def revoke_access(
    request: Request,
    body: RevokeAccessRequest,
    access_service: ReportAccessService = Depends(get_report_access_service),
):
    held = access_service.has_access(
        body.parent_id, body.student_id, body.term, body.session
    ).granted
    records = access_service.revoke_access(
        body.parent_id, body.student_id, body.term, body.session
    )
    revoked = held and not access_service.has_access(
        body.parent_id, body.student_id, body.term, body.session
    ).granted
    return ResponseBuilder.success(
        request=request,
        data={"revoked": revoked, "records": _dump(records)},
        message="Access revoked" if revoked else "No matching access to revoke",
    )
