from fastapi import APIRouter

from app.routers.report_access import report_access_router
from app.routers.report_workflow import report_workflow_router

main_router = APIRouter()

# Include domain-based routers
main_router.include_router(
    report_access_router, prefix="/report-access", tags=["Report Access"]
)
main_router.include_router(
    report_workflow_router, prefix="/report-workflow", tags=["Report Workflow"]
)
