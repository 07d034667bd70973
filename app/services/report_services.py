from typing import Callable, Optional

from sqlalchemy.orm import Session

from app.config.settings import settings
from app.db.record_store import InMemoryRecordStore, RecordStore, SqlRecordStore
from app.services.notifications import BaseNotifier, NotifierRegistry
from app.services.report_access_service import ReportAccessService
from app.services.report_workflow_service import ReportWorkflowService
from app.utils.logging import get_logger

logger = get_logger()


class ReportServices:
    """The access ledger and approval workflow owned by one application instance."""

    def __init__(self, access: ReportAccessService, workflow: ReportWorkflowService):
        self.access = access
        self.workflow = workflow


def _build_store(
    backend: str, collection: str, session_factory: Optional[Callable[[], Session]]
) -> RecordStore:
    if backend == "memory":
        return InMemoryRecordStore(collection)

    if session_factory is None:
        from app.db.session import SessionLocal

        session_factory = SessionLocal
    return SqlRecordStore(session_factory, collection)


def build_report_services(
    store_backend: Optional[str] = None,
    notification_backend: Optional[str] = None,
    session_factory: Optional[Callable[[], Session]] = None,
    notifier: Optional[BaseNotifier] = None,
) -> ReportServices:
    """Wire stores, broadcasters and the notifier according to settings."""
    store_backend = store_backend or settings.RECORD_STORE_BACKEND
    notifier = notifier or NotifierRegistry.create_notifier(
        notification_backend or settings.NOTIFICATION_BACKEND
    )

    access = ReportAccessService(
        _build_store(store_backend, settings.ACCESS_COLLECTION, session_factory)
    )
    workflow = ReportWorkflowService(
        _build_store(store_backend, settings.WORKFLOW_COLLECTION, session_factory),
        notifier=notifier,
    )

    logger.info(
        f"Report services ready (store={store_backend}, notifier={notifier.backend})"
    )
    return ReportServices(access=access, workflow=workflow)
