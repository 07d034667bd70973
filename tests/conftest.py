import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator, List

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.models import Base
from app.db.record_store import InMemoryRecordStore
from app.main import create_application
from app.schemas.notification_schemas import Notice
from app.services.notifications.base import BaseNotifier
from app.services.report_access_service import ReportAccessService
from app.services.report_services import ReportServices
from app.services.report_workflow_service import ReportWorkflowService


# Test database setup
TEST_DATABASE_URL = "sqlite:///:memory:"


class FakeClock:
    """Deterministic clock that advances one second per reading."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current = self.current + timedelta(seconds=1)
        return value


class RecordingNotifier(BaseNotifier):
    backend = "recording"

    def __init__(self):
        self.notices: List[Notice] = []

    def notify(self, notice: Notice) -> None:
        self.notices.append(notice)


class FailingNotifier(BaseNotifier):
    backend = "failing"

    def notify(self, notice: Notice) -> None:
        raise RuntimeError("notification channel is down")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 1, 6, 8, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def failing_notifier() -> FailingNotifier:
    return FailingNotifier()


@pytest.fixture
def access_store() -> InMemoryRecordStore:
    return InMemoryRecordStore("report_card_access")


@pytest.fixture
def workflow_store() -> InMemoryRecordStore:
    return InMemoryRecordStore("report_card_workflow")


@pytest.fixture
def access_service(access_store, clock) -> ReportAccessService:
    return ReportAccessService(access_store, clock=clock)


@pytest.fixture
def workflow_service(workflow_store, notifier, clock) -> ReportWorkflowService:
    return ReportWorkflowService(workflow_store, notifier=notifier, clock=clock)


@pytest.fixture
def test_engine():
    """Create an in-memory SQLite engine shared across connections."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(bind=test_engine, class_=Session, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session
        session.rollback()


@pytest.fixture
def report_services(access_service, workflow_service) -> ReportServices:
    return ReportServices(access=access_service, workflow=workflow_service)


@pytest.fixture
def client(report_services) -> TestClient:
    return TestClient(create_application(services=report_services))
