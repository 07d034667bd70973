import json
from typing import Any, Dict

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.celery import celery
from app.db.models import NoticeCategory, NoticeSeverity, ReportNotice
from app.db.session import SessionLocal
from app.schemas.notification_schemas import Notice
from app.utils.logging import get_logger


def _category(value: str) -> NoticeCategory:
    try:
        return NoticeCategory(value)
    except ValueError:
        return NoticeCategory.GENERAL


def save_report_notice(
    db: Session, notice_payload: Dict[str, Any], request_id: str = "app"
) -> ReportNotice:
    """Validate a serialized notice and persist it as a `report_notices` row."""
    notice = Notice.model_validate(notice_payload)

    row = ReportNotice(
        request_id=request_id,
        title=notice.title,
        message=notice.message,
        audience=",".join(role.value for role in notice.audience),
        category=_category(notice.category),
        severity=NoticeSeverity(notice.type.value),
        notice_metadata=json.dumps(notice.metadata) if notice.metadata else None,
    )
    db.add(row)
    db.commit()
    return row


@celery.task(bind=True, max_retries=3, default_retry_delay=60)
def deliver_report_notice_task(self, request_id: str, notice: Dict[str, Any]):
    """
    Celery task that stores a report notice for in-app display.

    Args:
        request_id: The request ID from the originating HTTP request
        notice: Notice serialized with camelCase keys
    """
    logger = get_logger().bind(request_id=request_id)

    try:
        with SessionLocal() as db:
            row = save_report_notice(db, notice, request_id)

        logger.info(f"Stored report notice {row.id}: {row.title}")
        return {"success": True, "notice_id": row.id, "request_id": request_id}

    except SQLAlchemyError as e:
        logger.error(f"Failed to store report notice, retrying: {e}")
        raise self.retry(exc=e)
