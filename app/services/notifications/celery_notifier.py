from app.schemas.notification_schemas import Notice
from app.services.notifications.base import BaseNotifier
from app.utils.context import get_request_id


class CeleryNotifier(BaseNotifier):
    """Enqueues notices for the worker, which stores them for in-app display."""

    backend = "celery"

    def notify(self, notice: Notice) -> None:
        from app.tasks.notice_delivery import deliver_report_notice_task

        # Fail fast when the broker is down
        deliver_report_notice_task.apply_async(  # type: ignore
            kwargs={
                "request_id": get_request_id() or "app",
                "notice": notice.model_dump(by_alias=True),
            },
            retry=False,
        )
