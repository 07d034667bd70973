from app.schemas.notification_schemas import Notice
from app.services.notifications.base import BaseNotifier
from app.utils.logging import get_logger


class LoggingNotifier(BaseNotifier):
    """Writes notices to the application log; used when no broker is configured."""

    backend = "log"

    def notify(self, notice: Notice) -> None:
        audience = ",".join(role.value for role in notice.audience)
        get_logger().info(
            f"[{notice.type.value}] {notice.title}: {notice.message} (audience={audience})"
        )
