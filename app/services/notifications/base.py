from abc import ABC, abstractmethod

from app.schemas.notification_schemas import Notice


class BaseNotifier(ABC):
    """
    Fire-and-forget delivery of report notices to role audiences.

    Callers issue `notify` outside their own critical sections and treat any
    exception as a logged, non-fatal delivery failure.
    """

    backend: str = "base"

    @abstractmethod
    def notify(self, notice: Notice) -> None:
        pass
