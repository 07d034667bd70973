from .notice_delivery import deliver_report_notice_task

__all__ = [
    "deliver_report_notice_task",
]
