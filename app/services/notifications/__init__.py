from .base import BaseNotifier
from .celery_notifier import CeleryNotifier
from .log_notifier import LoggingNotifier
from .registry import NotifierRegistry

__all__ = [
    "BaseNotifier",
    "CeleryNotifier",
    "LoggingNotifier",
    "NotifierRegistry",
]
