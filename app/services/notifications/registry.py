from typing import Callable, Dict

from .base import BaseNotifier
from .celery_notifier import CeleryNotifier
from .log_notifier import LoggingNotifier
from app.utils.logging import get_logger

logger = get_logger()


class NotifierRegistry:
    """Registry for notifier creation by backend name"""

    # Map backend names to factory functions
    _factories: Dict[str, Callable[[], BaseNotifier]] = {
        "log": LoggingNotifier,
        "celery": CeleryNotifier,
    }

    @classmethod
    def create_notifier(cls, backend: str) -> BaseNotifier:
        """Create notifier instance for backend, falling back to the log notifier"""
        factory = cls._factories.get(backend)
        if factory:
            return factory()

        logger.warning(
            f"No notifier registered for backend '{backend}', using log notifier"
        )
        return LoggingNotifier()

    @classmethod
    def register_notifier(cls, backend: str, factory: Callable[[], BaseNotifier]):
        """Register a custom factory function for a backend"""
        cls._factories[backend] = factory
        logger.info(f"Registered notifier factory for backend: {backend}")

    @classmethod
    def list_registered_backends(cls) -> list:
        """List all registered backend names"""
        return list(cls._factories.keys())

    @classmethod
    def is_registered(cls, backend: str) -> bool:
        """Check if backend is registered"""
        return backend in cls._factories
