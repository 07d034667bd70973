from celery import Celery
from celery.signals import setup_logging

# Create Celery app
celery = Celery("report_gate")

# Load configuration from app.config.celeryconfig module
celery.config_from_object("app.config.celeryconfig")


@setup_logging.connect
def use_loguru(**kwargs):
    """Keep Celery off the root logger; worker output goes through loguru."""
    from app.utils.logging import get_logger

    get_logger().info("Report notice worker logging routed to loguru")
