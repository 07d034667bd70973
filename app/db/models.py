from typing import Optional
from datetime import datetime
from sqlalchemy import (
    String,
    Text,
    Enum,
    Index,
    DateTime,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
import enum
import uuid


class Base(DeclarativeBase):
    pass


# Enums
class NoticeCategory(enum.Enum):
    ACADEMIC = "academic"
    FINANCE = "finance"
    GENERAL = "general"


class NoticeSeverity(enum.Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# Base model with common audit fields
class AuditMixin:
    """Mixin for common audit fields"""

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )


# Models
class RecordCollection(Base, AuditMixin):
    """A whole record set stored as one JSON document, replaced on every save."""

    __tablename__ = "record_collections"

    name: Mapped[str] = mapped_column(String(100), primary_key=True)
    # JSON stored as Text - serialize/deserialize in application
    payload: Mapped[str] = mapped_column(Text, nullable=False, default="[]")


class ReportNotice(Base, AuditMixin):
    """In-app notice produced by report access and workflow changes."""

    __tablename__ = "report_notices"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    request_id: Mapped[Optional[str]] = mapped_column(String(36))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    # Comma-separated role list, e.g. "teacher,parent"
    audience: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[NoticeCategory] = mapped_column(
        Enum(NoticeCategory), default=NoticeCategory.ACADEMIC, nullable=False
    )
    severity: Mapped[NoticeSeverity] = mapped_column(
        Enum(NoticeSeverity), default=NoticeSeverity.INFO, nullable=False
    )
    # JSON stored as Text - serialize/deserialize in application
    notice_metadata: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("idx_report_notice_created_at", "created_at"),
        Index("idx_report_notice_severity", "severity"),
    )
