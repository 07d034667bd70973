from enum import Enum
from typing import Any, Dict, List

from pydantic import Field

from app.schemas.camel_base_model import CamelCaseBaseModel as BaseModel


class AudienceRole(str, Enum):
    ADMIN = "admin"
    SUPER_ADMIN = "super-admin"
    TEACHER = "teacher"
    PARENT = "parent"


class NoticeType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class Notice(BaseModel):
    """Human-readable notice addressed to one or more role audiences."""

    title: str = Field(..., description="Notice headline")
    message: str = Field(..., description="Notice body")
    audience: List[AudienceRole] = Field(
        default_factory=lambda: [AudienceRole.ADMIN, AudienceRole.SUPER_ADMIN],
        description="Roles that should see the notice",
    )
    category: str = Field("academic", description="Notice category")
    type: NoticeType = Field(NoticeType.INFO, description="Notice severity")
    metadata: Dict[str, Any] = Field(
        default_factory=dict, description="Structured context for the notice"
    )
