from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import ConfigDict, Field

from app.schemas.camel_base_model import CamelCaseBaseModel as BaseModel
from app.utils.datetime_utils import utc_now
from app.utils.term_utils import build_access_key


class AccessSource(str, Enum):
    PAYMENT = "payment"
    MANUAL = "manual"


class AccessGrant(BaseModel):
    """A parent's entitlement to view one student's report for one term/session."""

    model_config = ConfigDict(frozen=True)

    parent_id: str = Field(..., description="Parent identifier")
    student_id: str = Field(..., description="Student identifier")
    term: str = Field(..., description="Canonical term label")
    session: str = Field(..., description="Academic session, e.g. 2024/2025")
    granted_by: AccessSource = Field(..., description="How access was obtained")
    granted_at: datetime = Field(
        default_factory=utc_now, description="When access was granted"
    )

    @property
    def key(self) -> str:
        return build_access_key(self.parent_id, self.student_id, self.term, self.session)


class AccessCheckResult(BaseModel):
    granted: bool = Field(..., description="Whether the parent may view the report")
    record: Optional[AccessGrant] = Field(None, description="The matching grant")


class GrantAccessRequest(BaseModel):
    parent_id: str = Field(..., description="Parent identifier")
    student_id: str = Field(..., description="Student identifier")
    term: str = Field(..., description="Term label, any accepted spelling")
    session: str = Field(..., description="Academic session")
    granted_by: AccessSource = Field(
        AccessSource.MANUAL, description="Grant source, manual for admin overrides"
    )


class RevokeAccessRequest(BaseModel):
    parent_id: str = Field(..., description="Parent identifier")
    student_id: str = Field(..., description="Student identifier")
    term: str = Field(..., description="Term label, any accepted spelling")
    session: str = Field(..., description="Academic session")
