from datetime import datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import ConfigDict, Field, field_validator

from app.schemas.camel_base_model import CamelCaseBaseModel as BaseModel
from app.utils.datetime_utils import utc_now


class WorkflowStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REVOKED = "revoked"


class WorkflowRecord(BaseModel):
    """Approval state of one student's report for one class/subject/term/session."""

    model_config = ConfigDict(frozen=True)

    id: str = Field("", description="Deterministic record key")
    student_id: str = Field(..., description="Student identifier")
    student_name: str = Field("", description="Student display name")
    class_name: str = Field("", description="Class the report belongs to")
    subject: str = Field("", description="Subject the report covers")
    term: str = Field(..., description="Canonical term label")
    session: str = Field(..., description="Academic session")
    teacher_id: str = Field("", description="Submitting teacher identifier")
    teacher_name: str = Field("", description="Submitting teacher name")
    status: WorkflowStatus = Field(WorkflowStatus.DRAFT, description="Workflow state")
    submitted_at: Optional[datetime] = Field(None, description="Last submission time")
    updated_at: datetime = Field(default_factory=utc_now, description="Last change")
    published_at: Optional[datetime] = Field(
        None, description="When the report was last moved to approved"
    )
    feedback: Optional[str] = Field(None, description="Revocation feedback")
    admin_id: Optional[str] = Field(None, description="Reviewing admin identifier")
    admin_name: Optional[str] = Field(None, description="Reviewing admin name")


class WorkflowSummary(BaseModel):
    status: WorkflowStatus = Field(..., description="Aggregate scope status")
    message: Optional[str] = Field(None, description="Feedback for revoked scopes")
    submitted_date: Optional[datetime] = Field(None, description="Submission time")


class StudentEntry(BaseModel):
    id: str = Field(..., description="Student identifier")
    name: str = Field("", description="Student display name")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_numeric_id(cls, value: Union[str, int]) -> str:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class SubmitReportCardsRequest(BaseModel):
    teacher_id: str = Field(..., description="Submitting teacher identifier")
    teacher_name: str = Field(..., description="Submitting teacher name")
    class_name: str = Field(..., description="Class name")
    subject: str = Field(..., description="Subject")
    term: str = Field(..., description="Term label, any accepted spelling")
    session: str = Field(..., description="Academic session")
    students: List[StudentEntry] = Field(..., description="Students being submitted")


class UpdateWorkflowStatusRequest(BaseModel):
    student_id: str = Field(..., description="Student identifier")
    class_name: str = Field(..., description="Class name")
    subject: str = Field(..., description="Subject")
    term: str = Field(..., description="Term label, any accepted spelling")
    session: str = Field(..., description="Academic session")
    status: WorkflowStatus = Field(..., description="New workflow state")
    admin_id: Optional[str] = Field(None, description="Reviewing admin identifier")
    admin_name: Optional[str] = Field(None, description="Reviewing admin name")
    feedback: Optional[str] = Field(None, description="Feedback for revocations")


class ResetSubmissionRequest(BaseModel):
    teacher_id: str = Field(..., description="Submitting teacher identifier")
    class_name: str = Field(..., description="Class name")
    subject: str = Field(..., description="Subject")
    term: str = Field(..., description="Term label, any accepted spelling")
    session: str = Field(..., description="Academic session")
