from typing import Any, Dict, List

from pydantic import ConfigDict, Field

from app.schemas.camel_base_model import CamelCaseBaseModel as BaseModel


class RecordsChangedEvent(BaseModel):
    """Full record set of a service after a successful mutation."""

    model_config = ConfigDict(frozen=True)

    source: str = Field(..., description="Name of the publishing record set")
    records: List[Any] = Field(..., description="Full current record set")

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
