import uuid
from datetime import datetime, date
from enum import Enum
from pydantic import BaseModel, ConfigDict, FieldSerializationInfo, field_serializer
from pydantic.alias_generators import to_camel


class CamelCaseBaseModel(BaseModel):
    """
    Base model with camelCase field aliases and automatic serialization.

    This model automatically maps between camelCase (used in client requests,
    responses and persisted record sets) and snake_case (used internally in Python):

    - Input: camelCase keys are converted to snake_case for validation.
    - Internal: snake_case fields are used throughout the Python codebase.
    - Output: call `model_dump(by_alias=True)` to serialize fields back to camelCase.
    - Auto-serialization: UUIDs, Enums and datetimes are converted to strings,
      nested models are dumped with the same options as their parent.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_serializer("*")
    def serialize_any(self, value, info: FieldSerializationInfo):
        """Global serializer for all fields with comprehensive type handling"""

        if value is None:
            return None

        # Nested models keep the caller's alias and None handling
        if isinstance(value, BaseModel):
            return value.model_dump(
                by_alias=info.by_alias, exclude_none=info.exclude_none
            )

        # Handle UUID objects
        if isinstance(value, uuid.UUID):
            return str(value)

        # Handle Enum objects
        if isinstance(value, Enum):
            return value.value

        # Handle datetime objects (must come before date check)
        if isinstance(value, datetime):
            return value.isoformat()

        # Handle date objects
        if isinstance(value, date):
            return value.isoformat()

        # Handle lists, tuples and sets recursively
        if isinstance(value, (list, tuple, set, frozenset)):
            return [self.serialize_any(item, info) for item in value]

        # Handle dictionaries recursively
        if isinstance(value, dict):
            return {key: self.serialize_any(val, info) for key, val in value.items()}

        # Handle other primitive types
        if isinstance(value, (str, int, float, bool)):
            return value

        # For any other object, fall back to its string form
        return str(value)
