"""
Shared schema building blocks.

API payloads use camelCase keys; snake_case input is accepted too.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class OperationWarning(CamelModel):
    """
    Partial failure report.

    The primary change of the operation was applied but a secondary step
    failed; `step` names that step for operator diagnosis.
    """
    step: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class MessageResponse(CamelModel):
    """Plain acknowledgement (deletions)."""
    message: str
    warning: Optional[OperationWarning] = None
