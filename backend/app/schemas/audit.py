"""
Audit trail schemas.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import Field

from backend.app.schemas.common import CamelModel


class AuditLogResponse(CamelModel):
    id: str
    action: str
    entity_type: str
    entity_id: str
    meta_data: Optional[Dict[str, Any]] = Field(None, alias="metadata")
    correlation_id: Optional[str] = None
    timestamp: datetime
