"""
Cache entry models.

Field names serialize with the camelCase aliases used by the durable blob
and the export snapshot (expiresAt, patientId, ...). Python code uses the
snake_case attribute names.
"""

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class EntryType(str, Enum):
    DRAFT = "draft"
    COMPLETED = "completed"
    TEMPLATE = "template"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class EntryMetadata(BaseModel):
    """Optional tags used only by the query engine"""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    patient_id: Optional[str] = Field(None, alias="patientId")
    form_type: Optional[str] = Field(None, alias="formType")
    flow_route: Optional[str] = Field(None, alias="flowRoute")
    step: Optional[int] = None
    template_name: Optional[str] = Field(None, alias="templateName")


class CacheEntry(BaseModel):
    """One cached record with its expiry and query tags"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Key of the entry in the table")
    timestamp: int = Field(..., description="Last-touched time, epoch ms")
    data: Any = Field(None, description="JSON-safe copy of the payload")
    type: EntryType = EntryType.DRAFT
    priority: Priority = Priority.MEDIUM
    expires_at: Optional[int] = Field(None, alias="expiresAt")
    metadata: Optional[EntryMetadata] = None

    def is_expired(self, now: int) -> bool:
        """An entry is expired strictly after its expiresAt instant."""
        return self.expires_at is not None and now > self.expires_at

    def to_wire(self) -> Dict[str, Any]:
        """Dump in the durable/export wire format."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
