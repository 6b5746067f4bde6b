from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from docflow.models.enums import ChangeRequestStatus, ChangeRequestType, Priority


class ChangeRequestCreate(BaseModel):
    document_id: UUID
    requester_id: UUID
    request_type: str
    priority: str = "medium"
    description: str = Field(min_length=1)


class ChangeRequestStatusUpdate(BaseModel):
    status: str


class ChangeRequestRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    requester_id: UUID
    request_type: ChangeRequestType
    status: ChangeRequestStatus
    priority: Priority
    description: str
    document_name: str | None = None
    requester_name: str | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None
