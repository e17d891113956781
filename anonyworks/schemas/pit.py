from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, field_validator
from uuid import UUID
from datetime import datetime

from anonyworks.core.security import ensure_aware


# Request schemas
class PitCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=255, description="Pit title (defaults to 'Anonymous Feedback')")


class MessageCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000, description="Anonymous feedback text")
    is_professional: bool = Field(False, description="Rewrite the message in Professional Mode before storing")


# Response schemas
class PitOut(BaseModel):
    model_config: ConfigDict = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    is_active: bool
    expires_at: datetime
    created_at: datetime

    # some stores (SQLite) hand back naive datetimes; everything is stored as UTC
    @field_validator("expires_at", "created_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class PitListOut(BaseModel):
    pits: List[PitOut]


class PitMessageOut(BaseModel):
    model_config: ConfigDict = ConfigDict(from_attributes=True)

    id: UUID
    pit_id: UUID
    original_message: str
    processed_message: Optional[str] = None
    is_professional: bool
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def as_utc(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class PitMessageListOut(BaseModel):
    messages: List[PitMessageOut]
