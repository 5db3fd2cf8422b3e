"""Business number schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from wacrm.models.whatsapp_number import NumberStatus


class WhatsAppNumberCreate(BaseModel):
    """Schema for registering a business number."""

    number: str = Field(..., pattern=r"^\+\d{10,15}$", description="E.164 number")
    display_name: str = Field(..., min_length=2, max_length=255)
    phone_number_id: str | None = Field(
        None, max_length=64, description="Cloud API phone number id"
    )


class WhatsAppNumberUpdate(BaseModel):
    """Schema for updating a business number."""

    display_name: str | None = Field(None, min_length=2, max_length=255)
    phone_number_id: str | None = Field(None, max_length=64)
    status: NumberStatus | None = None


class WhatsAppNumberDetail(BaseModel):
    """Schema for business number details."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    account_id: UUID
    number: str
    display_name: str
    phone_number_id: str | None
    status: NumberStatus
    created_at: datetime
