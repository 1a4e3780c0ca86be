from __future__ import annotations

from pydantic import BaseModel, Field

from ..store.models import Business, Payment


class PaymentRequest(BaseModel):
    business_id: str = Field(..., min_length=1)
    new_level: int


class PreferenceResponse(BaseModel):
    preference_id: str
    amount: int
    tier_name: str


class ConfirmationResponse(BaseModel):
    message: str
    business: Business
    payment: Payment
