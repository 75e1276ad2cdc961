# clinic/modules/payments/schemas.py
from __future__ import annotations

import re
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, SecretStr, field_validator

from clinic.core.config import settings
from clinic.modules.payments.models import Currency, PaymentMethod


class ProcessPaymentRequest(BaseModel):
    """
    Sandbox card payment for one appointment.

    Only shape is checked here (16 digits after stripping separators,
    positive amount with cents). Expiry, CVV and holder rules belong to
    `validate_card` so they surface as typed errors.
    """

    appointment_id: UUID
    amount: Decimal = Field(..., gt=0, le=10000, decimal_places=2)
    currency: Currency = Field(default_factory=lambda: Currency(settings.PAYMENT_CURRENCY))
    payment_method: PaymentMethod
    card_number: SecretStr
    card_holder: str = Field(..., max_length=50)
    expiry_date: str = Field(..., examples=["12/30"])
    cvv: SecretStr

    @field_validator("card_number", mode="before")
    @classmethod
    def digits_only(cls, v):
        if isinstance(v, str):
            return re.sub(r"\D", "", v)
        return v

    @field_validator("card_holder", mode="before")
    @classmethod
    def strip_holder(cls, v):
        return v.strip() if isinstance(v, str) else v


class PaymentPublic(BaseModel):
    id: UUID
    appointment_id: UUID
    patient_id: UUID
    amount: Decimal
    currency: str
    payment_method: str
    status: str
    transaction_id: Optional[str] = None
    card_last4: Optional[str] = None
    gateway_message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentResult(BaseModel):
    success: bool
    message: str
    payment: PaymentPublic


class PaymentList(BaseModel):
    items: List[PaymentPublic]
    total: int
