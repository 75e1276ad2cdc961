# clinic/modules/appointments/schemas.py
from __future__ import annotations

import datetime as dt
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class AppointmentCreateRequest(BaseModel):
    """
    Payload to book an appointment.
    - patient_id comes from the current user, never from the client.
    - date and time stay strings here; the validator owns their rules.
    """

    doctor_id: UUID
    appointment_date: str = Field(..., examples=["2025-10-16"])
    appointment_time: str = Field(..., examples=["09:30"])
    reason: str = Field(..., min_length=10, max_length=500)
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("reason", mode="before")
    @classmethod
    def strip_reason(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("notes", mode="before")
    @classmethod
    def strip_notes(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class AppointmentConfirmRequest(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("notes", mode="before")
    @classmethod
    def strip_notes(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class AppointmentPublic(BaseModel):
    id: UUID
    doctor_id: UUID
    patient_id: UUID
    payment_id: Optional[UUID] = None
    appointment_date: dt.date
    appointment_time: str
    duration_minutes: int
    reason: str
    notes: Optional[str] = None
    status: str
    payment_status: str
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


class AppointmentList(BaseModel):
    items: List[AppointmentPublic]
    total: int


class AvailableSlotsResponse(BaseModel):
    doctor_id: UUID
    date: dt.date
    slots: List[str]
