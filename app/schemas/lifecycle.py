from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Appointment
# ---------------------------------------------------------------------------


class AppointmentCreate(BaseModel):
    client_id: str
    client_name: str | None = None
    lawyer_id: str
    lawyer_name: str
    consultation_fee: int = Field(gt=0)
    case_type: str | None = None
    description: str | None = None
    scheduled_for: datetime | None = None


class AppointmentDecline(BaseModel):
    reason: str = ""


class AppointmentCancel(BaseModel):
    reason: str = ""


# ---------------------------------------------------------------------------
# Case
# ---------------------------------------------------------------------------


class CaseStart(BaseModel):
    title: str = Field(min_length=1)
    description: str | None = None
    case_type: str | None = None
    estimated_fees: int = Field(default=0, ge=0)


class CaseCreate(CaseStart):
    appointment_id: str


class CasePaymentRequest(BaseModel):
    amount: int = Field(gt=0)
    description: str = "Additional case fee"


class CaseTerminate(BaseModel):
    reason: str = ""


class CaseProgressUpdate(BaseModel):
    progress: int = Field(ge=0, le=100)


class CaseDocumentCreate(BaseModel):
    name: str = Field(min_length=1)
    content_type: str | None = None
    size_bytes: int | None = Field(default=None, ge=0)


class CaseMessageCreate(BaseModel):
    text: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------


class StatusOverride(BaseModel):
    status: str


class TimingPolicyUpdate(BaseModel):
    lawyer_approval_hours: int | None = None
    client_payment_minutes: int | None = None
    case_payment_days: int | None = None


class SweepResultRead(BaseModel):
    expired_appointment_ids: list[str]
    expired_payment_ids: list[str]
    overdue_case_ids: list[str]
    breaches: int
