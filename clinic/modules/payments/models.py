# clinic/modules/payments/models.py
from __future__ import annotations

import uuid
from decimal import Decimal
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String, text
from sqlalchemy.orm import Mapped, mapped_column

from clinic.db.base import Base, ReprMixin, TimestampMixin, UUIDPKMixin


class PaymentRecordStatus(str, PyEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, PyEnum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    STRIPE = "stripe"


class Currency(str, PyEnum):
    USD = "USD"
    EUR = "EUR"
    BRL = "BRL"


_COMPLETED_PREDICATE = text("status = 'completed'")


class Payment(UUIDPKMixin, TimestampMixin, ReprMixin, Base):
    """
    One sandbox charge attempt for an appointment.

    Failed attempts are kept; card number and CVV never reach this table.
    """

    __tablename__ = "payments"

    appointment_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("appointments.id", ondelete="RESTRICT"), nullable=False
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default=Currency.USD.value, server_default=Currency.USD.value
    )
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PaymentRecordStatus.PENDING.value,
        server_default=PaymentRecordStatus.PENDING.value,
    )

    transaction_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, unique=True)
    card_last4: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    card_holder: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    gateway_message: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        CheckConstraint("amount > 0 AND amount <= 10000", name="amount_range"),
        CheckConstraint(
            "status IN ('pending', 'completed', 'failed', 'refunded')",
            name="status_valid",
        ),
        CheckConstraint("currency IN ('USD', 'EUR', 'BRL')", name="currency_valid"),
        CheckConstraint(
            "payment_method IN ('credit_card', 'debit_card', 'paypal', 'stripe')",
            name="method_valid",
        ),
        # One completed payment per appointment
        Index(
            "uq_payments_completed_appointment",
            "appointment_id",
            unique=True,
            postgresql_where=_COMPLETED_PREDICATE,
            sqlite_where=_COMPLETED_PREDICATE,
        ),
        Index("ix_payments_patient", "patient_id"),
    )
