# clinic/modules/payments/repository.py
from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from clinic.core.errors import ConflictError, ErrorKind
from clinic.modules.payments.models import Payment


class PaymentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_for_patient(self, patient_id: UUID) -> Sequence[Payment]:
        stmt = (
            select(Payment)
            .where(Payment.patient_id == patient_id)
            .order_by(Payment.created_at.desc())
        )
        return (await self.session.execute(stmt)).scalars().all()

    async def create(
        self,
        *,
        appointment_id: UUID,
        patient_id: UUID,
        amount: Decimal,
        currency: str,
        payment_method: str,
        status: str,
        transaction_id: Optional[str],
        card_last4: Optional[str],
        card_holder: Optional[str],
        gateway_message: Optional[str],
    ) -> Payment:
        payment = Payment(
            appointment_id=appointment_id,
            patient_id=patient_id,
            amount=amount,
            currency=currency,
            payment_method=payment_method,
            status=status,
            transaction_id=transaction_id,
            card_last4=card_last4,
            card_holder=card_holder,
            gateway_message=gateway_message,
        )
        self.session.add(payment)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            message = str(exc.orig) if exc.orig is not None else str(exc)
            if "uq_payments_completed_appointment" in message or "payments.appointment_id" in message:
                raise ConflictError(
                    ErrorKind.ALREADY_PAID, "Appointment is already paid"
                ) from exc
            raise
        await self.session.refresh(payment)
        return payment
