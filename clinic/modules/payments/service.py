# clinic/modules/payments/service.py
from __future__ import annotations

import logging
from typing import Sequence, Tuple
from uuid import UUID

from clinic.core.errors import ConflictError, ErrorKind, NotFoundError
from clinic.modules.appointments.models import (
    Appointment,
    AppointmentStatus,
    PaymentStatus,
)
from clinic.modules.appointments.repository import AppointmentRepository
from clinic.modules.payments.gateway import GatewayResult, PaymentGateway, validate_card
from clinic.modules.payments.models import Payment, PaymentRecordStatus
from clinic.modules.payments.repository import PaymentRepository
from clinic.modules.payments.schemas import ProcessPaymentRequest
from clinic.modules.scheduling.ports import Clock

logger = logging.getLogger(__name__)


class PaymentService:
    """
    Charges a patient's appointment through the injected gateway and flips
    the appointment to paid.

    A declined charge is not an error: the failed Payment row is kept and
    returned with ``success=False``.
    """

    def __init__(
        self,
        payments: PaymentRepository,
        appointments: AppointmentRepository,
        gateway: PaymentGateway,
        clock: Clock,
    ):
        self.payments = payments
        self.appointments = appointments
        self.gateway = gateway
        self.clock = clock

    async def can_pay(self, appointment_id: UUID, patient_id: UUID) -> Appointment:
        appointment = await self.appointments.find_for_patient(appointment_id, patient_id)
        if appointment is None:
            raise NotFoundError(
                ErrorKind.APPOINTMENT_NOT_FOUND, "Appointment not found or unauthorized"
            )
        if appointment.status == AppointmentStatus.CANCELLED.value:
            raise ConflictError(
                ErrorKind.ALREADY_CANCELLED, "Cannot pay for cancelled appointment"
            )
        if appointment.payment_status == PaymentStatus.PAID.value:
            raise ConflictError(ErrorKind.ALREADY_PAID, "Appointment is already paid")
        return appointment

    async def process_payment(
        self, patient_id: UUID, request: ProcessPaymentRequest
    ) -> Tuple[Payment, GatewayResult]:
        appointment = await self.can_pay(request.appointment_id, patient_id)

        card_number = request.card_number.get_secret_value()
        validate_card(
            card_number,
            request.expiry_date,
            request.cvv.get_secret_value(),
            request.card_holder,
            today=self.clock.today(),
        )

        result = self.gateway.charge(card_number)
        payment = await self.payments.create(
            appointment_id=appointment.id,
            patient_id=patient_id,
            amount=request.amount,
            currency=request.currency.value,
            payment_method=request.payment_method.value,
            status=(
                PaymentRecordStatus.COMPLETED.value
                if result.success
                else PaymentRecordStatus.FAILED.value
            ),
            transaction_id=result.transaction_id,
            card_last4=card_number[-4:],
            card_holder=request.card_holder,
            gateway_message=result.message,
        )

        if not result.success:
            logger.warning(
                "Payment %s declined for appointment %s", payment.id, appointment.id
            )
            return payment, result

        if not await self.appointments.mark_paid(appointment.id, payment.id):
            # Another payment or a cancellation got there first
            await self.appointments.reload(appointment)
            if appointment.status == AppointmentStatus.CANCELLED.value:
                raise ConflictError(
                    ErrorKind.ALREADY_CANCELLED, "Cannot pay for cancelled appointment"
                )
            raise ConflictError(ErrorKind.ALREADY_PAID, "Appointment is already paid")

        logger.info(
            "Payment %s completed for appointment %s (%s %s)",
            payment.id,
            appointment.id,
            payment.amount,
            payment.currency,
        )
        return payment, result

    async def list_patient_payments(self, patient_id: UUID) -> Sequence[Payment]:
        return await self.payments.list_for_patient(patient_id)
