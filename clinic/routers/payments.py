# clinic/routers/payments.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status

from clinic.core.permission import require_roles
from clinic.dependencies import get_payment_service
from clinic.modules.payments.schemas import (
    PaymentList,
    PaymentPublic,
    PaymentResult,
    ProcessPaymentRequest,
)
from clinic.modules.payments.service import PaymentService
from clinic.modules.users.models import User, UserRole

router = APIRouter(tags=["payments"])


@router.post(
    "/payments",
    response_model=PaymentResult,
    summary="Pay for an appointment through the sandbox gateway",
    responses={
        200: {"description": "Payment completed, appointment marked paid"},
        400: {"description": "Card invalid or declined (declines are still recorded)"},
        409: {"description": "Appointment already paid or cancelled"},
    },
)
async def payments_process(
    payload: ProcessPaymentRequest,
    response: Response,
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(require_roles(UserRole.PATIENT)),
):
    payment, result = await service.process_payment(current_user.id, payload)
    if not result.success:
        # Declined: the failed attempt is committed, only the status differs
        response.status_code = status.HTTP_400_BAD_REQUEST
    return PaymentResult(
        success=result.success,
        message=result.message,
        payment=PaymentPublic.model_validate(payment),
    )


@router.get(
    "/payments/my",
    response_model=PaymentList,
    summary="Current patient's payment attempts",
)
async def payments_my(
    service: PaymentService = Depends(get_payment_service),
    current_user: User = Depends(require_roles(UserRole.PATIENT)),
):
    items = [PaymentPublic.model_validate(p) for p in await service.list_patient_payments(current_user.id)]
    return PaymentList(items=items, total=len(items))
