# clinic/modules/payments/gateway.py
"""
Sandbox card gateway and card-data rules.

Nothing here talks to a real processor. The gateway is injected into
`PaymentService` so tests can seed its randomness or replace it.
"""
from __future__ import annotations

import random
import re
import string
import time
from dataclasses import dataclass
from datetime import date
from typing import Optional, Protocol

from clinic.core.errors import ErrorKind, ValidationFailed

_CARD_RE = re.compile(r"^\d{16}$")
_EXPIRY_RE = re.compile(r"^(0[1-9]|1[0-2])/(\d{2})$")
_CVV_RE = re.compile(r"^\d{3,4}$")
_BASE36 = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class GatewayResult:
    success: bool
    transaction_id: Optional[str]
    message: str


class PaymentGateway(Protocol):
    def charge(self, card_number: str) -> GatewayResult: ...


class SandboxGateway:
    """
    Cards ending in 0 are always declined; any other card succeeds when
    ``rng.random() > failure_rate``.
    """

    def __init__(self, failure_rate: float = 0.1, rng: Optional[random.Random] = None):
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be within [0, 1]")
        self.failure_rate = failure_rate
        self.rng = rng or random.Random()

    def _transaction_id(self) -> str:
        suffix = "".join(self.rng.choice(_BASE36) for _ in range(9))
        return f"TXN_{int(time.time() * 1000)}_{suffix}"

    def charge(self, card_number: str) -> GatewayResult:
        success = not card_number.endswith("0") and self.rng.random() > self.failure_rate
        if not success:
            return GatewayResult(False, None, "Payment failed - Card declined")
        return GatewayResult(True, self._transaction_id(), "Payment processed successfully")


def validate_card(
    card_number: str,
    expiry_date: str,
    cvv: str,
    card_holder: str,
    today: Optional[date] = None,
) -> None:
    """Raise ValidationFailed for the first bad field, in form order."""
    if not _CARD_RE.match(card_number or ""):
        raise ValidationFailed(ErrorKind.INVALID_CARD, "Card number must be 16 digits")

    match = _EXPIRY_RE.match(expiry_date or "")
    if not match:
        raise ValidationFailed(
            ErrorKind.INVALID_EXPIRY, "Expiry date must be in MM/YY format"
        )

    # A card stays valid through the last day of its expiry month
    today = today or date.today()
    expiry = (2000 + int(match.group(2)), int(match.group(1)))
    if expiry < (today.year, today.month):
        raise ValidationFailed(ErrorKind.CARD_EXPIRED, "Card has expired")

    if not _CVV_RE.match(cvv or ""):
        raise ValidationFailed(ErrorKind.INVALID_CVV, "CVV must be 3 or 4 digits")

    if len((card_holder or "").strip()) < 2:
        raise ValidationFailed(
            ErrorKind.INVALID_CARD_HOLDER, "Card holder name is required"
        )
