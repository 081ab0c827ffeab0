"""API request/response schemas for payment gateway endpoints."""

from datetime import datetime, timezone
from decimal import Decimal

from pydantic import BaseModel, PrivateAttr


class PaymentRequest(BaseModel):
    """Payload accepted by `POST /payment`.

    Fields are plain strings on purpose: shape errors are a 400, content
    errors are reported field by field by the validator as a 422.
    """

    card_number: str = ""
    cvv: str = ""
    expiry: str = ""
    name: str = ""
    amount: Decimal = Decimal("0")
    # Server-side receipt time; never read from the body.
    _submitted_at: datetime = PrivateAttr(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def submitted_at(self) -> datetime:
        return self._submitted_at

    def received_at(self, when: datetime) -> "PaymentRequest":
        """Stamp the time the gateway took the request and return it."""

        self._submitted_at = when
        return self


class FieldError(BaseModel):
    """One field-level validation failure."""

    field: str
    message: str


class PaymentResponse(BaseModel):
    """Outcome of a completed payment attempt."""

    status: str
    message: str
    transaction_id: str
    request_id: str


class ValidationFailureResponse(BaseModel):
    """Body of a 422 response."""

    status: str = "REJECT"
    errors: list[FieldError]
    request_id: str
