"""Strict field validation for incoming payment requests.

Every field is checked independently so a caller sees all violations at once.
Within a field, checks stop at the first failure. Validation is pure: the
reference time is the request's own `submitted_at`, never the wall clock.

Expiry years use the rolling-century policy: `YY` is placed in the current
century and moved one century forward if that lands in a past year. Years more
than 20 years ahead are rejected as implausible.
"""

import re
from datetime import datetime, timedelta, timezone

from skyfox.services.payment_gateway.schemas import FieldError, PaymentRequest


CARD_NUMBER_RE = re.compile(r"[0-9]{16}")
DIGITS_RE = re.compile(r"[0-9]+")
EXPIRY_RE = re.compile(r"(0[1-9]|1[0-2])/([0-9]{2})")
MAX_EXPIRY_YEARS_AHEAD = 20
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 40
NAME_PUNCTUATION = {" ", "'", "-"}


def luhn_valid(number: str) -> bool:
    """Check-digit test over a string of ASCII digits."""

    total = 0
    for position, char in enumerate(reversed(number)):
        digit = int(char)
        if position % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def validate_card_number(card_number: str) -> list[FieldError]:
    if not CARD_NUMBER_RE.fullmatch(card_number):
        return [FieldError(field="card_number", message="Card number must be exactly 16 digits")]
    if not luhn_valid(card_number):
        return [FieldError(field="card_number", message="Card number failed Luhn check")]
    return []


def validate_cvv(cvv: str) -> list[FieldError]:
    if not DIGITS_RE.fullmatch(cvv):
        return [FieldError(field="cvv", message="CVV must contain only numeric characters")]
    if len(cvv) != 3:
        return [FieldError(field="cvv", message="CVV must be exactly 3 digits")]
    if not 1 <= int(cvv) <= 999:
        return [FieldError(field="cvv", message="CVV must be between 001 and 999")]
    return []


def expand_year(two_digit_year: int, current_year: int) -> int:
    """Expand `YY` to a four-digit year that is not in the past."""

    full_year = current_year // 100 * 100 + two_digit_year
    if full_year < current_year:
        full_year += 100
    return full_year


def end_of_month(year: int, month: int) -> datetime:
    """Last representable instant of the given month, UTC."""

    if month == 12:
        first_of_next = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        first_of_next = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return first_of_next - timedelta(microseconds=1)


def validate_expiry(expiry: str, now: datetime) -> list[FieldError]:
    match = EXPIRY_RE.fullmatch(expiry)
    if not match:
        return [
            FieldError(
                field="expiry",
                message="Expiry must be in MM/YY format with valid month (01-12)",
            )
        ]

    month = int(match.group(1))
    full_year = expand_year(int(match.group(2)), now.year)
    if full_year > now.year + MAX_EXPIRY_YEARS_AHEAD:
        return [FieldError(field="expiry", message="Expiry cannot exceed 20 years from now")]

    if now > end_of_month(full_year, month):
        return [FieldError(field="expiry", message="Card has expired")]
    return []


def validate_name(name: str) -> list[FieldError]:
    name = name.strip()
    if not name:
        return [FieldError(field="name", message="Name is required")]
    if not NAME_MIN_LENGTH <= len(name) <= NAME_MAX_LENGTH:
        return [FieldError(field="name", message="Name must be between 2 and 40 characters")]
    if not all(char.isalpha() or char in NAME_PUNCTUATION for char in name):
        return [
            FieldError(
                field="name",
                message="Name may only contain letters, spaces, apostrophes and hyphens",
            )
        ]
    if "  " in name:
        return [FieldError(field="name", message="Name must not contain consecutive spaces")]
    return []


def validate(req: PaymentRequest) -> list[FieldError]:
    """Return every field violation in `req`; empty means it may proceed."""

    now = req.submitted_at
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)

    errors: list[FieldError] = []
    errors.extend(validate_card_number(req.card_number))
    errors.extend(validate_cvv(req.cvv))
    errors.extend(validate_expiry(req.expiry, now))
    errors.extend(validate_name(req.name))
    return errors


class StrictValidator:
    """Object form of `validate` for callers that inject a validator."""

    def validate(self, req: PaymentRequest) -> list[FieldError]:
        return validate(req)
