from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Iterable

from backoffice.time_utils import parse_iso_datetime


class LedgerError(Exception):
    """
    Base class for every typed failure raised by the ledger services.

    `code` is the logical error kind surfaced to callers; `status_code` is the
    HTTP mapping used by the route layer.
    """
    code = "LedgerError"
    status_code = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(LedgerError):
    """400-level input problem (non-positive amount, unknown enum value)."""
    code = "ValidationError"


class ConflictError(LedgerError):
    """409-level duplicate link (a sale or debt payment already banked)."""
    code = "ConflictError"
    status_code = 409


class NotFoundError(LedgerError):
    code = "NotFoundError"
    status_code = 404


class InvalidStateError(LedgerError):
    """Action not legal in the entity's current lifecycle state."""
    code = "InvalidStateError"
    status_code = 409


class AlreadyProcessedError(InvalidStateError):
    """A terminal document (reconciliation, sale, expense approval) was acted upon again."""
    code = "AlreadyProcessedError"


class AmountExceedsRemainingError(LedgerError):
    code = "AmountExceedsRemainingError"


class CreditLimitExceededError(LedgerError):
    code = "CreditLimitExceededError"


class InsufficientStockError(LedgerError):
    code = "InsufficientStockError"


class InvalidTransferError(LedgerError):
    code = "InvalidTransferError"


class HasPaymentsError(LedgerError):
    code = "HasPaymentsError"
    status_code = 409


class InvalidPrincipalError(LedgerError):
    code = "InvalidPrincipalError"


class NotApprovedError(InvalidStateError):
    code = "NotApprovedError"


class AlreadyPaidError(InvalidStateError):
    code = "AlreadyPaidError"


# =============================================================================
# INPUT HELPERS
# =============================================================================

def require_fields(payload: dict | None, *fields: str) -> dict:
    """Reject a request body missing any of `fields` (None counts as missing)."""
    payload = payload or {}
    missing = [f for f in fields if payload.get(f) is None]
    if missing:
        raise ValidationError(f"Missing required field(s): {', '.join(missing)}", missing=missing)
    return payload


def require_positive_amount(value: Any, field: str = "amount") -> int:
    """
    Money is stored in whole GNF (no minor unit).

    Rejects bools, floats with a fractional part, non-numeric strings and
    anything <= 0.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a positive integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be a whole number of GNF")
        value = int(value)
    if isinstance(value, str):
        stripped = value.strip()
        try:
            value = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be a positive integer")
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be a positive integer")
    if value <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    return value


def require_quantity(value: Any, field: str = "quantity", *, allow_zero: bool = False, allow_negative: bool = False) -> float:
    """Stock quantities may be fractional (kg, litres)."""
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    try:
        qty = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not math.isfinite(qty):
        raise ValidationError(f"{field} must be a number")
    if qty < 0 and not allow_negative:
        raise ValidationError(f"{field} cannot be negative")
    if qty == 0 and not allow_zero:
        raise ValidationError(f"{field} must be non-zero")
    return qty


def require_choice(value: Any, choices: Iterable[str], field: str) -> str:
    choices = list(choices)
    if value not in choices:
        raise ValidationError(f"{field} must be one of {choices}", allowed=choices)
    return value


def require_bool(value: Any, field: str, default: bool) -> bool:
    """JSON flags must be real booleans; "false" as a string is not false."""
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValidationError(f"{field} must be true or false")
    return value


def parse_date_param(value: Any, field: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date or datetime")
