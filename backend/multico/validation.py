from __future__ import annotations

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from multico.time_utils import parse_iso_datetime


# Maximum document amount: $9,999,999,999.99
# Keeps totals inside numeric(15,2) when exported to the reporting database
MAX_AMOUNT_CENTS = 999_999_999_999

# Quantity columns stay 32-bit
MAX_QUANTITY = 1_000_000

DEFAULT_PAGE_LIMIT = 100
MAX_PAGE_LIMIT = 500


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(LookupError):
    """404-level missing (or foreign-tenant) record."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate code, invalid status change)."""


def parse_int(value: Any, field: str, *, required: bool = False) -> int | None:
    """
    Strict integer parsing for ids and quantities.

    Rejects bools, floats, decimals and scientific notation.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if "e" in stripped.lower() or "." in stripped:
            raise ValidationError(f"{field} must be a plain integer")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    raise ValidationError(f"{field} must be an integer")


def parse_cents(value: Any, field: str, *, required: bool = False, allow_zero: bool = True) -> int | None:
    """
    Parse a money amount expressed in integer cents.

    Negative amounts are always rejected; zero only when allow_zero.
    """
    cents = parse_int(value, field, required=required)
    if cents is None:
        return None
    if cents < 0:
        raise ValidationError(f"{field} cannot be negative")
    if cents == 0 and not allow_zero:
        raise ValidationError(f"{field} must be greater than zero")
    if cents > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} exceeds maximum allowed amount")
    return cents


def parse_quantity(value: Any, field: str = "quantity") -> int:
    if value is None:
        return 1
    qty = parse_int(value, field)
    if qty is None or qty <= 0:
        raise ValidationError(f"{field} must be a positive integer")
    if qty > MAX_QUANTITY:
        raise ValidationError(f"{field} cannot exceed {MAX_QUANTITY}")
    return qty


def parse_datetime(value: Any, field: str) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 date")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date")


def parse_decimal_amount(value: Any, field: str) -> int:
    """Convert a decimal currency amount (e.g. "12.50") into cents."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a decimal amount")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite amount")
    if amount.as_tuple().exponent < -2:
        raise ValidationError(f"{field} cannot have more than two decimal places")
    return parse_cents(int(amount * 100), field)


def money_from_payload(data: dict, field: str, *, required: bool = False, allow_zero: bool = True) -> int | None:
    """
    Read an amount from a request body.

    "<field>_cents" wins; a plain "<field>" is taken as a decimal currency amount.
    """
    cents_key = f"{field}_cents"
    if data.get(cents_key) is not None:
        return parse_cents(data[cents_key], cents_key, allow_zero=allow_zero)
    if data.get(field) is not None:
        cents = parse_decimal_amount(data[field], field)
        if cents == 0 and not allow_zero:
            raise ValidationError(f"{field} must be greater than zero")
        return cents
    if required:
        raise ValidationError(f"{cents_key} is required")
    return None


def clamp_pagination(limit: int | None, offset: int | None) -> tuple[int, int]:
    if limit is None:
        limit = DEFAULT_PAGE_LIMIT
    if offset is None:
        offset = 0
    limit = max(1, min(limit, MAX_PAGE_LIMIT))
    offset = max(0, offset)
    return limit, offset
