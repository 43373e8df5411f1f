"""Decimal helpers for euros and grams. Both are kept at two decimal places."""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from cannaclub.core.exceptions import ValidationError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
# Largest value a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")


def to_decimal(value, field: str = "value") -> Decimal:
    """Coerce input to Decimal. Floats go through str() so 8.5 stays 8.5."""
    if value is None:
        raise ValidationError(f"{field} is required")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} is not a valid number")
    if not result.is_finite():
        raise ValidationError(f"{field} is not a valid number")
    if abs(result) > MAX_AMOUNT:
        raise ValidationError(f"{field} is too large")
    return result


def quantize(value, field: str = "value") -> Decimal:
    """Round half-up to two decimals."""
    try:
        result = to_decimal(value, field).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(f"{field} is not a valid number")
    if abs(result) > MAX_AMOUNT:
        raise ValidationError(f"{field} is too large")
    return result


def positive(value, field: str) -> Decimal:
    amount = quantize(value, field)
    if amount <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    return amount


def non_negative(value, field: str) -> Decimal:
    amount = quantize(value, field)
    if amount < 0:
        raise ValidationError(f"{field} cannot be negative")
    return amount
