"""Parsing utilities for numbers and dates received in JSON payloads."""
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from erpcompras.exceptions import ValidationError

CENTS = Decimal('0.01')
QUANTITY_PLACES = Decimal('0.001')
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")


def to_cents(value: Decimal) -> Decimal:
    """Round a Decimal to currency precision (2 places, half up)."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_quantity(value: Decimal) -> Decimal:
    """Round a Decimal quantity to 3 places, half up."""
    return value.quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def parse_decimal(value, field: str) -> Decimal:
    """
    Parse a JSON number or numeric string to Decimal.

    Floats go through str() so 25.5 becomes Decimal('25.5') and not its
    binary expansion.

    Raises:
        ValidationError: if the value is missing, boolean, not numeric or not finite.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f'El campo "{field}" debe ser numérico')

    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f'El campo "{field}" es requerido')

    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f'El campo "{field}" debe ser numérico')

    if not number.is_finite():
        raise ValidationError(f'El campo "{field}" debe ser numérico')

    return number


def parse_int(value, field: str) -> int:
    """Parse an integer id or counter; floats with a fractional part are rejected."""
    number = parse_decimal(value, field)
    if number != number.to_integral_value():
        raise ValidationError(f'El campo "{field}" debe ser un número entero')
    return int(number)


def parse_date(value, field: str, required: bool = False):
    """
    Parse an ISO date (YYYY-MM-DD, a trailing time part is ignored).

    Returns None for empty optional values.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f'El campo "{field}" es requerido')
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    cleaned = str(value).strip()
    if not ISO_DATE_PATTERN.match(cleaned):
        raise ValidationError(f'Fecha inválida en "{field}". Use AAAA-MM-DD')

    try:
        return date.fromisoformat(cleaned[:10])
    except ValueError:
        raise ValidationError(f'Fecha inválida en "{field}". Use AAAA-MM-DD')
