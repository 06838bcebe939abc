"""Line-item amount calculation (subtotal, tax, total) for purchase order lines."""
from collections import namedtuple
from decimal import Decimal

from erpcompras.exceptions import ValidationError
from erpcompras.utils.number_format import parse_decimal, to_cents, to_quantity

# IVA rate. The application passes Config.TAX_RATE; this is its default.
TAX_RATE = Decimal('0.12')

HUNDRED = Decimal('100')

LineAmounts = namedtuple('LineAmounts', ['subtotal', 'tax', 'total'])


def validate_line_inputs(quantity, unit_price, discount_pct=0):
    """
    Parse and range-check the client-authoritative line fields.

    Values are rounded (half up) to the precision of their columns before
    the range checks: quantity to 3 places, unit price and discount to 2.
    Amounts computed from the result match what is stored.

    Returns:
        tuple (quantity, unit_price, discount_pct) as Decimals

    Raises:
        ValidationError: quantity <= 0, unit_price < 0 or discount outside [0, 100]
    """
    quantity = to_quantity(parse_decimal(quantity, 'quantity'))
    unit_price = to_cents(parse_decimal(unit_price, 'unit_price'))
    discount_pct = to_cents(
        parse_decimal(0 if discount_pct is None else discount_pct, 'discount_pct')
    )

    if quantity <= 0:
        raise ValidationError('La cantidad debe ser mayor a 0')
    if unit_price < 0:
        raise ValidationError('El precio unitario no puede ser negativo')
    if discount_pct < 0 or discount_pct > HUNDRED:
        raise ValidationError('El descuento debe estar entre 0 y 100')

    return quantity, unit_price, discount_pct


def compute(quantity, unit_price, discount_pct=0, tax_rate=TAX_RATE) -> LineAmounts:
    """
    Compute a line's subtotal, tax and total.

    Every step is rounded to cents (half up), the precision the amounts are
    stored with:

        raw      = quantity * unit_price
        subtotal = raw - raw * discount_pct / 100   (raw when discount is 0)
        tax      = subtotal * tax_rate
        total    = subtotal + tax

    Example (tax_rate 0.12): compute(10, 25.50, 5) -> (242.25, 29.07, 271.32)

    Raises:
        ValidationError: for out-of-range or non-numeric inputs
    """
    quantity, unit_price, discount_pct = validate_line_inputs(quantity, unit_price, discount_pct)
    tax_rate = parse_decimal(tax_rate, 'tax_rate')

    raw = to_cents(quantity * unit_price)
    if discount_pct > 0:
        subtotal = to_cents(raw - (raw * discount_pct / HUNDRED))
    else:
        subtotal = raw

    tax = to_cents(subtotal * tax_rate)
    total = subtotal + tax

    return LineAmounts(subtotal=subtotal, tax=tax, total=total)
