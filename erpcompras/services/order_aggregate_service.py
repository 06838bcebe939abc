"""
Order aggregate service - line mutations with total recomputation.

A purchase order's subtotal, tax and total are always the sums of its
current lines' derived amounts. Every line insert, update or delete runs in
one store transaction together with the recomputation of its order:

1. Validate the payload (before touching the store)
2. Begin transaction
3. Lock the order row (SELECT ... FOR UPDATE) so concurrent mutations of the
   same order serialize
4. Mutate the line, amounts derived by the line calculator
5. Recompute the order totals from the post-mutation line set
6. Commit

Any failure rolls back the whole sequence, the line mutation included.
"""
import logging
from decimal import Decimal

from flask import current_app, has_app_context

from erpcompras.database import retry_transaction
from erpcompras.exceptions import ConflictError, NotFoundError, ValidationError
from erpcompras.models import OrderStatus, Supplier, CURRENCIES
from erpcompras.services import line_calculator
from erpcompras.utils.number_format import parse_date, parse_int

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')

# Derived amounts some clients send; they are always recomputed server-side
CLIENT_DERIVED_FIELDS = (
    'line_subtotal', 'line_tax', 'line_total',
    'subtotal_line', 'tax_line', 'total_line',
    'subtotal_linea', 'impuestos_linea', 'total_linea',
)

REQUIRED_ORDER_FIELDS = ('supplier_id', 'order_number', 'order_date')


def current_tax_rate():
    """TAX_RATE from the app config, the calculator default outside a request."""
    if has_app_context():
        return current_app.config.get('TAX_RATE', line_calculator.TAX_RATE)
    return line_calculator.TAX_RATE


def _discard_derived_fields(payload: dict):
    ignored = [field for field in CLIENT_DERIVED_FIELDS if field in payload]
    if ignored:
        logger.warning(f"Ignoring client-supplied derived line fields: {', '.join(ignored)}")


def clean_line_payload(payload: dict) -> dict:
    """
    Validate a new line payload.

    Returns:
        dict with product_id, product_description, line_number (or None),
        quantity, unit_price, discount_pct

    Raises:
        ValidationError: missing product, bad numbers or out-of-range values
    """
    if not isinstance(payload, dict):
        raise ValidationError('Cada línea debe ser un objeto JSON')

    _discard_derived_fields(payload)

    if payload.get('product_id') in (None, ''):
        raise ValidationError('El campo "product_id" es requerido en cada línea')
    product_id = parse_int(payload['product_id'], 'product_id')

    if 'quantity' not in payload or 'unit_price' not in payload:
        raise ValidationError('Los campos "quantity" y "unit_price" son requeridos en cada línea')

    quantity, unit_price, discount_pct = line_calculator.validate_line_inputs(
        payload['quantity'], payload['unit_price'], payload.get('discount_pct', 0)
    )

    line_number = payload.get('line_number')
    if line_number not in (None, ''):
        line_number = parse_int(line_number, 'line_number')
        if line_number <= 0:
            raise ValidationError('El número de línea debe ser mayor a 0')
    else:
        line_number = None

    description = payload.get('product_description')
    description = description.strip() or None if isinstance(description, str) else None

    return {
        'product_id': product_id,
        'product_description': description,
        'line_number': line_number,
        'quantity': quantity,
        'unit_price': unit_price,
        'discount_pct': discount_pct,
    }


def _line_fields(cleaned: dict, tax_rate) -> dict:
    amounts = line_calculator.compute(
        cleaned['quantity'], cleaned['unit_price'], cleaned['discount_pct'], tax_rate
    )
    fields = dict(cleaned)
    fields.update(
        line_subtotal=amounts.subtotal,
        line_tax=amounts.tax,
        line_total=amounts.total,
    )
    return fields


def recompute_totals(order_id, store):
    """
    Set the order's subtotal, tax and total from its current lines.

    Must run inside the transaction that changed the lines. An order with no
    lines gets zero totals.
    """
    lines = store.get_lines(order_id)

    subtotal = sum((line.line_subtotal for line in lines), ZERO)
    tax = sum((line.line_tax for line in lines), ZERO)
    total = subtotal + tax

    order = store.update_order_totals(order_id, subtotal, tax, total)
    logger.debug(f"Order {order_id} totals: subtotal={subtotal} tax={tax} total={total} ({len(lines)} lines)")
    return order


@retry_transaction
def add_line(order_id, payload: dict, store):
    """
    Add a line to an order and recompute its totals.

    Returns:
        (line, order)

    Raises:
        ValidationError, NotFoundError, ConflictError, StoreError
    """
    cleaned = clean_line_payload(payload)
    tax_rate = current_tax_rate()

    try:
        store.begin_transaction()

        order = store.get_order(order_id, for_update=True)
        if not order:
            raise NotFoundError('Orden de compra no encontrada')

        if cleaned['line_number'] is None:
            cleaned['line_number'] = store.next_line_number(order.id)
        elif store.line_number_taken(order.id, cleaned['line_number']):
            raise ConflictError(
                f'La línea {cleaned["line_number"]} ya existe en la orden {order.order_number}'
            )

        line = store.insert_line(order.id, _line_fields(cleaned, tax_rate))
        order = recompute_totals(order.id, store)

        store.commit()
        logger.info(f"Line {line.id} added to order {order.id} (total={order.total})")
        return line, order

    except Exception:
        store.rollback()
        raise


@retry_transaction
def update_line(line_id, payload: dict, store):
    """
    Edit quantity, unit price, discount or description of a line.

    Omitted fields keep their stored value; derived amounts are recomputed
    and so are the order totals.

    Returns:
        (line, order)
    """
    if not isinstance(payload, dict):
        raise ValidationError('El cuerpo de la solicitud debe ser un objeto JSON')
    _discard_derived_fields(payload)
    tax_rate = current_tax_rate()

    try:
        store.begin_transaction()

        line = store.get_line(line_id)
        if not line:
            raise NotFoundError('Detalle de orden no encontrado')

        order = store.get_order(line.order_id, for_update=True)
        if not order:
            raise NotFoundError('Orden de compra no encontrada')

        quantity, unit_price, discount_pct = line_calculator.validate_line_inputs(
            payload.get('quantity', line.quantity),
            payload.get('unit_price', line.unit_price),
            payload.get('discount_pct', line.discount_pct),
        )
        cleaned = {
            'quantity': quantity,
            'unit_price': unit_price,
            'discount_pct': discount_pct,
        }
        if 'product_description' in payload:
            description = payload.get('product_description')
            cleaned['product_description'] = (
                description.strip() or None if isinstance(description, str) else None
            )

        amounts = line_calculator.compute(quantity, unit_price, discount_pct, tax_rate)
        cleaned.update(
            line_subtotal=amounts.subtotal,
            line_tax=amounts.tax,
            line_total=amounts.total,
        )

        line = store.update_line(line.id, cleaned)
        order = recompute_totals(order.id, store)

        store.commit()
        logger.info(f"Line {line.id} of order {order.id} updated (total={order.total})")
        return line, order

    except Exception:
        store.rollback()
        raise


@retry_transaction
def delete_line(line_id, store):
    """
    Delete a line and recompute its order's totals.

    Returns:
        the updated order
    """
    try:
        store.begin_transaction()

        line = store.get_line(line_id)
        if not line:
            raise NotFoundError('Detalle de orden no encontrado')

        order = store.get_order(line.order_id, for_update=True)
        if not order:
            raise NotFoundError('Orden de compra no encontrada')

        store.delete_line(line.id)
        order = recompute_totals(order.id, store)

        store.commit()
        logger.info(f"Line {line_id} deleted from order {order.id} (total={order.total})")
        return order

    except Exception:
        store.rollback()
        raise


def clean_order_payload(order_data: dict) -> dict:
    """
    Validate the header of a new order.

    Raises:
        ValidationError: when supplier_id, order_number or order_date are missing
    """
    if not isinstance(order_data, dict):
        raise ValidationError('Datos de orden incompletos')

    missing = [
        field for field in REQUIRED_ORDER_FIELDS
        if order_data.get(field) is None or str(order_data.get(field)).strip() == ''
    ]
    if missing:
        raise ValidationError('Datos de orden incompletos', payload={'missing_fields': missing})

    if has_app_context():
        default_currency = current_app.config.get('DEFAULT_CURRENCY', 'GTQ')
        default_terms = current_app.config.get('DEFAULT_PAYMENT_TERMS', '30 días')
    else:
        default_currency, default_terms = 'GTQ', '30 días'

    currency = str(order_data.get('currency') or default_currency).strip().upper()
    if currency not in CURRENCIES:
        raise ValidationError(f'Moneda no soportada: {currency}. Use {", ".join(CURRENCIES)}')

    if order_data.get('status'):
        logger.info("Ignoring initial status on order creation; new orders start as Pendiente")

    created_by = order_data.get('created_by')
    notes = order_data.get('notes')
    payment_terms = order_data.get('payment_terms')

    return {
        'supplier_id': parse_int(order_data['supplier_id'], 'supplier_id'),
        'order_number': str(order_data['order_number']).strip(),
        'order_date': parse_date(order_data['order_date'], 'order_date', required=True),
        'expected_delivery_date': parse_date(
            order_data.get('expected_delivery_date'), 'expected_delivery_date'
        ),
        'status': OrderStatus.PENDING.value,
        'currency': currency,
        'payment_terms': str(payment_terms).strip() if payment_terms else default_terms,
        'notes': notes.strip() or None if isinstance(notes, str) else None,
        'created_by': parse_int(created_by, 'created_by') if created_by not in (None, '') else None,
    }


def _assign_line_numbers(cleaned_lines):
    explicit = [line['line_number'] for line in cleaned_lines if line['line_number'] is not None]
    if len(explicit) != len(set(explicit)):
        raise ConflictError('Números de línea duplicados en la orden')

    taken = set(explicit)
    next_number = 1
    for line in cleaned_lines:
        if line['line_number'] is None:
            while next_number in taken:
                next_number += 1
            line['line_number'] = next_number
            taken.add(next_number)


@retry_transaction
def create_order_with_lines(payload: dict, store):
    """
    Create a purchase order with its lines in one transaction.

    Args:
        payload: {'order': {...}, 'lines': [...]}
        store: OrderStore

    Returns:
        the created order with recomputed totals

    Raises:
        ValidationError: incomplete header or invalid lines (nothing persisted)
        NotFoundError: unknown supplier
        ConflictError: duplicate order number or line numbers
    """
    if not isinstance(payload, dict):
        raise ValidationError('El cuerpo de la solicitud debe ser un objeto JSON')

    header = clean_order_payload(payload.get('order'))
    lines = payload.get('lines') or []
    if not isinstance(lines, list):
        raise ValidationError('El campo "lines" debe ser una lista')

    cleaned_lines = [clean_line_payload(line) for line in lines]
    _assign_line_numbers(cleaned_lines)
    tax_rate = current_tax_rate()

    try:
        store.begin_transaction()

        supplier = store.session.get(Supplier, header['supplier_id'])
        if not supplier:
            raise NotFoundError(f'Proveedor con ID {header["supplier_id"]} no encontrado')

        if store.find_order_by_number(header['order_number']):
            raise ConflictError(
                f'Ya existe una orden de compra con número "{header["order_number"]}"'
            )

        order = store.insert_order(header)
        for cleaned in cleaned_lines:
            store.insert_line(order.id, _line_fields(cleaned, tax_rate))

        order = recompute_totals(order.id, store)

        store.commit()
        logger.info(
            f"Order {order.order_number} created with {len(cleaned_lines)} lines (total={order.total})"
        )
        return order

    except Exception:
        store.rollback()
        raise
