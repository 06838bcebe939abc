"""Purchase order reads, header edits and deletion."""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, selectinload

from erpcompras.database import execute_with_retry, retry_transaction
from erpcompras.exceptions import NotFoundError, ValidationError
from erpcompras.models import PurchaseOrder
from erpcompras.services.order_status_service import parse_status, transition
from erpcompras.services.order_store import translate_store_error
from erpcompras.utils.number_format import parse_date, parse_int

logger = logging.getLogger(__name__)

EDITABLE_HEADER_FIELDS = ('expected_delivery_date', 'notes', 'payment_terms')


def list_orders(session, status=None, supplier_id=None):
    """
    List orders with their supplier, newest first.

    Args:
        status: optional status filter (external code or label)
        supplier_id: optional supplier filter
    """
    status_filter = parse_status(status) if status else None
    supplier_filter = parse_int(supplier_id, 'supplier_id') if supplier_id else None

    def _query():
        try:
            query = session.query(PurchaseOrder).options(joinedload(PurchaseOrder.supplier))
            if status_filter is not None:
                query = query.filter(PurchaseOrder.status == status_filter.value)
            if supplier_filter is not None:
                query = query.filter(PurchaseOrder.supplier_id == supplier_filter)
            return query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc()).all()
        except SQLAlchemyError as e:
            session.rollback()
            raise translate_store_error(e) from e

    return execute_with_retry(_query)


def get_order(order_id, session):
    """
    Get an order with its supplier and lines.

    Raises:
        NotFoundError: if the order does not exist
    """
    def _query():
        try:
            return (session.query(PurchaseOrder)
                    .options(joinedload(PurchaseOrder.supplier), selectinload(PurchaseOrder.lines))
                    .filter(PurchaseOrder.id == order_id)
                    .first())
        except SQLAlchemyError as e:
            session.rollback()
            raise translate_store_error(e) from e

    order = execute_with_retry(_query)
    if not order:
        raise NotFoundError('Orden de compra no encontrada')
    return order


@retry_transaction
def update_order_header(order_id, payload: dict, store):
    """
    Edit expected delivery date, notes or payment terms of an order.

    A "status" key goes through the status transition rules. Monetary
    totals and lines are never touched here.
    """
    if not isinstance(payload, dict):
        raise ValidationError('El cuerpo de la solicitud debe ser un objeto JSON')

    changes = {}
    if 'expected_delivery_date' in payload:
        changes['expected_delivery_date'] = parse_date(
            payload['expected_delivery_date'], 'expected_delivery_date'
        )
    if 'notes' in payload:
        notes = payload['notes']
        changes['notes'] = notes.strip() or None if isinstance(notes, str) else None
    if 'payment_terms' in payload:
        terms = payload['payment_terms']
        changes['payment_terms'] = terms.strip() or None if isinstance(terms, str) else None

    try:
        store.begin_transaction()

        order = store.get_order(order_id, for_update=True)
        if not order:
            raise NotFoundError('Orden de compra no encontrada')

        if payload.get('status') is not None and payload['status'] != order.status:
            transition(order, payload['status'])

        for field, value in changes.items():
            setattr(order, field, value)

        store.commit()
        logger.info(f"Order {order.id} updated: {', '.join(changes) or 'status only'}")
        return order

    except Exception:
        store.rollback()
        raise


@retry_transaction
def delete_order(order_id, store):
    """Delete an order and, by cascade, its lines."""
    try:
        store.begin_transaction()

        order = store.get_order(order_id, for_update=True)
        if not order:
            raise NotFoundError('Orden de compra no encontrada')

        order_number = order.order_number
        store.delete_order(order)

        store.commit()
        logger.info(f"Order {order_number} deleted")

    except Exception:
        store.rollback()
        raise
