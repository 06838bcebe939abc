"""
Order status transitions.

Statuses travel in two vocabularies: the external codes clients send and
receive (PENDIENTE, APROBADA, ..., ENTREGADA) and the labels persisted in
purchase_order.status (Pendiente, Aprobada, ..., Completada). The mapping
between them is ORDER_STATUS_TABLE in the purchase order model; nothing here
derives one vocabulary from the other.

Completada and Rechazada are terminal: once there, every status change is
rejected whatever the requested target.
"""
import logging

from erpcompras.database import retry_transaction
from erpcompras.exceptions import InvalidTransitionError, NotFoundError, ValidationError
from erpcompras.models import OrderStatus, STATUS_BY_CODE, CODE_BY_STATUS

logger = logging.getLogger(__name__)


def _normalize_key(value: str) -> str:
    return '_'.join(value.strip().upper().replace('_', ' ').split())


# Persisted labels are accepted too, compared with the same normalization
_STATUS_BY_LABEL = {_normalize_key(status.value): status for status in OrderStatus}


def parse_status(value) -> OrderStatus:
    """
    Resolve a client-supplied status (external code or persisted label,
    case-insensitive) to an OrderStatus.

    Raises:
        ValidationError: empty or unrecognized value
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError('El campo "status" es requerido')

    key = _normalize_key(value)
    status = STATUS_BY_CODE.get(key) or _STATUS_BY_LABEL.get(key)
    if status is None:
        valid = ', '.join(CODE_BY_STATUS[s] for s in OrderStatus)
        raise ValidationError(
            f'Estado no reconocido: "{value}". Valores válidos: {valid}',
            payload={'requested_status': value}
        )
    return status


def transition(order, requested_status):
    """
    Move an order to requested_status.

    Only order.status changes; totals and lines are untouched. The caller
    owns the transaction.

    Returns:
        the order

    Raises:
        InvalidTransitionError: the order is in a terminal status
        ValidationError: requested_status is not a known status
    """
    if order.is_terminal:
        raise InvalidTransitionError(
            current_status=order.status,
            requested_status=requested_status if isinstance(requested_status, str) else None
        )

    new_status = parse_status(requested_status)
    previous = order.status
    order.status = new_status.value

    logger.info(f"Order {order.id} status: {previous} -> {new_status.value}")
    return order


@retry_transaction
def change_order_status(order_id, requested_status, store):
    """
    Apply a status transition to a stored order in its own transaction.

    Raises:
        NotFoundError, InvalidTransitionError, ValidationError, StoreError
    """
    try:
        store.begin_transaction()

        order = store.get_order(order_id, for_update=True)
        if not order:
            raise NotFoundError('Orden de compra no encontrada')

        transition(order, requested_status)

        store.commit()
        return order

    except Exception:
        store.rollback()
        raise
