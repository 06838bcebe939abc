"""Purchase orders blueprint - orders, status changes and order lines."""
import logging
from flask import Blueprint, g, request
from erpcompras.database import get_session
from erpcompras.middleware import envelope, require_json
from erpcompras.services import order_aggregate_service, order_service, order_status_service
from erpcompras.services.order_store import OrderStore

logger = logging.getLogger(__name__)

orders_bp = Blueprint('orders', __name__, url_prefix='/orders')
lines_bp = Blueprint('lines', __name__, url_prefix='/lines')


def _store():
    return OrderStore(get_session())


def _order_with_lines(order):
    return order.to_dict(include_lines=True)


@orders_bp.route('/', methods=['GET'], strict_slashes=False)
def list_orders():
    """List orders. Query params: status, supplier_id."""
    orders = order_service.list_orders(
        get_session(),
        status=request.args.get('status', '').strip() or None,
        supplier_id=request.args.get('supplier_id', '').strip() or None
    )
    return envelope([order.to_dict() for order in orders])


@orders_bp.route('/<int:order_id>', methods=['GET'])
def get_order(order_id):
    """Order detail with its lines ordered by line number."""
    order = order_service.get_order(order_id, get_session())
    return envelope(_order_with_lines(order))


@orders_bp.route('/', methods=['POST'], strict_slashes=False)
@require_json
def create_order():
    """Create an order with its lines. Body: {order: {...}, lines: [...]}."""
    order = order_aggregate_service.create_order_with_lines(g.json_body, _store())
    return envelope(_order_with_lines(order), 'Orden de compra creada exitosamente', 201)


@orders_bp.route('/<int:order_id>', methods=['PUT'])
@require_json
def update_order(order_id):
    """Edit expected delivery date, notes, payment terms (and status)."""
    order = order_service.update_order_header(order_id, g.json_body, _store())
    return envelope(order.to_dict(), 'Orden de compra actualizada exitosamente')


@orders_bp.route('/<int:order_id>/status', methods=['PUT'])
@require_json
def update_order_status(order_id):
    """Change the order status. Body: {status: "APROBADA"}."""
    order = order_status_service.change_order_status(
        order_id, g.json_body.get('status'), _store()
    )
    return envelope(order.to_dict(), f'Estado de la orden actualizado a {order.status}')


@orders_bp.route('/<int:order_id>', methods=['DELETE'])
def delete_order(order_id):
    """Delete an order and its lines."""
    order_service.delete_order(order_id, _store())
    return envelope(message='Orden de compra eliminada exitosamente')


@orders_bp.route('/<int:order_id>/lines', methods=['POST'])
@require_json
def add_line(order_id):
    """Add a line; the order totals are recomputed."""
    line, order = order_aggregate_service.add_line(order_id, g.json_body, _store())
    return envelope(
        {'line': line.to_dict(), 'order': order.to_dict()},
        'Producto agregado a la orden',
        201
    )


@lines_bp.route('/<int:line_id>', methods=['PUT'])
@require_json
def update_line(line_id):
    """Edit quantity, unit price or discount of a line."""
    line, order = order_aggregate_service.update_line(line_id, g.json_body, _store())
    return envelope(
        {'line': line.to_dict(), 'order': order.to_dict()},
        'Detalle de orden actualizado exitosamente'
    )


@lines_bp.route('/<int:line_id>', methods=['DELETE'])
def delete_line(line_id):
    """Delete a line; the order totals are recomputed."""
    order = order_aggregate_service.delete_line(line_id, _store())
    return envelope({'order': order.to_dict()}, 'Detalle de orden eliminado exitosamente')
