"""
Persistence boundary for the purchase order aggregate.

OrderStore wraps one SQLAlchemy session and exposes the operations the
aggregate and status services need. It never commits on its own: callers
open a transaction with begin_transaction() and finish it with commit() or
rollback(). SQLAlchemy errors leave this module as ConflictError (integrity
violations) or StoreError (anything else, flagged transient for connectivity
failures).
"""
import logging
from functools import wraps

from sqlalchemy import func
from sqlalchemy.exc import (
    DBAPIError, DisconnectionError, IntegrityError, OperationalError,
    SQLAlchemyError, TimeoutError as PoolTimeoutError
)
from sqlalchemy.orm import scoped_session

from erpcompras.exceptions import ConflictError, StoreError
from erpcompras.models import PurchaseOrder, PurchaseOrderLine

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (OperationalError, DisconnectionError, PoolTimeoutError)


def is_transient(error: Exception) -> bool:
    """True for connection drops and timeouts."""
    if isinstance(error, TRANSIENT_ERRORS):
        return True
    return isinstance(error, DBAPIError) and bool(error.connection_invalidated)


def translate_store_error(error: SQLAlchemyError):
    """Map a SQLAlchemy error to the application exception hierarchy."""
    if isinstance(error, IntegrityError):
        detail = str(error.orig).lower() if error.orig is not None else str(error).lower()
        if 'order_number' in detail:
            return ConflictError('Ya existe una orden de compra con ese número')
        if 'line_number' in detail or 'uk_order_line_number' in detail:
            return ConflictError('Ya existe una línea con ese número en la orden')
        if 'email' in detail:
            return ConflictError('Ya existe un proveedor con ese email')
        return ConflictError(f'Error de integridad: {error.orig}')

    transient = is_transient(error)
    return StoreError(f'Error de base de datos: {error}', transient=transient)


def store_operation(func_):
    """Translate SQLAlchemy errors raised by a store method."""
    @wraps(func_)
    def wrapper(*args, **kwargs):
        try:
            return func_(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Store operation {func_.__name__} failed: {e}")
            raise translate_store_error(e) from e
    return wrapper


class OrderStore:
    """Transactional access to orders and their lines through a session."""

    def __init__(self, session):
        # Either a Session or the application's scoped_session registry
        self.session = session

    def _current_session(self):
        if isinstance(self.session, scoped_session):
            return self.session()
        return self.session

    # Transaction control

    @store_operation
    def begin_transaction(self):
        """Start a transaction unless the session already has one open."""
        session = self._current_session()
        if not session.in_transaction():
            session.begin()

    @store_operation
    def commit(self):
        self.session.commit()

    def rollback(self):
        try:
            self.session.rollback()
        except SQLAlchemyError as e:
            # The original error is what the caller reports
            logger.error(f"Rollback failed: {e}")

    # Orders

    @store_operation
    def get_order(self, order_id, for_update=False):
        """Return the order or None. for_update locks the row until commit."""
        query = self.session.query(PurchaseOrder).filter(PurchaseOrder.id == order_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @store_operation
    def find_order_by_number(self, order_number):
        return self.session.query(PurchaseOrder).filter(
            PurchaseOrder.order_number == order_number
        ).first()

    @store_operation
    def insert_order(self, fields: dict):
        order = PurchaseOrder(**fields)
        self.session.add(order)
        self.session.flush()  # Get order.id
        return order

    @store_operation
    def delete_order(self, order):
        self.session.delete(order)
        self.session.flush()

    @store_operation
    def update_order_totals(self, order_id, subtotal, tax, total):
        order = self.session.get(PurchaseOrder, order_id)
        order.subtotal = subtotal
        order.tax = tax
        order.total = total
        self.session.flush()
        return order

    # Lines

    @store_operation
    def get_line(self, line_id, for_update=False):
        query = self.session.query(PurchaseOrderLine).filter(PurchaseOrderLine.id == line_id)
        if for_update:
            query = query.with_for_update()
        return query.first()

    @store_operation
    def get_lines(self, order_id):
        """Lines of an order ordered by line number."""
        return (self.session.query(PurchaseOrderLine)
                .filter(PurchaseOrderLine.order_id == order_id)
                .order_by(PurchaseOrderLine.line_number)
                .all())

    @store_operation
    def next_line_number(self, order_id):
        current = self.session.query(func.max(PurchaseOrderLine.line_number)).filter(
            PurchaseOrderLine.order_id == order_id
        ).scalar()
        return (current or 0) + 1

    @store_operation
    def line_number_taken(self, order_id, line_number, exclude_line_id=None):
        query = self.session.query(PurchaseOrderLine.id).filter(
            PurchaseOrderLine.order_id == order_id,
            PurchaseOrderLine.line_number == line_number
        )
        if exclude_line_id is not None:
            query = query.filter(PurchaseOrderLine.id != exclude_line_id)
        return query.first() is not None

    @store_operation
    def insert_line(self, order_id, fields: dict):
        """Insert a line and return it (its id is available after the flush)."""
        line = PurchaseOrderLine(order_id=order_id, **fields)
        self.session.add(line)
        self.session.flush()
        self._expire_order_lines(order_id)
        return line

    @store_operation
    def update_line(self, line_id, fields: dict):
        line = self.session.get(PurchaseOrderLine, line_id)
        for key, value in fields.items():
            setattr(line, key, value)
        self.session.flush()
        return line

    @store_operation
    def delete_line(self, line_id):
        """Delete a line and return the id of its order."""
        line = self.session.get(PurchaseOrderLine, line_id)
        order_id = line.order_id
        self.session.delete(line)
        self.session.flush()
        self._expire_order_lines(order_id)
        return order_id

    def _expire_order_lines(self, order_id):
        order = self.session.get(PurchaseOrder, order_id)
        if order is not None:
            self.session.expire(order, ['lines'])
