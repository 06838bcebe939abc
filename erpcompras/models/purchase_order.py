"""Purchase Order model."""
import enum
from sqlalchemy import Column, BigInteger, String, Text, Date, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erpcompras.database import Base, BigIntegerPK


class OrderStatus(enum.Enum):
    """Order status, valued with the label persisted in purchase_order.status."""
    PENDING = "Pendiente"
    APPROVED = "Aprobada"
    REJECTED = "Rechazada"
    IN_PROCESS = "En proceso"
    COMPLETED = "Completada"
    CANCELLED = "Cancelada"


# External status code <-> persisted status. Every status appears exactly once.
ORDER_STATUS_TABLE = (
    ('PENDIENTE', OrderStatus.PENDING),
    ('APROBADA', OrderStatus.APPROVED),
    ('RECHAZADA', OrderStatus.REJECTED),
    ('EN_PROCESO', OrderStatus.IN_PROCESS),
    ('ENTREGADA', OrderStatus.COMPLETED),
    ('CANCELADA', OrderStatus.CANCELLED),
)

STATUS_BY_CODE = {code: status for code, status in ORDER_STATUS_TABLE}
CODE_BY_STATUS = {status: code for code, status in ORDER_STATUS_TABLE}

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.REJECTED})

CURRENCIES = ('GTQ', 'USD')


def _money(value):
    return float(value) if value is not None else 0.0


class PurchaseOrder(Base):
    """Purchase Order (orden de compra)."""

    __tablename__ = 'purchase_order'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    supplier_id = Column(BigInteger, ForeignKey('supplier.id', ondelete='RESTRICT'), nullable=False, index=True)
    order_number = Column(String(50), nullable=False, unique=True)
    order_date = Column(Date, nullable=False, index=True)
    expected_delivery_date = Column(Date, nullable=True)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value, index=True)
    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    tax = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default='GTQ')
    payment_terms = Column(String(255), nullable=True, default='30 días')
    notes = Column(Text, nullable=True)
    created_by = Column(BigInteger, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    supplier = relationship('Supplier', back_populates='orders')
    lines = relationship(
        'PurchaseOrderLine',
        back_populates='order',
        cascade='all, delete-orphan',
        passive_deletes=True,
        order_by='PurchaseOrderLine.line_number'
    )

    def __repr__(self):
        return f"<PurchaseOrder(id={self.id}, order_number='{self.order_number}', status='{self.status}', total={self.total})>"

    @property
    def status_enum(self):
        return OrderStatus(self.status)

    @property
    def status_code(self):
        """External status code (e.g. ENTREGADA for a persisted Completada)."""
        return CODE_BY_STATUS[self.status_enum]

    @property
    def is_terminal(self):
        return self.status_enum in TERMINAL_STATUSES

    def to_dict(self, include_lines=False):
        """Convert to dictionary for JSON serialization."""
        data = {
            'id': self.id,
            'supplier_id': self.supplier_id,
            'supplier_name': self.supplier.name if self.supplier else None,
            'order_number': self.order_number,
            'order_date': self.order_date.isoformat() if self.order_date else None,
            'expected_delivery_date': (
                self.expected_delivery_date.isoformat() if self.expected_delivery_date else None
            ),
            'status': self.status,
            'status_code': self.status_code,
            'currency': self.currency,
            'payment_terms': self.payment_terms,
            'notes': self.notes,
            'created_by': self.created_by,
            'subtotal': _money(self.subtotal),
            'tax': _money(self.tax),
            'total': _money(self.total),
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_lines:
            data['lines'] = [line.to_dict() for line in self.lines]
        return data
