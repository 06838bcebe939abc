"""Purchase Order Line model."""
from sqlalchemy import (
    Column, BigInteger, Integer, String, Numeric, ForeignKey,
    CheckConstraint, UniqueConstraint
)
from sqlalchemy.orm import relationship
from erpcompras.database import Base, BigIntegerPK


class PurchaseOrderLine(Base):
    """Purchase Order Line (detalle de orden de compra)."""

    __tablename__ = 'purchase_order_line'
    __table_args__ = (
        UniqueConstraint('order_id', 'line_number', name='uk_order_line_number'),
        CheckConstraint('quantity > 0', name='ck_order_line_quantity_positive'),
        CheckConstraint('unit_price >= 0', name='ck_order_line_unit_price_non_negative'),
        CheckConstraint('discount_pct >= 0 AND discount_pct <= 100', name='ck_order_line_discount_range'),
    )

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    order_id = Column(BigInteger, ForeignKey('purchase_order.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigInteger, nullable=False, index=True)
    product_description = Column(String(255), nullable=True)
    line_number = Column(Integer, nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    discount_pct = Column(Numeric(5, 2), nullable=False, default=0)

    # Derived by the line calculator, never taken from the client
    line_subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    line_tax = Column(Numeric(15, 2), nullable=False, default=0)
    line_total = Column(Numeric(15, 2), nullable=False, default=0)

    # Relationships
    order = relationship('PurchaseOrder', back_populates='lines')

    def __repr__(self):
        return (
            f"<PurchaseOrderLine(id={self.id}, order_id={self.order_id}, "
            f"line_number={self.line_number}, total={self.line_total})>"
        )

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'order_id': self.order_id,
            'line_number': self.line_number,
            'product_id': self.product_id,
            'product_description': self.product_description,
            'quantity': float(self.quantity),
            'unit_price': float(self.unit_price),
            'discount_pct': float(self.discount_pct or 0),
            'line_subtotal': float(self.line_subtotal),
            'line_tax': float(self.line_tax),
            'line_total': float(self.line_total),
        }
