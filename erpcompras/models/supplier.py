"""Supplier model."""
import enum
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from erpcompras.database import Base, BigIntegerPK


class SupplierStatus(enum.Enum):
    """Supplier lifecycle status."""
    ACTIVE = "Activo"
    INACTIVE = "Inactivo"


class Supplier(Base):
    """Supplier (proveedor)."""

    __tablename__ = 'supplier'

    id = Column(BigIntegerPK, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    tax_id = Column(String(20), nullable=True)
    contact_name = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=False, unique=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    country = Column(String(100), nullable=False, default='Guatemala')
    status = Column(String(10), nullable=False, default=SupplierStatus.ACTIVE.value)
    registered_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    # Relationships
    orders = relationship('PurchaseOrder', back_populates='supplier', passive_deletes='all')

    def __repr__(self):
        return f"<Supplier(id={self.id}, name='{self.name}', status='{self.status}')>"

    @property
    def is_active(self):
        return self.status == SupplierStatus.ACTIVE.value

    def to_dict(self):
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'name': self.name,
            'tax_id': self.tax_id,
            'contact_name': self.contact_name,
            'phone': self.phone,
            'email': self.email,
            'address': self.address,
            'city': self.city,
            'country': self.country,
            'status': self.status,
            'registered_at': self.registered_at.isoformat() if self.registered_at else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
