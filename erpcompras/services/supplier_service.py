"""Supplier service - CRUD with soft and hard delete."""
import logging
import re

from flask import current_app, has_app_context
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from erpcompras.database import execute_with_retry
from erpcompras.exceptions import ConflictError, NotFoundError, ValidationError
from erpcompras.models import PurchaseOrder, Supplier, SupplierStatus
from erpcompras.services.order_store import translate_store_error
from erpcompras.utils.number_format import parse_date

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')

TEXT_FIELDS = ('name', 'tax_id', 'contact_name', 'phone', 'email', 'address', 'city', 'country')
SUPPLIER_STATUSES = {status.value.upper(): status.value for status in SupplierStatus}


def _clean_text(value):
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def clean_supplier_payload(payload: dict, partial: bool = False) -> dict:
    """
    Validate supplier fields.

    Args:
        partial: only validate the keys present (updates)

    Raises:
        ValidationError: missing name/email, bad email or unknown status
    """
    if not isinstance(payload, dict):
        raise ValidationError('El cuerpo de la solicitud debe ser un objeto JSON')

    data = {}
    for field in TEXT_FIELDS:
        if field in payload or not partial:
            data[field] = _clean_text(payload.get(field))

    for field in ('name', 'email'):
        if field in data and not data[field]:
            raise ValidationError(f'El campo "{field}" es requerido')

    if data.get('email'):
        data['email'] = data['email'].lower()
        if not EMAIL_PATTERN.match(data['email']):
            raise ValidationError('Email inválido. Use formato: usuario@dominio.com')

    if 'country' in data and not data['country']:
        if partial:
            data.pop('country')
        else:
            data['country'] = (
                current_app.config.get('DEFAULT_COUNTRY', 'Guatemala') if has_app_context() else 'Guatemala'
            )

    if 'status' in payload or not partial:
        raw_status = _clean_text(payload.get('status')) or SupplierStatus.ACTIVE.value
        status = SUPPLIER_STATUSES.get(raw_status.upper())
        if status is None:
            raise ValidationError('Estado inválido. Use Activo o Inactivo')
        data['status'] = status

    if 'registered_at' in payload:
        data['registered_at'] = parse_date(payload.get('registered_at'), 'registered_at')

    return data


def _commit(session):
    try:
        session.commit()
    except IntegrityError as e:
        session.rollback()
        error_msg = str(e.orig).lower()
        if 'unique' in error_msg and 'email' in error_msg:
            raise ConflictError('Ya existe un proveedor con ese email')
        raise ConflictError(f'Error de integridad: {e.orig}')
    except SQLAlchemyError as e:
        session.rollback()
        raise translate_store_error(e) from e


def _email_taken(session, email, exclude_id=None):
    query = session.query(Supplier.id).filter(func.lower(Supplier.email) == email.lower())
    if exclude_id is not None:
        query = query.filter(Supplier.id != exclude_id)
    return query.first() is not None


def list_suppliers(session, search=None, status=None):
    """List suppliers ordered by name, optionally filtered."""
    def _query():
        try:
            query = session.query(Supplier)
            if search:
                pattern = f'%{search.lower()}%'
                query = query.filter(or_(
                    func.lower(Supplier.name).like(pattern),
                    func.lower(Supplier.tax_id).like(pattern),
                    func.lower(Supplier.email).like(pattern),
                    func.lower(Supplier.contact_name).like(pattern)
                ))
            if status:
                query = query.filter(Supplier.status == SUPPLIER_STATUSES.get(status.upper(), status))
            return query.order_by(Supplier.name).all()
        except SQLAlchemyError as e:
            session.rollback()
            raise translate_store_error(e) from e

    return execute_with_retry(_query)


def get_supplier(supplier_id, session):
    def _query():
        try:
            return session.get(Supplier, supplier_id)
        except SQLAlchemyError as e:
            session.rollback()
            raise translate_store_error(e) from e

    supplier = execute_with_retry(_query)
    if not supplier:
        raise NotFoundError('Proveedor no encontrado')
    return supplier


def create_supplier(payload: dict, session):
    """
    Create a supplier.

    Raises:
        ValidationError, ConflictError (duplicate email)
    """
    data = clean_supplier_payload(payload)

    if _email_taken(session, data['email']):
        raise ConflictError(f'Ya existe un proveedor con el email "{data["email"]}"')

    supplier = Supplier(**data)
    session.add(supplier)
    _commit(session)

    logger.info(f"Supplier {supplier.id} created: {supplier.name}")
    return supplier


def update_supplier(supplier_id, payload: dict, session):
    """Update the supplier fields present in payload."""
    data = clean_supplier_payload(payload, partial=True)
    supplier = get_supplier(supplier_id, session)

    if data.get('email') and _email_taken(session, data['email'], exclude_id=supplier.id):
        raise ConflictError(f'Ya existe un proveedor con el email "{data["email"]}"')

    for field, value in data.items():
        setattr(supplier, field, value)
    _commit(session)

    logger.info(f"Supplier {supplier.id} updated")
    return supplier


def deactivate_supplier(supplier_id, session):
    """Soft delete: mark the supplier Inactivo."""
    supplier = get_supplier(supplier_id, session)
    supplier.status = SupplierStatus.INACTIVE.value
    _commit(session)

    logger.info(f"Supplier {supplier.id} deactivated")
    return supplier


def delete_supplier(supplier_id, session):
    """
    Hard delete a supplier.

    Raises:
        ConflictError: the supplier is referenced by purchase orders
    """
    supplier = get_supplier(supplier_id, session)

    order_count = session.query(func.count(PurchaseOrder.id)).filter(
        PurchaseOrder.supplier_id == supplier.id
    ).scalar()
    if order_count:
        raise ConflictError(
            f'El proveedor tiene {order_count} órdenes de compra asociadas y no puede eliminarse',
            payload={'order_count': order_count}
        )

    session.delete(supplier)
    _commit(session)
    logger.info(f"Supplier {supplier_id} deleted")
