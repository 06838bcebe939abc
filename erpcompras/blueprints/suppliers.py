"""Suppliers blueprint for CRUD operations."""
from flask import Blueprint, g, request
from erpcompras.database import get_session
from erpcompras.middleware import envelope, require_json
from erpcompras.services import supplier_service

suppliers_bp = Blueprint('suppliers', __name__, url_prefix='/suppliers')


@suppliers_bp.route('/', methods=['GET'], strict_slashes=False)
def list_suppliers():
    """List suppliers. Query params: q (search), status."""
    suppliers = supplier_service.list_suppliers(
        get_session(),
        search=request.args.get('q', '').strip() or None,
        status=request.args.get('status', '').strip() or None
    )
    return envelope([supplier.to_dict() for supplier in suppliers])


@suppliers_bp.route('/<int:supplier_id>', methods=['GET'])
def get_supplier(supplier_id):
    supplier = supplier_service.get_supplier(supplier_id, get_session())
    return envelope(supplier.to_dict())


@suppliers_bp.route('/', methods=['POST'], strict_slashes=False)
@require_json
def create_supplier():
    supplier = supplier_service.create_supplier(g.json_body, get_session())
    return envelope(supplier.to_dict(), f'Proveedor "{supplier.name}" creado exitosamente', 201)


@suppliers_bp.route('/<int:supplier_id>', methods=['PUT'])
@require_json
def update_supplier(supplier_id):
    supplier = supplier_service.update_supplier(supplier_id, g.json_body, get_session())
    return envelope(supplier.to_dict(), f'Proveedor "{supplier.name}" actualizado exitosamente')


@suppliers_bp.route('/<int:supplier_id>', methods=['DELETE'])
def deactivate_supplier(supplier_id):
    """Soft delete (status Inactivo)."""
    supplier = supplier_service.deactivate_supplier(supplier_id, get_session())
    return envelope(supplier.to_dict(), f'Proveedor "{supplier.name}" inactivado')


@suppliers_bp.route('/<int:supplier_id>/hard', methods=['DELETE'])
def delete_supplier(supplier_id):
    """Permanent delete; refused while purchase orders reference the supplier."""
    supplier_service.delete_supplier(supplier_id, get_session())
    return envelope(message='Proveedor eliminado permanentemente')
