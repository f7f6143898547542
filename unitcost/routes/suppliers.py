from flask import Blueprint, request, jsonify
from flask_babel import gettext as _
from ..models import db, Supplier, ValidationError
from .utils import log_audit, save_changes, get_request_data, parse_bool, parse_int, require_name

suppliers_blueprint = Blueprint('suppliers', __name__)

TEXT_FIELDS = ('contact_person', 'email', 'phone', 'address', 'website', 'notes')


def apply_supplier_fields(supplier, data, creating=False):
    if creating or 'name' in data:
        name = require_name(data)
        # Check for duplicate name
        existing = Supplier.query.filter_by(name=name).first()
        if existing and existing.id != supplier.id:
            raise ValidationError(_('A supplier with this name already exists'))
        supplier.name = name

    for field in TEXT_FIELDS:
        if field in data:
            setattr(supplier, field, (data.get(field) or '').strip())

    rating = parse_int(data, 'rating')
    if rating is not None:
        supplier.rating = Supplier.clamp_rating(rating)
    if 'is_preferred' in data:
        supplier.is_preferred = parse_bool(data, 'is_preferred')


# ----------------------------
# Supplier Management
# ----------------------------
@suppliers_blueprint.route('/suppliers')
def suppliers():
    """List suppliers, preferred ones first"""
    preferred_only = request.args.get('preferred', 'false') == 'true'

    query = Supplier.query
    if preferred_only:
        query = query.filter_by(is_preferred=True)

    all_suppliers = query.order_by(Supplier.is_preferred.desc(), Supplier.name).all()
    return jsonify({'suppliers': [s.to_dict() for s in all_suppliers]})


@suppliers_blueprint.route('/suppliers', methods=['POST'])
def add_supplier():
    data = get_request_data()

    supplier = Supplier(rating=3, is_preferred=False)
    for field in TEXT_FIELDS:
        setattr(supplier, field, '')
    apply_supplier_fields(supplier, data, creating=True)

    db.session.add(supplier)
    save_changes()
    log_audit("CREATE", "Supplier", supplier.id, f"Added supplier: {supplier.name}")

    return jsonify({'success': True, 'supplier': supplier.to_dict()}), 201


@suppliers_blueprint.route('/suppliers/<int:supplier_id>')
def supplier_detail(supplier_id):
    supplier = Supplier.query.get_or_404(supplier_id)

    data = supplier.to_dict()
    data['star_rating'] = supplier.star_rating
    data['materials'] = [m.to_dict() for m in supplier.materials]
    return jsonify({'supplier': data})


@suppliers_blueprint.route('/suppliers/<int:supplier_id>/edit', methods=['POST'])
def edit_supplier(supplier_id):
    supplier = Supplier.query.get_or_404(supplier_id)
    data = get_request_data()

    apply_supplier_fields(supplier, data)
    save_changes()
    log_audit("UPDATE", "Supplier", supplier.id, f"Updated supplier: {supplier.name}")

    return jsonify({'success': True, 'supplier': supplier.to_dict()})


@suppliers_blueprint.route('/suppliers/<int:supplier_id>/delete', methods=['POST'])
def delete_supplier(supplier_id):
    supplier = Supplier.query.get_or_404(supplier_id)
    name = supplier.name

    # Materials stay, their supplier reference is cleared
    db.session.delete(supplier)
    save_changes()
    log_audit("DELETE", "Supplier", supplier_id, f"Deleted supplier: {name}")

    return jsonify({'success': True})
