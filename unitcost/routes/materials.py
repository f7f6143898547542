from flask import Blueprint, request, jsonify
from flask_babel import gettext as _
from ..models import db, Material, Supplier, ValidationError, low_stock_materials
from ..units import units_list, unit_display_name, MATERIAL_CATEGORIES, CURRENCIES, STOCK_STATUS_LABELS
from .utils import (
    log_audit, save_changes, get_request_data, parse_float, require_name, require_choice
)

materials_blueprint = Blueprint('materials', __name__)


def apply_material_fields(material, data, creating=False):
    """Copy validated request fields onto a material. Missing fields keep their current value."""
    if creating or 'name' in data:
        material.name = require_name(data)

    if data.get('category'):
        material.category = require_choice(data['category'], MATERIAL_CATEGORIES, 'category')
    if data.get('unit_type'):
        material.unit_type = require_choice(data['unit_type'], units_list, 'unit')
    if data.get('currency_code'):
        material.currency_code = require_choice(data['currency_code'], CURRENCIES, 'currency')

    bulk_price = parse_float(data, 'bulk_price', minimum=0)
    if bulk_price is not None:
        material.bulk_price = bulk_price

    bulk_amount = parse_float(data, 'bulk_amount', positive=True)
    if bulk_amount is not None:
        material.bulk_amount = bulk_amount

    for field in ('current_stock', 'minimum_stock', 'reorder_point'):
        value = parse_float(data, field, minimum=0)
        if value is not None:
            setattr(material, field, value)

    if 'sku' in data:
        material.sku = (data.get('sku') or '').strip()

    if 'supplier_id' in data:
        supplier_id = data.get('supplier_id')
        if supplier_id in (None, ''):
            material.supplier = None
        else:
            try:
                supplier = db.session.get(Supplier, int(supplier_id))
            except (TypeError, ValueError):
                supplier = None
            if supplier is None:
                raise ValidationError(_('Supplier not found'))
            material.supplier = supplier


# ----------------------------
# Materials Management
# ----------------------------
@materials_blueprint.route('/materials')
def materials():
    query = Material.query
    category = request.args.get('category')
    if category:
        query = query.filter_by(category=category)

    all_materials = query.order_by(Material.name).all()

    status = request.args.get('status')
    if status:
        require_choice(status, STOCK_STATUS_LABELS, 'status')
        all_materials = [m for m in all_materials if m.stock_status == status]

    return jsonify({'materials': [m.to_dict() for m in all_materials]})


@materials_blueprint.route('/materials', methods=['POST'])
def add_material():
    data = get_request_data()

    material = Material(
        category='Raw Material',
        bulk_price=0.0,
        bulk_amount=1.0,
        unit_type='kg',
        current_stock=0.0,
        minimum_stock=0.0,
        reorder_point=0.0,
        sku='',
        currency_code='USD'
    )
    apply_material_fields(material, data, creating=True)

    db.session.add(material)
    save_changes()
    log_audit("CREATE", "Material", material.id, f"Created material {material.name}")

    return jsonify({'success': True, 'material': material.to_dict()}), 201


@materials_blueprint.route('/materials/<int:material_id>')
def material_detail(material_id):
    material = Material.query.get_or_404(material_id)

    data = material.to_dict()
    data['formatted_unit_price'] = material.formatted_unit_price
    data['formatted_bulk_price'] = material.formatted_bulk_price
    data['unit_name'] = unit_display_name(material.unit_type)
    data['used_in_products'] = sorted({i.product.name for i in material.ingredients if i.product})
    return jsonify({'material': data})


@materials_blueprint.route('/materials/<int:material_id>/edit', methods=['POST'])
def edit_material(material_id):
    material = Material.query.get_or_404(material_id)
    data = get_request_data()

    apply_material_fields(material, data)
    save_changes()
    log_audit("UPDATE", "Material", material.id, f"Updated material {material.name}")

    return jsonify({'success': True, 'material': material.to_dict()})


@materials_blueprint.route('/materials/<int:material_id>/delete', methods=['POST'])
def delete_material(material_id):
    material = Material.query.get_or_404(material_id)
    name = material.name
    affected_products = sorted({i.product.name for i in material.ingredients if i.product})

    # Recipe lines and price history go with the material
    db.session.delete(material)
    save_changes()
    log_audit("DELETE", "Material", material_id,
              f"Deleted material {name}, removed from {len(affected_products)} product(s)")

    return jsonify({'success': True, 'affected_products': affected_products})


# ----------------------------
# Price History
# ----------------------------
@materials_blueprint.route('/materials/<int:material_id>/price-history')
def price_history(material_id):
    material = Material.query.get_or_404(material_id)
    history = material.sorted_price_history()

    entries = []
    for index, entry in enumerate(history):
        row = entry.to_dict()
        # Change against the next older snapshot
        if index + 1 < len(history):
            row['change_percentage'] = entry.change_percentage(history[index + 1].unit_price)
        else:
            row['change_percentage'] = None
        entries.append(row)

    return jsonify({
        'material_id': material.id,
        'current_unit_price': material.unit_price,
        'price_change_percentage': material.price_change_percentage,
        'history': entries
    })


@materials_blueprint.route('/materials/<int:material_id>/price-history', methods=['POST'])
def record_price(material_id):
    material = Material.query.get_or_404(material_id)
    data = get_request_data()

    entry = material.record_price_history(note=(data.get('note') or '').strip())
    save_changes()
    log_audit("CREATE", "PriceHistory", entry.id,
              f"Recorded price {material.formatted_unit_price} for {material.name}")

    return jsonify({'success': True, 'entry': entry.to_dict()}), 201


# ----------------------------
# Stock Tracking
# ----------------------------
@materials_blueprint.route('/materials/stock')
def stock_tracking():
    """Materials that need attention, lowest stock level first"""
    all_materials = Material.query.all()
    attention = low_stock_materials(all_materials)

    counts = {status: 0 for status in STOCK_STATUS_LABELS}
    for material in all_materials:
        counts[material.stock_status] += 1

    return jsonify({
        'materials': [m.to_dict() for m in attention],
        'status_counts': counts
    })


@materials_blueprint.route('/materials/<int:material_id>/stock', methods=['POST'])
def update_stock(material_id):
    """Set the stock level or add to it ('action_type' is 'set' or 'add')"""
    material = Material.query.get_or_404(material_id)
    data = get_request_data()

    action_type = data.get('action_type', 'set')
    require_choice(action_type, ('set', 'add'), 'action_type')

    if action_type == 'set':
        quantity = parse_float(data, 'quantity', minimum=0)
        if quantity is None:
            raise ValidationError(_('quantity is required'))
        material.current_stock = quantity
    else:
        quantity = parse_float(data, 'quantity')
        if quantity is None:
            raise ValidationError(_('quantity is required'))
        material.current_stock = max(0.0, (material.current_stock or 0) + quantity)

    save_changes()
    log_audit("UPDATE", "Material", material.id,
              f"Stock {action_type} {quantity} for {material.name}, now {material.current_stock}")

    return jsonify({'success': True, 'material': material.to_dict()})
