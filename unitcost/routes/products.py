from flask import Blueprint, request, jsonify
from flask_babel import gettext as _
from ..models import db, Product, Ingredient, Material, ProductNote, ValidationError
from ..units import PRODUCT_CATEGORIES, NOTE_CATEGORIES
from ..settings import resolve_costing_settings
from .utils import (
    log_audit, save_changes, get_request_data, parse_float, parse_int, parse_bool,
    require_name, require_choice, product_with_costs
)

products_blueprint = Blueprint('products', __name__)


def apply_product_fields(product, data, creating=False):
    if creating or 'name' in data:
        product.name = require_name(data)

    if 'description' in data:
        product.description = (data.get('description') or '').strip()
    if data.get('category'):
        product.category = require_choice(data['category'], PRODUCT_CATEGORIES, 'category')
    if data.get('icon_name'):
        product.icon_name = data['icon_name']

    for field in ('markup_percentage', 'overhead_percentage', 'time_to_produce', 'fixed_costs'):
        value = parse_float(data, field, minimum=0)
        if value is not None:
            setattr(product, field, value)

    target = parse_int(data, 'target_units_per_month', minimum=0)
    if target is not None:
        product.target_units_per_month = target

    batch_size = parse_int(data, 'default_batch_size', minimum=1)
    if batch_size is not None:
        product.default_batch_size = batch_size


def get_material_or_error(material_id):
    try:
        material = db.session.get(Material, int(material_id))
    except (TypeError, ValueError):
        material = None
    if material is None:
        raise ValidationError(_('Material not found'))
    return material


# ----------------------------
# Product Catalog
# ----------------------------
@products_blueprint.route('/products')
def products():
    settings = resolve_costing_settings()

    query = Product.query
    category = request.args.get('category')
    if category:
        query = query.filter_by(category=category)

    all_products = query.order_by(Product.name).all()
    return jsonify({
        'hourly_rate': settings.hourly_rate,
        'products': [product_with_costs(p, settings) for p in all_products]
    })


@products_blueprint.route('/products', methods=['POST'])
def add_product():
    data = get_request_data()
    settings = resolve_costing_settings()

    product = Product(
        description='',
        markup_percentage=30.0,
        # New products start from the configured overhead total
        overhead_percentage=settings.total_overhead_percentage,
        time_to_produce=1.0,
        icon_name='shippingbox.fill',
        category='General',
        fixed_costs=0.0,
        target_units_per_month=100,
        default_batch_size=1
    )
    apply_product_fields(product, data, creating=True)

    lines = data.get('ingredients') or []
    if not isinstance(lines, list) or not all(isinstance(line, dict) for line in lines):
        raise ValidationError(_('ingredients must be a list of objects'))

    for line in lines:
        amount = parse_float(line, 'amount_required', positive=True)
        if amount is None:
            raise ValidationError(_('amount_required is required'))
        product.ingredients.append(Ingredient(
            amount_required=amount,
            material=get_material_or_error(line.get('material_id'))
        ))

    db.session.add(product)
    save_changes()
    log_audit("CREATE", "Product", product.id, f"Created product {product.name}")

    return jsonify({'success': True, 'product': product_with_costs(product, settings)}), 201


@products_blueprint.route('/products/<int:product_id>')
def product_detail(product_id):
    product = Product.query.get_or_404(product_id)

    data = product_with_costs(product)
    notes = sorted(product.notes, key=lambda n: (not n.is_pinned, -(n.id or 0)))
    data['notes'] = [n.to_dict() for n in notes]
    return jsonify({'product': data})


@products_blueprint.route('/products/<int:product_id>/edit', methods=['POST'])
def edit_product(product_id):
    product = Product.query.get_or_404(product_id)
    data = get_request_data()

    apply_product_fields(product, data)
    save_changes()
    log_audit("UPDATE", "Product", product.id, f"Updated product {product.name}")

    return jsonify({'success': True, 'product': product_with_costs(product)})


@products_blueprint.route('/products/<int:product_id>/delete', methods=['POST'])
def delete_product(product_id):
    product = Product.query.get_or_404(product_id)
    name = product.name

    # Ingredients and notes are removed with the product
    db.session.delete(product)
    save_changes()
    log_audit("DELETE", "Product", product_id, f"Deleted product {name}")

    return jsonify({'success': True})


@products_blueprint.route('/products/<int:product_id>/duplicate', methods=['POST'])
def duplicate_product(product_id):
    product = Product.query.get_or_404(product_id)

    copy = product.duplicate()
    db.session.add(copy)
    save_changes()
    log_audit("CREATE", "Product", copy.id, f"Duplicated product {product.name}")

    return jsonify({'success': True, 'product': product_with_costs(copy)}), 201


# ----------------------------
# Recipe (Ingredients)
# ----------------------------
@products_blueprint.route('/products/<int:product_id>/ingredients', methods=['POST'])
def add_ingredient(product_id):
    product = Product.query.get_or_404(product_id)
    data = get_request_data()

    amount = parse_float(data, 'amount_required', positive=True)
    if amount is None:
        raise ValidationError(_('amount_required is required'))
    material = get_material_or_error(data.get('material_id'))

    ingredient = Ingredient(amount_required=amount, material=material, product=product)
    db.session.add(ingredient)
    save_changes()
    log_audit("CREATE", "Ingredient", ingredient.id,
              f"Added {amount} {material.unit_type} of {material.name} to {product.name}")

    return jsonify({'success': True, 'ingredient': ingredient.to_dict(),
                    'product': product_with_costs(product)}), 201


@products_blueprint.route('/ingredients/<int:ingredient_id>/edit', methods=['POST'])
def edit_ingredient(ingredient_id):
    ingredient = Ingredient.query.get_or_404(ingredient_id)
    data = get_request_data()

    amount = parse_float(data, 'amount_required', positive=True)
    if amount is not None:
        ingredient.amount_required = amount
    if data.get('material_id'):
        ingredient.material = get_material_or_error(data['material_id'])

    save_changes()
    log_audit("UPDATE", "Ingredient", ingredient.id,
              f"Updated {ingredient.display_name} in {ingredient.product.name}")

    return jsonify({'success': True, 'ingredient': ingredient.to_dict(),
                    'product': product_with_costs(ingredient.product)})


@products_blueprint.route('/ingredients/<int:ingredient_id>/delete', methods=['POST'])
def delete_ingredient(ingredient_id):
    ingredient = Ingredient.query.get_or_404(ingredient_id)
    product = ingredient.product
    description = f"Removed {ingredient.display_name} from {product.name}"

    db.session.delete(ingredient)
    save_changes()
    log_audit("DELETE", "Ingredient", ingredient_id, description)

    return jsonify({'success': True, 'product': product_with_costs(product)})


# ----------------------------
# Product Notes
# ----------------------------
@products_blueprint.route('/products/<int:product_id>/notes', methods=['POST'])
def add_note(product_id):
    product = Product.query.get_or_404(product_id)
    data = get_request_data()

    content = (data.get('content') or '').strip()
    if not content:
        raise ValidationError(_('Note content is required'))

    note = ProductNote(
        product=product,
        content=content,
        category=require_choice(data.get('category') or 'General', NOTE_CATEGORIES, 'category'),
        is_pinned=parse_bool(data, 'is_pinned')
    )
    db.session.add(note)
    save_changes()
    log_audit("CREATE", "ProductNote", note.id, f"Added note to {product.name}")

    return jsonify({'success': True, 'note': note.to_dict()}), 201


@products_blueprint.route('/products/<int:product_id>/notes/<int:note_id>/edit', methods=['POST'])
def edit_note(product_id, note_id):
    note = ProductNote.query.filter_by(id=note_id, product_id=product_id).first_or_404()
    data = get_request_data()

    if 'content' in data:
        content = (data.get('content') or '').strip()
        if not content:
            raise ValidationError(_('Note content is required'))
        note.content = content
    if data.get('category'):
        note.category = require_choice(data['category'], NOTE_CATEGORIES, 'category')
    if 'is_pinned' in data:
        note.is_pinned = parse_bool(data, 'is_pinned')

    save_changes()
    log_audit("UPDATE", "ProductNote", note.id, f"Updated note on product {product_id}")

    return jsonify({'success': True, 'note': note.to_dict()})


@products_blueprint.route('/products/<int:product_id>/notes/<int:note_id>/delete', methods=['POST'])
def delete_note(product_id, note_id):
    note = ProductNote.query.filter_by(id=note_id, product_id=product_id).first_or_404()

    db.session.delete(note)
    save_changes()
    log_audit("DELETE", "ProductNote", note_id, f"Deleted note from product {product_id}")

    return jsonify({'success': True})
