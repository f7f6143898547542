from flask import Blueprint, jsonify
from flask_babel import gettext as _
from ..models import db, Product, ProductTemplate, Ingredient, ValidationError
from .utils import log_audit, save_changes, get_request_data, require_name, product_with_costs

templates_blueprint = Blueprint('templates', __name__)


# ----------------------------
# Product Templates
# ----------------------------
@templates_blueprint.route('/templates')
def templates():
    all_templates = ProductTemplate.query.order_by(ProductTemplate.name).all()
    return jsonify({'templates': [t.to_dict() for t in all_templates]})


@templates_blueprint.route('/products/<int:product_id>/template', methods=['POST'])
def create_template(product_id):
    """Save a product's settings and recipe as a reusable template"""
    product = Product.query.get_or_404(product_id)
    data = get_request_data()

    template = ProductTemplate.from_product(product)
    template.usage_count = 0
    if data.get('name'):
        template.name = require_name(data)
    if 'description' in data:
        template.description = (data.get('description') or '').strip()

    db.session.add(template)
    save_changes()
    log_audit("CREATE", "ProductTemplate", template.id, f"Created template {template.name} from {product.name}")

    return jsonify({'success': True, 'template': template.to_dict()}), 201


@templates_blueprint.route('/templates/<int:template_id>/use', methods=['POST'])
def use_template(template_id):
    """
    Create a new product from a template.

    The template's values are copied; materials that have been deleted since
    the template was saved are skipped.
    """
    template = ProductTemplate.query.get_or_404(template_id)
    data = get_request_data()
    if not (data.get('name') or '').strip():
        raise ValidationError(_('Product name is required'))

    product = Product(
        name=require_name(data),
        description='',
        markup_percentage=template.default_markup_percentage,
        overhead_percentage=template.default_overhead_percentage,
        time_to_produce=template.default_time_to_produce,
        icon_name=template.icon_name,
        category=template.category,
        fixed_costs=0.0,
        target_units_per_month=100,
        default_batch_size=1
    )

    skipped = []
    for line in template.ingredient_data:
        if line.material is None:
            skipped.append(line.material_name)
            continue
        product.ingredients.append(Ingredient(amount_required=line.amount_required, material=line.material))

    template.usage_count = (template.usage_count or 0) + 1

    db.session.add(product)
    save_changes()
    log_audit("CREATE", "Product", product.id, f"Created product {product.name} from template {template.name}")

    return jsonify({
        'success': True,
        'product': product_with_costs(product),
        'skipped_materials': skipped
    }), 201


@templates_blueprint.route('/templates/<int:template_id>/delete', methods=['POST'])
def delete_template(template_id):
    template = ProductTemplate.query.get_or_404(template_id)
    name = template.name

    db.session.delete(template)
    save_changes()
    log_audit("DELETE", "ProductTemplate", template_id, f"Deleted template {name}")

    return jsonify({'success': True})
