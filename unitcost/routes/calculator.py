from flask import Blueprint, request, jsonify
from flask_babel import gettext as _
from ..models import Product, ValidationError
from ..settings import resolve_costing_settings
from ..costing import (
    snapshot_product, batch_cost, break_even_analysis, scenario_analysis,
    quick_calculation, compare_products
)
from .utils import get_request_data, parse_float, parse_int

calculator_blueprint = Blueprint('calculator', __name__)


# ----------------------------
# Per-product Calculators
# ----------------------------
@calculator_blueprint.route('/products/<int:product_id>/batch')
def batch(product_id):
    product = Product.query.get_or_404(product_id)
    settings = resolve_costing_settings()

    quantity = parse_int(request.args, 'quantity', default=product.default_batch_size, minimum=1)
    result = batch_cost(snapshot_product(product), quantity, settings.hourly_rate)

    return jsonify({'product_id': product.id, 'hourly_rate': settings.hourly_rate, 'batch': result.to_dict()})


@calculator_blueprint.route('/products/<int:product_id>/break-even')
def break_even(product_id):
    product = Product.query.get_or_404(product_id)
    settings = resolve_costing_settings()

    result = break_even_analysis(snapshot_product(product), settings.hourly_rate)
    return jsonify({'product_id': product.id, 'hourly_rate': settings.hourly_rate, 'break_even': result.to_dict()})


@calculator_blueprint.route('/products/<int:product_id>/scenario')
def scenario(product_id):
    """What-if view. Nothing is saved."""
    product = Product.query.get_or_404(product_id)
    settings = resolve_costing_settings()

    material_change = parse_float(request.args, 'material_change', default=0.0)
    labor_change = parse_float(request.args, 'labor_change', default=0.0)

    result = scenario_analysis(snapshot_product(product), material_change, labor_change, settings.hourly_rate)
    return jsonify({
        'product_id': product.id,
        'hourly_rate': settings.hourly_rate,
        'material_change': material_change,
        'labor_change': labor_change,
        'scenario': result.to_dict()
    })


# ----------------------------
# Quick Calculator & Comparison
# ----------------------------
@calculator_blueprint.route('/calculator/quick', methods=['POST'])
def quick():
    data = get_request_data()
    settings = resolve_costing_settings()

    result = quick_calculation(
        parse_float(data, 'material_cost', default=0.0, minimum=0),
        parse_float(data, 'labor_hours', default=1.0, minimum=0),
        parse_float(data, 'overhead_percent', default=settings.total_overhead_percentage, minimum=0),
        parse_float(data, 'markup_percent', default=30.0, minimum=0),
        parse_int(data, 'quantity', default=1, minimum=1),
        settings.hourly_rate
    )
    return jsonify(result)


@calculator_blueprint.route('/compare')
def compare():
    raw_ids = request.args.get('ids', '')
    try:
        ids = [int(i) for i in raw_ids.split(',') if i.strip()]
    except ValueError:
        raise ValidationError(_('ids must be a comma separated list of product ids'))

    settings = resolve_costing_settings()
    selected = Product.query.filter(Product.id.in_(ids)).all() if ids else []
    # Keep the order the ids were given in
    order = {product_id: index for index, product_id in enumerate(ids)}
    selected.sort(key=lambda p: order[p.id])

    result = compare_products([snapshot_product(p) for p in selected], settings.hourly_rate)
    result['hourly_rate'] = settings.hourly_rate
    return jsonify(result)
