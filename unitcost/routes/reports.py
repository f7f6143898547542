import csv
import io
from datetime import datetime
from flask import Blueprint, jsonify, send_file, current_app
from ..models import Product, Material
from ..settings import resolve_costing_settings
from ..costing import snapshot_product, cost_breakdown, portfolio_summary
from ..units import STOCK_STATUS_LABELS

reports_blueprint = Blueprint('reports', __name__)

PRODUCT_REPORT_COLUMNS = [
    'Name', 'Material Cost', 'Labor Cost', 'Prime Cost', 'Overhead %', 'Total Cost',
    'Markup %', 'Final Price', 'Net Profit', 'Margin %', 'Time (hrs)', 'Ingredients'
]

MATERIAL_REPORT_COLUMNS = [
    'Name', 'Category', 'Bulk Price', 'Bulk Amount', 'Unit', 'Price Per Unit',
    'Current Stock', 'Min Stock', 'SKU', 'Supplier'
]


def product_report_row(product, snapshot, hourly_rate):
    costs = cost_breakdown(snapshot, hourly_rate)
    return [
        product.name,
        "%.2f" % costs.material_cost,
        "%.2f" % costs.labor_cost,
        "%.2f" % costs.prime_cost,
        "%.1f" % snapshot.overhead_percentage,
        "%.2f" % costs.total_cost,
        "%.1f" % snapshot.markup_percentage,
        "%.2f" % costs.final_price,
        "%.2f" % costs.net_profit,
        "%.1f" % costs.profit_margin,
        "%.2f" % snapshot.time_to_produce,
        str(product.ingredient_count)
    ]


def material_report_row(material):
    return [
        material.name,
        material.category,
        "%.2f" % (material.bulk_price or 0),
        "%.2f" % (material.bulk_amount or 0),
        material.unit_type,
        "%.4f" % material.unit_price,
        "%.2f" % (material.current_stock or 0),
        "%.2f" % (material.minimum_stock or 0),
        material.sku or '',
        material.supplier.name if material.supplier else ''
    ]


def build_products_csv(products, hourly_rate):
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(PRODUCT_REPORT_COLUMNS)
    for product in products:
        writer.writerow(product_report_row(product, snapshot_product(product), hourly_rate))
    return output.getvalue()


def build_materials_csv(materials):
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(MATERIAL_REPORT_COLUMNS)
    for material in materials:
        writer.writerow(material_report_row(material))
    return output.getvalue()


def build_full_report(products, materials, hourly_rate, currency_symbol):
    snapshots = [snapshot_product(p) for p in products]
    summary = portfolio_summary(snapshots, hourly_rate)

    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(['=== UNIT COST ARCHITECT REPORT ==='])
    writer.writerow([f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}"])
    writer.writerow([])

    writer.writerow(['=== SUMMARY ==='])
    writer.writerow(['Total Products', len(products)])
    writer.writerow(['Total Materials', len(materials)])
    writer.writerow(['Labor Rate', f"{currency_symbol}{hourly_rate}/hr"])
    writer.writerow(['Total Potential Revenue', f"{currency_symbol}{summary['total_revenue']:.2f}"])
    writer.writerow(['Total Potential Profit', f"{currency_symbol}{summary['total_profit']:.2f}"])
    writer.writerow([])

    writer.writerow(['=== PRODUCTS ==='])
    writer.writerow(['Name', 'Prime Cost', 'Final Price', 'Profit', 'Margin %'])
    for product, snapshot in zip(products, snapshots):
        costs = cost_breakdown(snapshot, hourly_rate)
        writer.writerow([
            product.name,
            f"{currency_symbol}{costs.prime_cost:.2f}",
            f"{currency_symbol}{costs.final_price:.2f}",
            f"{currency_symbol}{costs.net_profit:.2f}",
            f"{costs.profit_margin:.1f}%"
        ])
    writer.writerow([])

    writer.writerow(['=== MATERIALS ==='])
    writer.writerow(['Name', 'Category', 'Price/Unit', 'Stock'])
    for material in materials:
        writer.writerow([
            material.name,
            material.category,
            f"{currency_symbol}{material.unit_price:.4f}",
            f"{(material.current_stock or 0):.2f} {material.unit_type}"
        ])
    return output.getvalue()


def csv_response(content, filename):
    mem = io.BytesIO()
    mem.write(content.encode('utf-8'))
    mem.seek(0)
    return send_file(
        mem,
        as_attachment=True,
        download_name=filename,
        mimetype='text/csv'
    )


# ----------------------------
# Reports
# ----------------------------
@reports_blueprint.route('/reports/summary')
def summary():
    settings = resolve_costing_settings()
    products = Product.query.order_by(Product.name).all()
    materials = Material.query.all()

    snapshots = [snapshot_product(p) for p in products]
    data = portfolio_summary(snapshots, settings.hourly_rate)
    data['hourly_rate'] = settings.hourly_rate

    # Most profitable first
    ranked = sorted(
        ((p, cost_breakdown(s, settings.hourly_rate)) for p, s in zip(products, snapshots)),
        key=lambda pair: pair[1].net_profit,
        reverse=True
    )
    data['products_by_profit'] = [
        {'id': p.id, 'name': p.name, 'net_profit': c.net_profit, 'profit_margin': c.profit_margin}
        for p, c in ranked
    ]

    data['material_count'] = len(materials)
    data['inventory_value'] = sum((m.current_stock or 0) * m.unit_price for m in materials)
    data['stock_status_counts'] = {status: 0 for status in STOCK_STATUS_LABELS}
    for material in materials:
        data['stock_status_counts'][material.stock_status] += 1

    return jsonify(data)


@reports_blueprint.route('/reports/products.csv')
def products_csv():
    settings = resolve_costing_settings()
    products = Product.query.order_by(Product.name).all()
    return csv_response(build_products_csv(products, settings.hourly_rate), 'products_report.csv')


@reports_blueprint.route('/reports/materials.csv')
def materials_csv():
    materials = Material.query.order_by(Material.name).all()
    return csv_response(build_materials_csv(materials), 'materials_report.csv')


@reports_blueprint.route('/reports/full.csv')
def full_csv():
    settings = resolve_costing_settings()
    products = Product.query.order_by(Product.name).all()
    materials = Material.query.order_by(Material.name).all()

    content = build_full_report(products, materials, settings.hourly_rate, current_app.config['CURRENCY_SYMBOL'])
    current_app.logger.info(f"Full report generated for {len(products)} products, {len(materials)} materials")
    return csv_response(content, 'full_report.csv')
