from flask import Blueprint, request, jsonify
from ..settings import (
    resolve_costing_settings, get_or_create_labor, get_or_create_app_settings,
    DEFAULT_OVERHEAD_COMPONENTS
)
from ..units import CURRENCIES, convert_currency
from .utils import log_audit, save_changes, get_request_data, parse_float, require_choice

labor_blueprint = Blueprint('labor', __name__)

# ----------------------------
# Labor & Overhead Settings
# ----------------------------
@labor_blueprint.route('/settings')
def settings():
    resolved = resolve_costing_settings()
    data = resolved.to_dict()
    data['overhead_breakdown'] = [
        {'label': label, 'percentage': value} for label, value in resolved.overhead_breakdown
    ]
    return jsonify(data)


@labor_blueprint.route('/settings/labor', methods=['POST'])
def edit_labor():
    data = get_request_data()
    labor = get_or_create_labor()

    hourly_rate = parse_float(data, 'hourly_rate', minimum=0)
    if hourly_rate is not None:
        labor.hourly_rate = hourly_rate
    if data.get('currency'):
        labor.currency = require_choice(data['currency'], CURRENCIES, 'currency')

    save_changes()
    log_audit("UPDATE", "Labor", labor.id, f"Hourly rate set to {labor.formatted_hourly_rate}")

    return jsonify({'success': True, 'labor': labor.to_dict()})


@labor_blueprint.route('/settings/overhead', methods=['POST'])
def edit_overhead():
    data = get_request_data()
    app_settings = get_or_create_app_settings()

    for field in DEFAULT_OVERHEAD_COMPONENTS:
        value = parse_float(data, field, minimum=0)
        if value is not None:
            setattr(app_settings, field, value)

    save_changes()
    log_audit("UPDATE", "AppSettings", app_settings.id,
              f"Overhead total set to {app_settings.total_overhead_percentage:.1f}%")

    return jsonify({'success': True, 'settings': app_settings.to_dict()})


# ----------------------------
# Currencies
# ----------------------------
@labor_blueprint.route('/settings/currencies')
def currencies():
    return jsonify({'currencies': [
        {'code': code, 'symbol': symbol, 'name': name, 'rate_to_usd': rate}
        for code, (symbol, name, rate) in CURRENCIES.items()
    ]})


@labor_blueprint.route('/settings/convert')
def convert():
    """Convert an amount between currencies at the default rates. Nothing is stored."""
    amount = parse_float(request.args, 'amount', default=0.0)
    from_code = require_choice(request.args.get('from', 'USD'), CURRENCIES, 'currency')
    to_code = require_choice(request.args.get('to', 'USD'), CURRENCIES, 'currency')

    return jsonify({
        'amount': amount,
        'from': from_code,
        'to': to_code,
        'converted': convert_currency(amount, from_code, to_code)
    })
