import json
import io
from datetime import datetime
from flask import Blueprint, request, send_file, jsonify
from ..models import (
    db, Supplier, Material, PriceHistory, Product, Ingredient, ProductNote,
    ProductTemplate, TemplateIngredient, Labor, AppSettings, AuditLog
)
from .utils import log_audit, parse_int

admin_blueprint = Blueprint('admin', __name__)

# Tables in dependency order
BACKUP_MODELS = [
    # Level 0 - No dependencies
    ('suppliers', Supplier),
    ('labor', Labor),
    ('app_settings', AppSettings),
    ('audit_logs', AuditLog),

    # Level 1 - Basic dependencies
    ('materials', Material),
    ('products', Product),
    ('product_templates', ProductTemplate),

    # Level 2 - Secondary dependencies
    ('price_history', PriceHistory),
    ('ingredients', Ingredient),
    ('product_notes', ProductNote),
    ('template_ingredients', TemplateIngredient),
]


@admin_blueprint.route('/admin/backup', methods=['GET'])
def backup_db():
    """Create a JSON backup of every table"""
    model_counts = {key: model.query.count() for key, model in BACKUP_MODELS}
    total_records = sum(model_counts.values())

    data = {
        'version': '1.0',
        'timestamp': datetime.now().isoformat(),
        'database_type': 'postgresql' if 'postgresql' in str(db.engine.url) else 'sqlite',
        'statistics': {
            'total_records': total_records,
            'model_counts': model_counts
        }
    }
    for key, model in BACKUP_MODELS:
        data[key] = [row.to_dict() for row in model.query.order_by(model.id).all()]

    json_str = json.dumps(data, indent=4, ensure_ascii=False)
    mem = io.BytesIO()
    mem.write(json_str.encode('utf-8'))
    mem.seek(0)

    filename = f"unit_cost_backup_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"

    log_audit("BACKUP", "System", details=f"Full backup created with {total_records} records")

    return send_file(
        mem,
        as_attachment=True,
        download_name=filename,
        mimetype='application/json'
    )


@admin_blueprint.route('/admin/audit-log')
def audit_log():
    limit = parse_int(request.args, 'limit', default=100, minimum=1)
    logs = AuditLog.query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify({'logs': [log.to_dict() for log in logs]})
