import math
from flask import request, current_app
from flask_babel import gettext as _
from sqlalchemy.exc import SQLAlchemyError
from ..models import db, AuditLog, ValidationError
from ..settings import resolve_costing_settings
from ..costing import snapshot_product, cost_breakdown


def hours_to_time_str(hours):
    """Convert decimal hours to HH:MM format string"""
    if hours is None:
        return "00:00"
    total_minutes = int(round(hours * 60))
    h = total_minutes // 60
    m = total_minutes % 60
    return f"{h:02d}:{m:02d}"


def get_request_data():
    """Request payload as a dict, whether it was sent as JSON or as a form"""
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def parse_float(data, key, default=None, minimum=None, positive=False):
    """
    Read a float from request data.

    Args:
        data: Request payload dict
        key: Field name
        default: Value used when the field is missing or empty
        minimum: Lowest accepted value (inclusive)
        positive: Require a value greater than zero

    Returns:
        The parsed float, or default when the field is absent
    """
    raw = data.get(key)
    if raw is None or raw == '':
        return default

    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(_('%(field)s must be a number', field=key))

    # float() accepts 'nan' and 'inf'
    if not math.isfinite(value):
        raise ValidationError(_('%(field)s must be a finite number', field=key))

    if positive and value <= 0:
        raise ValidationError(_('%(field)s must be greater than zero', field=key))
    if minimum is not None and value < minimum:
        raise ValidationError(_('%(field)s must be at least %(minimum)s', field=key, minimum=minimum))
    return value


def parse_int(data, key, default=None, minimum=None):
    raw = data.get(key)
    if raw is None or raw == '':
        return default

    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(_('%(field)s must be a whole number', field=key))

    if minimum is not None and value < minimum:
        raise ValidationError(_('%(field)s must be at least %(minimum)s', field=key, minimum=minimum))
    return value


def parse_bool(data, key, default=False):
    raw = data.get(key)
    if raw is None or raw == '':
        return default
    if isinstance(raw, bool):
        return raw
    return str(raw).lower() in ('1', 'true', 'on', 'yes')


def require_name(data, key='name'):
    name = (data.get(key) or '').strip()
    if not name:
        raise ValidationError(_('Name is required'))
    return name


def require_choice(value, choices, field):
    if value not in choices:
        raise ValidationError(_('Unknown %(field)s: %(value)s', field=field, value=value))
    return value


def save_changes():
    """Commit the session, rolling back and logging on failure"""
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Database commit failed: {str(e)}")
        raise


def log_audit(action, target_type, target_id=None, details=None):
    try:
        log = AuditLog(
            action=action,
            target_type=target_type,
            target_id=target_id,
            details=details
        )
        db.session.add(log)
        db.session.commit()
    except SQLAlchemyError as e:
        # Audit logging must not interrupt the main operation
        db.session.rollback()
        current_app.logger.warning(f"Audit log failed for {action} {target_type}: {str(e)}")


def product_with_costs(product, settings=None):
    """Product dict with its cost breakdown derived from current prices"""
    if settings is None:
        settings = resolve_costing_settings()

    data = product.to_dict()
    data['costs'] = cost_breakdown(snapshot_product(product), settings.hourly_rate).to_dict()
    data['ingredient_count'] = product.ingredient_count
    data['formatted_time_to_produce'] = product.formatted_time_to_produce
    data['time_to_produce_hhmm'] = hours_to_time_str(product.time_to_produce)
    return data
