"""
Resolution of stored labor/overhead settings into costing inputs.

A missing Labor or AppSettings row is not an error: the documented defaults
apply. Routes call resolve_costing_settings() once per request and pass the
result down instead of reading the rows themselves.
"""
from dataclasses import dataclass, asdict

from .models import db, Labor, AppSettings
from .units import DEFAULT_CURRENCY

DEFAULT_HOURLY_RATE = 15.0

DEFAULT_OVERHEAD_COMPONENTS = {
    'electricity_percentage': 3.0,
    'rent_percentage': 5.0,
    'utilities_percentage': 2.0,
    'insurance_percentage': 1.0,
    'maintenance_percentage': 2.0,
    'other_overhead_percentage': 2.0,
}

DEFAULT_OVERHEAD_PERCENTAGE = sum(DEFAULT_OVERHEAD_COMPONENTS.values())


@dataclass(frozen=True)
class CostingSettings:
    hourly_rate: float = DEFAULT_HOURLY_RATE
    currency: str = DEFAULT_CURRENCY
    electricity_percentage: float = 3.0
    rent_percentage: float = 5.0
    utilities_percentage: float = 2.0
    insurance_percentage: float = 1.0
    maintenance_percentage: float = 2.0
    other_overhead_percentage: float = 2.0

    @property
    def total_overhead_percentage(self):
        return (
            self.electricity_percentage
            + self.rent_percentage
            + self.utilities_percentage
            + self.insurance_percentage
            + self.maintenance_percentage
            + self.other_overhead_percentage
        )

    @property
    def overhead_breakdown(self):
        return [(label, getattr(self, field)) for label, field in AppSettings.OVERHEAD_FIELDS]

    def to_dict(self):
        data = asdict(self)
        data['total_overhead_percentage'] = self.total_overhead_percentage
        return data


def _first_labor():
    return Labor.query.order_by(Labor.id).first()


def _first_app_settings():
    return AppSettings.query.order_by(AppSettings.id).first()


def resolve_costing_settings():
    labor = _first_labor()
    settings = _first_app_settings()

    values = {}
    if labor is not None:
        values['hourly_rate'] = labor.hourly_rate
        values['currency'] = labor.currency
    if settings is not None:
        for field in DEFAULT_OVERHEAD_COMPONENTS:
            values[field] = getattr(settings, field)

    return CostingSettings(**values)


def resolve_hourly_rate():
    return resolve_costing_settings().hourly_rate


def resolve_overhead_percentage():
    return resolve_costing_settings().total_overhead_percentage


def get_or_create_labor():
    """Returns the Labor row, creating it with defaults if it doesn't exist."""
    labor = _first_labor()
    if labor is None:
        labor = Labor(hourly_rate=DEFAULT_HOURLY_RATE, currency=DEFAULT_CURRENCY)
        db.session.add(labor)
        db.session.flush()
    return labor


def get_or_create_app_settings():
    """Returns the AppSettings row, creating it with defaults if it doesn't exist."""
    settings = _first_app_settings()
    if settings is None:
        settings = AppSettings(**DEFAULT_OVERHEAD_COMPONENTS)
        db.session.add(settings)
        db.session.flush()
    return settings
