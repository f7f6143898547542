import pytest

from unitcost.models import db, Labor, AppSettings
from unitcost.settings import (
    DEFAULT_HOURLY_RATE, DEFAULT_OVERHEAD_PERCENTAGE, resolve_costing_settings, resolve_hourly_rate,
    resolve_overhead_percentage, get_or_create_labor, get_or_create_app_settings
)


def test_defaults_without_rows(app):
    settings = resolve_costing_settings()
    assert settings.hourly_rate == DEFAULT_HOURLY_RATE == 15.0
    assert settings.total_overhead_percentage == pytest.approx(DEFAULT_OVERHEAD_PERCENTAGE)
    assert DEFAULT_OVERHEAD_PERCENTAGE == pytest.approx(15.0)
    assert Labor.query.count() == 0
    assert AppSettings.query.count() == 0


def test_stored_values_win(app):
    db.session.add(Labor(hourly_rate=22.5, currency='EUR'))
    db.session.add(AppSettings(electricity_percentage=10.0, rent_percentage=0.0, utilities_percentage=0.0,
                               insurance_percentage=0.0, maintenance_percentage=0.0,
                               other_overhead_percentage=2.5))
    db.session.commit()

    assert resolve_hourly_rate() == 22.5
    assert resolve_overhead_percentage() == pytest.approx(12.5)
    settings = resolve_costing_settings()
    assert settings.currency == 'EUR'
    assert settings.overhead_breakdown[0] == ('Electricity', 10.0)


def test_only_labor_row_keeps_default_overhead(app):
    db.session.add(Labor(hourly_rate=30.0, currency='USD'))
    db.session.commit()

    settings = resolve_costing_settings()
    assert settings.hourly_rate == 30.0
    assert settings.total_overhead_percentage == pytest.approx(15.0)


def test_get_or_create_is_stable(app):
    labor = get_or_create_labor()
    overhead = get_or_create_app_settings()
    db.session.commit()

    assert labor.hourly_rate == DEFAULT_HOURLY_RATE
    assert overhead.total_overhead_percentage == pytest.approx(DEFAULT_OVERHEAD_PERCENTAGE)
    assert get_or_create_labor().id == labor.id
    assert get_or_create_app_settings().id == overhead.id
    assert Labor.query.count() == 1
    assert AppSettings.query.count() == 1


def test_to_dict_includes_total(app):
    data = resolve_costing_settings().to_dict()
    assert data['hourly_rate'] == 15.0
    assert data['total_overhead_percentage'] == pytest.approx(15.0)
    assert data['rent_percentage'] == 5.0
