"""
Shared pytest fixtures.

The app fixture builds the application on an in-memory SQLite database and
keeps an app context pushed for the duration of each test, so tests can use
db.session directly alongside the Flask test client.
"""
import pytest

from unitcost import create_app
from unitcost.models import db, Material, Product, Ingredient


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'SECRET_KEY': 'test-secret',
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_material(app):
    def _make(name='Flour', bulk_price=150.0, bulk_amount=10.0, **kwargs):
        values = dict(
            category='Raw Material', unit_type='kg', current_stock=0.0, minimum_stock=0.0,
            reorder_point=0.0, sku='', currency_code='USD'
        )
        values.update(kwargs)
        material = Material(name=name, bulk_price=bulk_price, bulk_amount=bulk_amount, **values)
        db.session.add(material)
        db.session.commit()
        return material
    return _make


@pytest.fixture
def make_product(app):
    def _make(name='Bread', ingredients=(), **kwargs):
        values = dict(
            description='', markup_percentage=30.0, overhead_percentage=15.0, time_to_produce=2.0,
            icon_name='shippingbox.fill', category='General', fixed_costs=0.0,
            target_units_per_month=100, default_batch_size=1
        )
        values.update(kwargs)
        product = Product(name=name, **values)
        for material, amount in ingredients:
            product.ingredients.append(Ingredient(amount_required=amount, material=material))
        db.session.add(product)
        db.session.commit()
        return product
    return _make
