from datetime import datetime, timedelta

import pytest

from unitcost.models import (
    db, Material, PriceHistory, Product, Ingredient, ProductNote, ProductTemplate, Supplier, Labor,
    AppSettings, low_stock_materials
)
from unitcost.costing import snapshot_product, cost_breakdown
from unitcost.units import IN_STOCK, LOW_STOCK, OUT_OF_STOCK, REORDER_NEEDED


def material(**kwargs):
    values = dict(name='Wax', bulk_price=10.0, bulk_amount=1.0, current_stock=0.0,
                  minimum_stock=0.0, reorder_point=0.0)
    values.update(kwargs)
    return Material(**values)


class TestStockStatus:

    def test_out_of_stock_wins(self):
        assert material(current_stock=0, reorder_point=10, minimum_stock=20).stock_status == OUT_OF_STOCK
        assert material(current_stock=-3).stock_status == OUT_OF_STOCK

    def test_reorder_checked_before_low_stock(self):
        assert material(current_stock=5, reorder_point=10, minimum_stock=20).stock_status == REORDER_NEEDED

    def test_low_stock(self):
        assert material(current_stock=15, reorder_point=10, minimum_stock=20).stock_status == LOW_STOCK
        assert material(current_stock=20, reorder_point=10, minimum_stock=20).stock_status == LOW_STOCK

    def test_in_stock(self):
        m = material(current_stock=25, reorder_point=10, minimum_stock=20)
        assert m.stock_status == IN_STOCK
        assert not m.needs_attention

    @pytest.mark.parametrize('current,minimum,expected', [
        (5, 20, 25.0),
        (40, 20, 100.0),
        (5, 0, 100.0),
        (0, 0, 0.0),
    ])
    def test_stock_level_percentage(self, current, minimum, expected):
        assert material(current_stock=current, minimum_stock=minimum).stock_level_percentage == expected

    def test_low_stock_materials(self):
        plenty = material(name='Plenty', current_stock=50, minimum_stock=10)
        low = material(name='Low', current_stock=9, minimum_stock=10)
        empty = material(name='Empty', current_stock=0, minimum_stock=10)
        assert [m.name for m in low_stock_materials([plenty, low, empty])] == ['Empty', 'Low']


class TestMaterial:

    def test_unit_price_and_formatting(self):
        m = material(bulk_price=150.0, bulk_amount=10.0, unit_type='kg', currency_code='USD')
        assert m.unit_price == 15.0
        assert m.formatted_unit_price == "$15.0000/kg"
        assert m.formatted_bulk_price == "$150.00 for 10.00 kg"

    def test_zero_bulk_amount(self):
        assert material(bulk_amount=0.0).unit_price == 0.0

    def test_updated_at_is_stamped_on_edit(self, make_material):
        m = make_material()
        m.updated_at = datetime.utcnow() - timedelta(days=1)
        db.session.commit()
        stamped = m.updated_at

        m.bulk_price = 200.0
        db.session.commit()
        assert m.updated_at > stamped


class TestPriceHistory:

    def test_record_does_not_change_material(self, make_material):
        m = make_material(bulk_price=150.0, bulk_amount=10.0)
        entry = m.record_price_history(note='opening price')
        db.session.commit()

        assert entry.unit_price == 15.0
        assert entry.note == 'opening price'
        assert m.bulk_price == 150.0
        assert PriceHistory.query.count() == 1

    def test_edit_does_not_record(self, make_material):
        m = make_material()
        m.bulk_price = 300.0
        db.session.commit()
        assert PriceHistory.query.count() == 0

    def test_change_needs_two_snapshots(self, make_material):
        m = make_material()
        assert m.price_change_percentage is None
        m.record_price_history()
        db.session.commit()
        assert m.price_change_percentage is None

    def test_change_against_second_most_recent(self, make_material):
        m = make_material(bulk_price=100.0, bulk_amount=10.0)
        now = datetime.utcnow()
        db.session.add(PriceHistory(material=m, bulk_price=100.0, bulk_amount=10.0, unit_price=10.0,
                                    recorded_at=now - timedelta(days=2), note=''))
        db.session.add(PriceHistory(material=m, bulk_price=120.0, bulk_amount=10.0, unit_price=12.0,
                                    recorded_at=now - timedelta(days=1), note=''))
        m.bulk_price = 125.0
        db.session.commit()

        # Current 12.5 against the older snapshot at 10
        assert m.price_change_percentage == pytest.approx(25.0)

    def test_zero_previous_price_has_no_change(self, make_material):
        m = make_material()
        now = datetime.utcnow()
        db.session.add(PriceHistory(material=m, bulk_price=0.0, bulk_amount=10.0, unit_price=0.0,
                                    recorded_at=now - timedelta(days=2), note=''))
        db.session.add(PriceHistory(material=m, bulk_price=150.0, bulk_amount=10.0, unit_price=15.0,
                                    recorded_at=now - timedelta(days=1), note=''))
        db.session.commit()
        assert m.price_change_percentage is None

    def test_entry_change_percentage(self):
        entry = PriceHistory(bulk_price=12.0, bulk_amount=1.0, unit_price=12.0)
        assert entry.change_percentage(10.0) == pytest.approx(20.0)
        assert entry.change_percentage(0.0) == 0.0


class TestCascades:

    def test_material_delete_removes_ingredients_and_history(self, make_material, make_product):
        flour = make_material('Flour')
        salt = make_material('Salt', bulk_price=2.0, bulk_amount=1.0)
        bread = make_product('Bread', ingredients=[(flour, 2.0), (salt, 0.1)])
        flour.record_price_history()
        db.session.commit()

        db.session.delete(flour)
        db.session.commit()

        assert Ingredient.query.count() == 1
        assert PriceHistory.query.count() == 0
        bread = db.session.get(Product, bread.id)
        assert [i.material.name for i in bread.ingredients] == ['Salt']
        assert cost_breakdown(snapshot_product(bread), 15.0).material_cost == pytest.approx(0.2)

    def test_product_delete_removes_ingredients_and_notes(self, make_material, make_product):
        flour = make_material()
        bread = make_product(ingredients=[(flour, 1.0)])
        db.session.add(ProductNote(product=bread, content='Proof overnight', category='Production'))
        db.session.commit()

        db.session.delete(bread)
        db.session.commit()

        assert Ingredient.query.count() == 0
        assert ProductNote.query.count() == 0
        assert Material.query.count() == 1

    def test_supplier_delete_keeps_material(self, make_material):
        supplier = Supplier(name='Mill Co', rating=4)
        db.session.add(supplier)
        flour = make_material(supplier=supplier)

        db.session.delete(supplier)
        db.session.commit()

        flour = db.session.get(Material, flour.id)
        assert flour is not None
        assert flour.supplier_id is None


class TestSnapshot:

    def test_dangling_ingredient_is_zero_cost(self, make_product):
        product = make_product(ingredients=[])
        db.session.add(Ingredient(product=product, amount_required=3.0, material=None))
        db.session.commit()

        snap = snapshot_product(product)
        assert snap.ingredients[0].unit_price is None
        assert cost_breakdown(snap, 15.0).material_cost == 0.0

    def test_snapshot_sees_latest_price(self, make_material, make_product):
        flour = make_material(bulk_price=150.0, bulk_amount=10.0)
        bread = make_product(ingredients=[(flour, 2.0)])
        assert cost_breakdown(snapshot_product(bread), 15.0).material_cost == pytest.approx(30.0)

        flour.bulk_price = 300.0
        db.session.commit()
        assert cost_breakdown(snapshot_product(bread), 15.0).material_cost == pytest.approx(60.0)


class TestProductCopies:

    def test_duplicate(self, make_material, make_product):
        flour = make_material()
        bread = make_product(ingredients=[(flour, 2.0)], markup_percentage=45.0)

        copy = bread.duplicate()
        db.session.add(copy)
        db.session.commit()

        assert copy.name == 'Bread (Copy)'
        assert copy.markup_percentage == 45.0
        assert [(i.material_id, i.amount_required) for i in copy.ingredients] == [(flour.id, 2.0)]
        assert len(bread.ingredients) == 1

    def test_template_from_product_skips_dangling_lines(self, make_material, make_product):
        flour = make_material()
        bread = make_product(ingredients=[(flour, 2.0)])
        db.session.add(Ingredient(product=bread, amount_required=1.0, material=None))
        db.session.commit()

        template = ProductTemplate.from_product(bread)
        assert template.name == 'Bread Template'
        assert [(t.material_name, t.amount_required) for t in template.ingredient_data] == [('Flour', 2.0)]


class TestAppSettings:

    def test_total_overhead(self):
        settings = AppSettings(electricity_percentage=3.0, rent_percentage=5.0, utilities_percentage=2.0,
                               insurance_percentage=1.0, maintenance_percentage=2.0,
                               other_overhead_percentage=2.0)
        assert settings.total_overhead_percentage == pytest.approx(15.0)
        assert settings.overhead_breakdown[1] == ('Rent', 5.0)

    def test_labor_cost_for_hours(self):
        labor = Labor(hourly_rate=18.0, currency='EUR')
        assert labor.cost_for_hours(2.5) == pytest.approx(45.0)
        assert labor.formatted_hourly_rate == "€18.00/hr"

    def test_supplier_rating_clamped(self):
        assert Supplier.clamp_rating(9) == 5
        assert Supplier.clamp_rating(0) == 1
        assert Supplier(name='x', rating=2).star_rating == "★★☆☆☆"
