from datetime import datetime
from flask_sqlalchemy import SQLAlchemy

from .units import (
    DEFAULT_CURRENCY, IN_STOCK, LOW_STOCK, OUT_OF_STOCK, REORDER_NEEDED,
    STOCK_STATUS_LABELS, currency_symbol
)

db = SQLAlchemy()

# Custom exceptions
class ValidationError(Exception):
    """Raised when user input at the edit boundary cannot be stored"""
    pass


def calculate_unit_price(bulk_price, bulk_amount):
    """Price of a single unit bought in bulk. Returns 0 for a non-positive bulk amount."""
    if not bulk_amount or bulk_amount <= 0:
        return 0.0
    return (bulk_price or 0.0) / bulk_amount


class Supplier(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    contact_person = db.Column(db.String(100), nullable=False, default='')
    email = db.Column(db.String(100), nullable=False, default='')
    phone = db.Column(db.String(50), nullable=False, default='')
    address = db.Column(db.Text, nullable=False, default='')
    website = db.Column(db.String(200), nullable=False, default='')
    notes = db.Column(db.Text, nullable=False, default='')
    rating = db.Column(db.Integer, nullable=False, default=3)  # 1-5 stars
    is_preferred = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @staticmethod
    def clamp_rating(rating):
        return min(5, max(1, int(rating)))

    @property
    def star_rating(self):
        rating = self.rating or 0
        return "★" * rating + "☆" * (5 - rating)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'contact_person': self.contact_person,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'website': self.website,
            'notes': self.notes,
            'rating': self.rating,
            'is_preferred': self.is_preferred,
            'created_at': self.created_at.strftime('%Y-%m-%d %H:%M:%S') if self.created_at else None,
            'materials_count': len(self.materials) if hasattr(self, 'materials') else 0
        }


class Material(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    category = db.Column(db.String(50), nullable=False, default='Raw Material')
    bulk_price = db.Column(db.Float, nullable=False, default=0.0)
    bulk_amount = db.Column(db.Float, nullable=False, default=1.0)
    unit_type = db.Column(db.String(10), nullable=False, default='kg')
    current_stock = db.Column(db.Float, nullable=False, default=0.0)
    minimum_stock = db.Column(db.Float, nullable=False, default=0.0)
    reorder_point = db.Column(db.Float, nullable=False, default=0.0)
    sku = db.Column(db.String(100), nullable=False, default='')  # Stock keeping unit
    currency_code = db.Column(db.String(3), nullable=False, default=DEFAULT_CURRENCY)
    supplier_id = db.Column(db.Integer, db.ForeignKey('supplier.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Deleting a supplier leaves its materials in place with supplier_id cleared
    supplier = db.relationship('Supplier', backref=db.backref('materials', lazy=True))

    @property
    def unit_price(self):
        return calculate_unit_price(self.bulk_price, self.bulk_amount)

    @property
    def stock_status(self):
        """Stock status, checked in priority order: out of stock, reorder needed, low stock."""
        current = self.current_stock or 0
        if current <= 0:
            return OUT_OF_STOCK
        elif current <= (self.reorder_point or 0):
            return REORDER_NEEDED
        elif current <= (self.minimum_stock or 0):
            return LOW_STOCK
        return IN_STOCK

    @property
    def needs_attention(self):
        return self.stock_status != IN_STOCK

    @property
    def stock_level_percentage(self):
        current = self.current_stock or 0
        minimum = self.minimum_stock or 0
        if minimum <= 0:
            return 100.0 if current > 0 else 0.0
        return min(100.0, (current / minimum) * 100)

    def record_price_history(self, note=''):
        """Snapshot the current bulk price. The material itself is not changed."""
        entry = PriceHistory(
            material=self,
            bulk_price=self.bulk_price,
            bulk_amount=self.bulk_amount,
            unit_price=calculate_unit_price(self.bulk_price, self.bulk_amount),
            note=note or '',
            recorded_at=datetime.utcnow()
        )
        db.session.add(entry)
        return entry

    def sorted_price_history(self):
        """Price history, newest first"""
        return sorted(
            self.price_history,
            key=lambda h: (h.recorded_at or datetime.min, h.id or 0),
            reverse=True
        )

    @property
    def price_change_percentage(self):
        """
        Percent change of the current unit price against the second most recent
        snapshot. None when there are fewer than two snapshots or the previous
        price is not positive.
        """
        history = self.sorted_price_history()
        if len(history) < 2:
            return None

        previous = history[1].unit_price
        if not previous or previous <= 0:
            return None
        return ((self.unit_price - previous) / previous) * 100

    @property
    def formatted_unit_price(self):
        return "%s%.4f/%s" % (currency_symbol(self.currency_code), self.unit_price, self.unit_type)

    @property
    def formatted_bulk_price(self):
        return "%s%.2f for %.2f %s" % (
            currency_symbol(self.currency_code), self.bulk_price or 0, self.bulk_amount or 0, self.unit_type
        )

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'category': self.category,
            'bulk_price': self.bulk_price,
            'bulk_amount': self.bulk_amount,
            'unit_type': self.unit_type,
            'unit_price': self.unit_price,
            'current_stock': self.current_stock,
            'minimum_stock': self.minimum_stock,
            'reorder_point': self.reorder_point,
            'stock_status': self.stock_status,
            'stock_status_label': STOCK_STATUS_LABELS[self.stock_status],
            'stock_level_percentage': self.stock_level_percentage,
            'price_change_percentage': self.price_change_percentage,
            'sku': self.sku,
            'currency_code': self.currency_code,
            'supplier_id': self.supplier_id,
            'supplier_name': self.supplier.name if self.supplier else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }


class PriceHistory(db.Model):
    __tablename__ = 'price_history'

    id = db.Column(db.Integer, primary_key=True)
    material_id = db.Column(db.Integer, db.ForeignKey('material.id'), nullable=False)
    bulk_price = db.Column(db.Float, nullable=False)
    bulk_amount = db.Column(db.Float, nullable=False)
    unit_price = db.Column(db.Float, nullable=False)  # Stored at record time
    recorded_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    note = db.Column(db.Text, nullable=False, default='')

    material = db.relationship('Material', backref=db.backref('price_history', lazy=True, cascade='all, delete-orphan'))

    def change_percentage(self, previous_price):
        if not previous_price or previous_price <= 0:
            return 0.0
        return ((self.unit_price - previous_price) / previous_price) * 100

    def to_dict(self):
        return {
            'id': self.id,
            'material_id': self.material_id,
            'bulk_price': self.bulk_price,
            'bulk_amount': self.bulk_amount,
            'unit_price': self.unit_price,
            'recorded_at': self.recorded_at.isoformat() if self.recorded_at else None,
            'note': self.note
        }


def low_stock_materials(materials):
    """Materials that need attention, lowest stock level first"""
    attention = [m for m in materials if m.needs_attention]
    return sorted(attention, key=lambda m: m.stock_level_percentage)


class Product(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    markup_percentage = db.Column(db.Float, nullable=False, default=30.0)
    overhead_percentage = db.Column(db.Float, nullable=False, default=15.0)
    time_to_produce = db.Column(db.Float, nullable=False, default=1.0)  # Hours
    icon_name = db.Column(db.String(100), nullable=False, default='shippingbox.fill')
    category = db.Column(db.String(50), nullable=False, default='General')
    fixed_costs = db.Column(db.Float, nullable=False, default=0.0)  # One-time costs (tooling, setup)
    target_units_per_month = db.Column(db.Integer, nullable=False, default=100)
    default_batch_size = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def ingredient_count(self):
        return len(self.ingredients)

    @property
    def formatted_time_to_produce(self):
        hours = self.time_to_produce or 0
        if hours < 1:
            return "%.0f min" % (hours * 60)
        elif hours == 1:
            return "1 hour"
        return "%.1f hours" % hours

    def duplicate(self):
        """Copy of this product and its ingredient lines, named '<name> (Copy)'. Not added to the session."""
        copy = Product(
            name=f"{self.name} (Copy)",
            description=self.description,
            markup_percentage=self.markup_percentage,
            overhead_percentage=self.overhead_percentage,
            time_to_produce=self.time_to_produce,
            icon_name=self.icon_name,
            category=self.category,
            fixed_costs=self.fixed_costs,
            target_units_per_month=self.target_units_per_month,
            default_batch_size=self.default_batch_size
        )
        for ingredient in self.ingredients:
            copy.ingredients.append(Ingredient(
                amount_required=ingredient.amount_required,
                material=ingredient.material
            ))
        return copy

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'markup_percentage': self.markup_percentage,
            'overhead_percentage': self.overhead_percentage,
            'time_to_produce': self.time_to_produce,
            'icon_name': self.icon_name,
            'category': self.category,
            'fixed_costs': self.fixed_costs,
            'target_units_per_month': self.target_units_per_month,
            'default_batch_size': self.default_batch_size,
            'ingredients': [i.to_dict() for i in self.ingredients],
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }


class Ingredient(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    amount_required = db.Column(db.Float, nullable=False, default=0.0)
    material_id = db.Column(db.Integer, db.ForeignKey('material.id'), nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Material deletion cascades to the recipe lines that use it
    material = db.relationship('Material', backref=db.backref('ingredients', lazy=True, cascade='all, delete'))
    product = db.relationship('Product', backref=db.backref('ingredients', lazy=True, cascade='all, delete-orphan'))

    @property
    def line_cost(self):
        if self.material is None:
            return 0.0
        return (self.amount_required or 0) * self.material.unit_price

    @property
    def display_name(self):
        return self.material.name if self.material else 'Unknown Material'

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'material_id': self.material_id,
            'material_name': self.display_name,
            'unit_type': self.material.unit_type if self.material else '',
            'amount_required': self.amount_required,
            'line_cost': self.line_cost
        }


class ProductNote(db.Model):
    __tablename__ = 'product_note'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False)
    content = db.Column(db.Text, nullable=False, default='')
    category = db.Column(db.String(20), nullable=False, default='General')
    is_pinned = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    product = db.relationship('Product', backref=db.backref('notes', lazy=True, cascade='all, delete-orphan'))

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'content': self.content,
            'category': self.category,
            'is_pinned': self.is_pinned,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }


class ProductTemplate(db.Model):
    __tablename__ = 'product_template'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    default_markup_percentage = db.Column(db.Float, nullable=False, default=30.0)
    default_overhead_percentage = db.Column(db.Float, nullable=False, default=15.0)
    default_time_to_produce = db.Column(db.Float, nullable=False, default=1.0)
    icon_name = db.Column(db.String(100), nullable=False, default='doc.on.doc.fill')
    category = db.Column(db.String(50), nullable=False, default='General')
    usage_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @classmethod
    def from_product(cls, product):
        """Build a template from a product. Lines whose material is gone are left out."""
        template = cls(
            name=f"{product.name} Template",
            description=f"Template based on {product.name}",
            default_markup_percentage=product.markup_percentage,
            default_overhead_percentage=product.overhead_percentage,
            default_time_to_produce=product.time_to_produce,
            icon_name=product.icon_name,
            category=product.category
        )
        for ingredient in product.ingredients:
            if ingredient.material is None:
                continue
            template.ingredient_data.append(TemplateIngredient(
                material=ingredient.material,
                material_name=ingredient.material.name,
                amount_required=ingredient.amount_required
            ))
        return template

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'default_markup_percentage': self.default_markup_percentage,
            'default_overhead_percentage': self.default_overhead_percentage,
            'default_time_to_produce': self.default_time_to_produce,
            'icon_name': self.icon_name,
            'category': self.category,
            'usage_count': self.usage_count,
            'ingredients': [i.to_dict() for i in self.ingredient_data],
            'created_at': self.created_at.isoformat() if self.created_at else None
        }


class TemplateIngredient(db.Model):
    __tablename__ = 'template_ingredient'

    id = db.Column(db.Integer, primary_key=True)
    template_id = db.Column(db.Integer, db.ForeignKey('product_template.id'), nullable=False)
    # NULL once the material is deleted
    material_id = db.Column(db.Integer, db.ForeignKey('material.id', ondelete='SET NULL'), nullable=True)
    material_name = db.Column(db.String(100), nullable=False)
    amount_required = db.Column(db.Float, nullable=False)

    template = db.relationship('ProductTemplate', backref=db.backref('ingredient_data', lazy=True, cascade='all, delete-orphan'))
    material = db.relationship('Material', backref=db.backref('template_ingredients', lazy=True))

    def to_dict(self):
        return {
            'id': self.id,
            'template_id': self.template_id,
            'material_id': self.material_id,
            'material_name': self.material_name,
            'amount_required': self.amount_required
        }


class Labor(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    hourly_rate = db.Column(db.Float, nullable=False, default=15.0)
    currency = db.Column(db.String(3), nullable=False, default=DEFAULT_CURRENCY)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def cost_for_hours(self, hours):
        return hours * self.hourly_rate

    @property
    def formatted_hourly_rate(self):
        return "%s%.2f/hr" % (currency_symbol(self.currency), self.hourly_rate)

    def to_dict(self):
        return {
            'id': self.id,
            'hourly_rate': self.hourly_rate,
            'currency': self.currency,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None
        }


class AppSettings(db.Model):
    __tablename__ = 'app_settings'

    id = db.Column(db.Integer, primary_key=True)

    # Overhead expense components, as percentages of prime cost
    electricity_percentage = db.Column(db.Float, nullable=False, default=3.0)
    rent_percentage = db.Column(db.Float, nullable=False, default=5.0)
    utilities_percentage = db.Column(db.Float, nullable=False, default=2.0)
    insurance_percentage = db.Column(db.Float, nullable=False, default=1.0)
    maintenance_percentage = db.Column(db.Float, nullable=False, default=2.0)
    other_overhead_percentage = db.Column(db.Float, nullable=False, default=2.0)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    OVERHEAD_FIELDS = [
        ('Electricity', 'electricity_percentage'),
        ('Rent', 'rent_percentage'),
        ('Utilities', 'utilities_percentage'),
        ('Insurance', 'insurance_percentage'),
        ('Maintenance', 'maintenance_percentage'),
        ('Other', 'other_overhead_percentage'),
    ]

    @property
    def overhead_breakdown(self):
        return [(label, getattr(self, field) or 0.0) for label, field in self.OVERHEAD_FIELDS]

    @property
    def total_overhead_percentage(self):
        return sum(value for _, value in self.overhead_breakdown)

    def to_dict(self):
        data = {field: getattr(self, field) for _, field in self.OVERHEAD_FIELDS}
        data['id'] = self.id
        data['total_overhead_percentage'] = self.total_overhead_percentage
        data['updated_at'] = self.updated_at.isoformat() if self.updated_at else None
        return data


class AuditLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    action = db.Column(db.String(50), nullable=False)
    target_type = db.Column(db.String(50), nullable=False)
    target_id = db.Column(db.Integer, nullable=True)
    details = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'timestamp': self.timestamp.strftime('%Y-%m-%d %H:%M:%S'),
            'action': self.action,
            'target_type': self.target_type,
            'target_id': self.target_id,
            'details': self.details
        }
