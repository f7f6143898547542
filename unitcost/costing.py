"""
Costing engine.

Every function here is a pure transform of the snapshot handed to it: no
database access, no caching. Views snapshot a product with
snapshot_product() and recompute on every read, so an edited material price
shows up the next time anything asks.
"""
import math
from dataclasses import dataclass, asdict, field
from typing import Optional, Tuple

from .models import calculate_unit_price

# Batch size -> discount on the material portion, checked largest first
SCALE_DISCOUNT_TIERS = [
    (1000, 0.15),
    (100, 0.10),
    (10, 0.05),
]


@dataclass(frozen=True)
class IngredientLine:
    amount_required: float
    unit_price: Optional[float]  # None when the material no longer exists
    material_id: Optional[int] = None
    material_name: str = ''

    @property
    def line_cost(self):
        if self.unit_price is None:
            return 0.0
        return self.amount_required * self.unit_price


@dataclass(frozen=True)
class ProductSnapshot:
    name: str = ''
    markup_percentage: float = 30.0
    overhead_percentage: float = 15.0
    time_to_produce: float = 1.0
    fixed_costs: float = 0.0
    target_units_per_month: int = 100
    ingredients: Tuple[IngredientLine, ...] = field(default_factory=tuple)
    id: Optional[int] = None


@dataclass(frozen=True)
class CostBreakdown:
    material_cost: float
    labor_cost: float
    prime_cost: float
    overhead_amount: float
    total_cost: float
    markup_amount: float
    final_price: float
    net_profit: float
    profit_margin: float

    def to_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class BatchCalculation:
    quantity: int
    unit_prime_cost: float
    unit_total_cost: float
    unit_final_price: float
    unit_profit: float
    batch_material_cost: float
    batch_labor_cost: float
    batch_prime_cost: float
    batch_total_cost: float
    batch_final_price: float
    batch_profit: float
    scale_discount: float
    total_production_time: float

    @property
    def savings_per_unit(self):
        if self.quantity <= 0:
            return 0.0
        return self.unit_prime_cost - (self.batch_prime_cost / self.quantity)

    @property
    def formatted_production_time(self):
        hours = self.total_production_time
        if hours < 1:
            return "%.0f min" % (hours * 60)
        elif hours < 24:
            return "%.1f hours" % hours
        return "%.1f days" % (hours / 24)

    def to_dict(self):
        data = asdict(self)
        data['savings_per_unit'] = self.savings_per_unit
        data['formatted_production_time'] = self.formatted_production_time
        return data


@dataclass(frozen=True)
class BreakEvenResult:
    break_even_units: int
    break_even_revenue: float
    contribution_margin: float
    fixed_costs: float
    profit_at_target: float
    target_units: int
    safety_margin_percent: float

    @property
    def is_profitable(self):
        return self.profit_at_target > 0

    def to_dict(self):
        data = asdict(self)
        data['is_profitable'] = self.is_profitable
        return data


@dataclass(frozen=True)
class ScenarioResult:
    original_prime_cost: float
    original_total_cost: float
    original_final_price: float
    original_profit: float
    new_prime_cost: float
    new_total_cost: float
    new_final_price: float
    new_profit: float
    prime_change: float
    price_change: float
    profit_change: float
    profit_change_percent: float

    @property
    def is_positive(self):
        return self.profit_change >= 0

    def to_dict(self):
        data = asdict(self)
        data['is_positive'] = self.is_positive
        return data


def snapshot_product(product):
    """Freeze an ORM product and its resolved materials into a ProductSnapshot."""
    lines = []
    for ingredient in product.ingredients:
        material = ingredient.material
        if material is None:
            lines.append(IngredientLine(amount_required=ingredient.amount_required or 0.0, unit_price=None))
        else:
            lines.append(IngredientLine(
                amount_required=ingredient.amount_required or 0.0,
                unit_price=calculate_unit_price(material.bulk_price, material.bulk_amount),
                material_id=material.id,
                material_name=material.name
            ))

    return ProductSnapshot(
        id=product.id,
        name=product.name,
        markup_percentage=product.markup_percentage or 0.0,
        overhead_percentage=product.overhead_percentage or 0.0,
        time_to_produce=product.time_to_produce or 0.0,
        fixed_costs=product.fixed_costs or 0.0,
        target_units_per_month=product.target_units_per_month or 0,
        ingredients=tuple(lines)
    )


# ----------------------------
# Cost pyramid
# ----------------------------
def material_cost(product):
    return sum((line.line_cost for line in product.ingredients), 0.0)


def labor_cost(product, hourly_rate):
    return product.time_to_produce * hourly_rate


def _apply_overhead(prime, overhead_percentage):
    return prime * (1 + overhead_percentage / 100)


def _apply_markup(total, markup_percentage):
    return total * (1 + markup_percentage / 100)


def _margin(profit, price):
    if price <= 0:
        return 0.0
    return (profit / price) * 100


def prime_cost(product, hourly_rate):
    """Prime Cost = Material Cost + Labor Cost"""
    return material_cost(product) + labor_cost(product, hourly_rate)


def total_cost(product, hourly_rate):
    """Total Cost = Prime Cost x (1 + Overhead%)"""
    return _apply_overhead(prime_cost(product, hourly_rate), product.overhead_percentage)


def final_price(product, hourly_rate):
    """Final Price = Total Cost x (1 + Markup%)"""
    return _apply_markup(total_cost(product, hourly_rate), product.markup_percentage)


def net_profit(product, hourly_rate):
    return final_price(product, hourly_rate) - total_cost(product, hourly_rate)


def profit_margin(product, hourly_rate):
    """Net profit as a percentage of final price, 0 when the price is not positive."""
    return _margin(net_profit(product, hourly_rate), final_price(product, hourly_rate))


def cost_breakdown(product, hourly_rate):
    materials = material_cost(product)
    labor = labor_cost(product, hourly_rate)
    prime = materials + labor
    total = _apply_overhead(prime, product.overhead_percentage)
    price = _apply_markup(total, product.markup_percentage)
    profit = price - total

    return CostBreakdown(
        material_cost=materials,
        labor_cost=labor,
        prime_cost=prime,
        overhead_amount=total - prime,
        total_cost=total,
        markup_amount=price - total,
        final_price=price,
        net_profit=profit,
        profit_margin=_margin(profit, price)
    )


# ----------------------------
# Batch production
# ----------------------------
def scale_discount(quantity):
    """Economies-of-scale discount on materials. Tier lower bounds are inclusive."""
    for threshold, discount in SCALE_DISCOUNT_TIERS:
        if quantity >= threshold:
            return discount
    return 0.0


def batch_cost(product, quantity, hourly_rate):
    """
    Costs for producing `quantity` units in one batch.

    The scale discount applies to the material portion only; labor scales
    linearly. Overhead and markup are applied to the batch totals with the
    same percentages as a single unit.
    """
    unit = cost_breakdown(product, hourly_rate)
    discount = scale_discount(quantity)

    batch_materials = unit.material_cost * quantity * (1 - discount)
    batch_labor = unit.labor_cost * quantity
    batch_prime = batch_materials + batch_labor
    batch_total = _apply_overhead(batch_prime, product.overhead_percentage)
    batch_final = _apply_markup(batch_total, product.markup_percentage)

    return BatchCalculation(
        quantity=quantity,
        unit_prime_cost=unit.prime_cost,
        unit_total_cost=unit.total_cost,
        unit_final_price=unit.final_price,
        unit_profit=unit.net_profit,
        batch_material_cost=batch_materials,
        batch_labor_cost=batch_labor,
        batch_prime_cost=batch_prime,
        batch_total_cost=batch_total,
        batch_final_price=batch_final,
        batch_profit=batch_final - batch_total,
        scale_discount=discount,
        total_production_time=product.time_to_produce * quantity
    )


# ----------------------------
# Break-even
# ----------------------------
def break_even_analysis(product, hourly_rate):
    unit = cost_breakdown(product, hourly_rate)
    contribution_margin = unit.final_price - unit.total_cost

    # A non-positive margin reports 0 units rather than "never"
    if contribution_margin > 0:
        break_even_units = int(math.ceil(product.fixed_costs / contribution_margin))
    else:
        break_even_units = 0

    target = product.target_units_per_month
    if target > break_even_units:
        safety_margin = (target - break_even_units) / target * 100
    else:
        safety_margin = 0.0

    return BreakEvenResult(
        break_even_units=break_even_units,
        break_even_revenue=break_even_units * unit.final_price,
        contribution_margin=contribution_margin,
        fixed_costs=product.fixed_costs,
        profit_at_target=(target * contribution_margin) - product.fixed_costs,
        target_units=target,
        safety_margin_percent=safety_margin
    )


# ----------------------------
# What-if scenarios
# ----------------------------
def scenario_analysis(product, material_price_change, labor_rate_change, hourly_rate):
    """
    Re-run the pyramid with material cost and labor rate shifted by the given
    percentages. Overhead and markup percentages stay as they are.
    """
    current = cost_breakdown(product, hourly_rate)

    new_material_cost = current.material_cost * (1 + material_price_change / 100)
    new_labor_cost = labor_cost(product, hourly_rate * (1 + labor_rate_change / 100))
    new_prime = new_material_cost + new_labor_cost
    new_total = _apply_overhead(new_prime, product.overhead_percentage)
    new_final = _apply_markup(new_total, product.markup_percentage)
    new_profit = new_final - new_total

    profit_change = new_profit - current.net_profit
    if current.net_profit > 0:
        profit_change_percent = (profit_change / current.net_profit) * 100
    else:
        profit_change_percent = 0.0

    return ScenarioResult(
        original_prime_cost=current.prime_cost,
        original_total_cost=current.total_cost,
        original_final_price=current.final_price,
        original_profit=current.net_profit,
        new_prime_cost=new_prime,
        new_total_cost=new_total,
        new_final_price=new_final,
        new_profit=new_profit,
        prime_change=new_prime - current.prime_cost,
        price_change=new_final - current.final_price,
        profit_change=profit_change,
        profit_change_percent=profit_change_percent
    )


# ----------------------------
# Ad-hoc and portfolio views
# ----------------------------
def quick_calculation(material_cost_value, labor_hours, overhead_percent, markup_percent, quantity, hourly_rate):
    """Pyramid for numbers typed in directly, without a stored product."""
    snapshot = ProductSnapshot(
        markup_percentage=markup_percent,
        overhead_percentage=overhead_percent,
        time_to_produce=labor_hours,
        ingredients=(IngredientLine(amount_required=1.0, unit_price=material_cost_value),)
    )
    unit = cost_breakdown(snapshot, hourly_rate)

    result = unit.to_dict()
    result['hourly_rate'] = hourly_rate
    result['quantity'] = quantity
    result['batch_total_cost'] = unit.total_cost * quantity
    result['batch_revenue'] = unit.final_price * quantity
    result['batch_profit'] = unit.net_profit * quantity
    return result


def portfolio_summary(products, hourly_rate):
    """Aggregate figures across products for the analytics and report screens."""
    breakdowns = [cost_breakdown(p, hourly_rate) for p in products]
    count = len(breakdowns)

    summary = {
        'product_count': count,
        'total_revenue': sum(b.final_price for b in breakdowns),
        'total_profit': sum(b.net_profit for b in breakdowns),
        'total_material_cost': sum(b.material_cost for b in breakdowns),
        'total_labor_cost': sum(b.labor_cost for b in breakdowns),
        'total_overhead': sum(b.overhead_amount for b in breakdowns),
        'average_prime_cost': 0.0,
        'average_final_price': 0.0,
        'average_margin': 0.0,
    }
    if count:
        summary['average_prime_cost'] = sum(b.prime_cost for b in breakdowns) / count
        summary['average_final_price'] = summary['total_revenue'] / count
        summary['average_margin'] = sum(b.profit_margin for b in breakdowns) / count
    return summary


def compare_products(products, hourly_rate):
    """Side-by-side breakdowns, with the best margin and the lowest total cost picked out."""
    rows = []
    for product in products:
        row = cost_breakdown(product, hourly_rate).to_dict()
        row['id'] = product.id
        row['name'] = product.name
        row['time_to_produce'] = product.time_to_produce
        row['ingredient_count'] = len(product.ingredients)
        rows.append(row)

    best_margin = max(rows, key=lambda r: r['profit_margin']) if rows else None
    lowest_cost = min(rows, key=lambda r: r['total_cost']) if rows else None

    return {
        'products': rows,
        'best_margin_id': best_margin['id'] if best_margin else None,
        'lowest_cost_id': lowest_cost['id'] if lowest_cost else None
    }
