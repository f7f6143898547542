"""Static lookup tables for units, categories, currencies and stock statuses."""

# Unit code -> display name
UNIT_TYPES = {
    "kg": "Kilogram",
    "g": "Gram",
    "l": "Liter",
    "ml": "Milliliter",
    "m": "Meter",
    "cm": "Centimeter",
    "pcs": "Pieces",
}

units_list = list(UNIT_TYPES.keys())

MATERIAL_CATEGORIES = [
    "Raw Material",
    "Packaging",
    "Consumable",
    "Component",
    "Chemical",
    "Textile",
    "Metal",
    "Wood",
    "Plastic",
    "Other",
]

PRODUCT_CATEGORIES = [
    "General",
    "Food & Beverage",
    "Apparel",
    "Electronics",
    "Home & Garden",
    "Beauty & Personal Care",
    "Toys & Games",
    "Sports & Outdoors",
    "Automotive",
    "Industrial",
]

NOTE_CATEGORIES = ["General", "Production", "Quality", "Improvement", "Warning", "Reminder"]

# Stock status codes, in the order they are checked
OUT_OF_STOCK = "out_of_stock"
REORDER_NEEDED = "reorder_needed"
LOW_STOCK = "low_stock"
IN_STOCK = "in_stock"

STOCK_STATUS_LABELS = {
    IN_STOCK: "In Stock",
    LOW_STOCK: "Low Stock",
    OUT_OF_STOCK: "Out of Stock",
    REORDER_NEEDED: "Reorder Needed",
}

# Currency code -> (symbol, name, default rate to USD)
CURRENCIES = {
    "USD": ("$", "US Dollar", 1.0),
    "EUR": ("€", "Euro", 1.08),
    "RUB": ("₽", "Russian Ruble", 0.011),
    "GBP": ("£", "British Pound", 1.27),
    "CNY": ("¥", "Chinese Yuan", 0.14),
    "JPY": ("¥", "Japanese Yen", 0.0067),
    "INR": ("₹", "Indian Rupee", 0.012),
    "BRL": ("R$", "Brazilian Real", 0.20),
    "CAD": ("C$", "Canadian Dollar", 0.74),
    "AUD": ("A$", "Australian Dollar", 0.65),
}

DEFAULT_CURRENCY = "USD"


def unit_display_name(unit_code):
    return UNIT_TYPES.get(unit_code, unit_code)


def currency_symbol(code):
    """Symbol for a currency code, falling back to the code itself."""
    if code in CURRENCIES:
        return CURRENCIES[code][0]
    return code


def default_rate_to_usd(code):
    if code in CURRENCIES:
        return CURRENCIES[code][2]
    return 1.0


def convert_currency(amount, from_code, to_code, rates=None):
    """
    Convert an amount between currencies by going through USD.

    Args:
        amount: Value in from_code
        from_code: Source currency code
        to_code: Target currency code
        rates: Optional mapping of currency code -> rate to USD overriding the defaults

    Returns:
        Converted amount (0 when the target rate is not positive)
    """
    if from_code == to_code:
        return amount

    rates = rates or {}
    from_rate = rates.get(from_code, default_rate_to_usd(from_code))
    to_rate = rates.get(to_code, default_rate_to_usd(to_code))

    if to_rate <= 0:
        return 0.0

    return amount * from_rate / to_rate
