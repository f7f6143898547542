from .materials import materials_blueprint
from .products import products_blueprint
from .calculator import calculator_blueprint
from .labor import labor_blueprint
from .suppliers import suppliers_blueprint
from .templates import templates_blueprint
from .reports import reports_blueprint
from .admin import admin_blueprint
