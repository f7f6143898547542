import os
from flask import Flask, request, session, jsonify
from flask_babel import Babel
from flask_babel import gettext as _
from sqlalchemy.exc import SQLAlchemyError
from .models import db, ValidationError

def get_locale():
    selected_locale = request.args.get('lang', session.get('lang'))
    if selected_locale:
        return selected_locale
    return request.accept_languages.best_match(['en', 'ru']) or 'en'

def create_app(test_config=None):
    app = Flask(__name__)

    @app.before_request
    def before_request():
        """Capture language parameter and save to session for persistence across requests"""
        if 'lang' in request.args:
            session['lang'] = request.args.get('lang')

    # Load configurations
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///unit_cost.db")
    app.config['SQLALCHEMY_DATABASE_URI'] = DATABASE_URL
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False

    # Secret key for session management
    app.config['SECRET_KEY'] = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    app.config['CURRENCY_SYMBOL'] = os.getenv('CURRENCY_SYMBOL', '$')

    app.config['BABEL_DEFAULT_LOCALE'] = os.getenv('DEFAULT_LOCALE', 'en')
    app.config['BABEL_SUPPORTED_LOCALES'] = ['en', 'ru']
    app.config['BABEL_TRANSLATION_DIRECTORIES'] = '../translations'

    if test_config:
        app.config.update(test_config)

    Babel(app, locale_selector=get_locale)

    # Initialize database
    db.init_app(app)

    @app.errorhandler(ValidationError)
    def handle_validation_error(error):
        # Drop any half-applied edits
        db.session.rollback()
        return jsonify({'success': False, 'error': str(error)}), 400

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'success': False, 'error': _('Not found')}), 404

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        app.logger.error(f"Database error: {str(error)}")
        return jsonify({'success': False, 'error': _('Could not save changes')}), 500

    # Register blueprints
    from .routes import (
        materials_blueprint, products_blueprint, calculator_blueprint, labor_blueprint,
        suppliers_blueprint, templates_blueprint, reports_blueprint, admin_blueprint
    )
    app.register_blueprint(materials_blueprint)
    app.register_blueprint(products_blueprint)
    app.register_blueprint(calculator_blueprint)
    app.register_blueprint(labor_blueprint)
    app.register_blueprint(suppliers_blueprint)
    app.register_blueprint(templates_blueprint)
    app.register_blueprint(reports_blueprint)
    app.register_blueprint(admin_blueprint)

    with app.app_context():
        db.create_all()

    return app
