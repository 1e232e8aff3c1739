"""Initialize the Flask app that serves the group transaction functions."""

import os

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from .firebase import initialize_firebase


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        FIREBASE_STORAGE_BUCKET=os.environ.get("FIREBASE_STORAGE_BUCKET"),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        initialize_firebase(app.logger, app.config.get("FIREBASE_STORAGE_BUCKET"))

    # Register blueprints
    from . import functions as functions_bp

    app.register_blueprint(functions_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
