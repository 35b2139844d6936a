"""
CAP web service Flask application
"""

from typing import Any, Mapping, Optional

from flask import Flask
from flask_cors import CORS


DEFAULT_CONFIG = {
    # indent generated documents
    'CAP_PRETTY_PRINT': True,
    'MAX_CONTENT_LENGTH': 1024 * 1024,
}


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """
    Build the Flask app.

    Settings come from DEFAULT_CONFIG, then OASISCAP_* environment variables
    (e.g. OASISCAP_CAP_PRETTY_PRINT=false), then `config`.
    """
    app = Flask(__name__)
    app.config.update(DEFAULT_CONFIG)
    app.config.from_prefixed_env('OASISCAP')
    if config:
        app.config.update(config)
    CORS(app)

    # register blueprints
    from .routes import api_bp
    app.register_blueprint(api_bp, url_prefix='/api')

    return app
