"""Flask app serving the product catalog API."""

from typing import Any, Dict, Optional

from flask import Flask

from storefront.api import api, health
from storefront.config import FLASK_DEBUG, FLASK_HOST, FLASK_PORT, PRODUCTS_PATH

__all__ = ["create_app", "app"]


def create_app(config: Optional[Dict[str, Any]] = None) -> Flask:
    """Create the Flask app.

    Args:
        config: Overrides for app.config, e.g. PRODUCTS_PATH or a
            preloaded CATALOG.
    """
    flask_app = Flask(__name__)
    flask_app.config["PRODUCTS_PATH"] = PRODUCTS_PATH
    flask_app.config["CATALOG"] = None
    if config:
        flask_app.config.update(config)

    flask_app.register_blueprint(api)
    flask_app.register_blueprint(health)
    return flask_app


app = create_app()


if __name__ == "__main__":
    app.run(host=FLASK_HOST, port=FLASK_PORT, debug=FLASK_DEBUG)
