from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional

from flask import Flask

from .agronomy_routes import agro_bp
from .auth_routes import auth_bp
from .config import Config, configure_logging
from .errors import install_error_handlers
from .farm_report_routes import farm_report_bp
from .page_routes import pages_bp
from .stores import EXTENSION_KEY, build_stores

logger = logging.getLogger(__name__)


def create_app(overrides: Optional[Mapping[str, Any]] = None) -> Flask:
    # Static pages live next to this module in `farm_records/static`; the
    # HTML routes serve them explicitly so no automatic static route is needed.
    app = Flask(__name__, static_folder=str(Path(__file__).resolve().parent / "static"), static_url_path="/static")
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    configure_logging(app.config["LOG_LEVEL"])

    stores = build_stores(
        data_dir=app.config["DATA_DIR"],
        upload_dir=app.config["UPLOAD_DIR"] or None,
        timezone_name=app.config["REPORT_TIMEZONE"],
    )
    stores.ensure_files()
    app.extensions[EXTENSION_KEY] = stores
    logger.info(f"Data directory: {stores.data_dir}")

    install_error_handlers(app)

    # Routes
    app.register_blueprint(pages_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(agro_bp)
    app.register_blueprint(farm_report_bp)

    return app
