from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Optional

from flask import Flask, jsonify
from flask_cors import CORS
from sqlalchemy import text

from .config_loader import initialize_app_config
from .db import get_engine, load_env_files
from .errors import register_error_handlers
from .logging_setup import start_log
from .search import bp as bp_search

log = logging.getLogger(__name__)


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    """Instantiate and fully configure the Flask application instance.

    ``config`` replaces config/appconfig.json when given (tests pass a dict).
    """
    load_env_files()

    app = Flask(__name__)

    # The widget is usually served from a different origin than this API.
    CORS(app)

    if os.getenv("FLASK_ENV") == "development":
        app.logger.setLevel(logging.DEBUG)
        log.debug("Start of logger debug level")

    app.register_blueprint(bp_search)

    initialize_app_config(app, config)
    register_error_handlers(app)

    @app.get("/api/health")
    def health():
        """Report whether the record database answers."""
        db_ok = True
        try:
            with get_engine().connect() as conn:
                conn.execute(text("select 1"))
        except Exception:
            log.exception("DB ping failed")
            db_ok = False
        return jsonify(ok=True, db=db_ok)

    return app


def run() -> None:
    """Entry point for ``searchplus-server``."""
    start_log(app_name="searchplus", level=logging.DEBUG if os.getenv("FLASK_ENV") == "development" else None)
    app = create_app()
    host = os.getenv("SEARCHPLUS_HOST", "127.0.0.1")
    port = int(os.getenv("SEARCHPLUS_PORT", "5000"))
    log.info("Serving on %s:%d", host, port)
    app.run(host=host, port=port)
