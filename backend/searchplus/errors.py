# backend/searchplus/errors.py
import json

from flask import jsonify, request
from flask.signals import got_request_exception
from werkzeug.exceptions import HTTPException

# The filtering engine itself never raises on bad queries (it degrades to
# "no match"); these cover the host-facing pieces around it.


class SearchPlusError(Exception):
    """Base class for errors raised by the record source and session layers."""


class UnknownTableError(SearchPlusError, LookupError):
    def __init__(self, table: str):
        super().__init__(f"Table not found: {table!r}")
        self.table = table


class InvalidModeError(SearchPlusError, ValueError):
    def __init__(self, kind: str, value: object, allowed: tuple):
        super().__init__(f"Invalid {kind} {value!r}; expected one of {', '.join(allowed)}")
        self.kind = kind
        self.value = value
        self.allowed = allowed


def register_error_handlers(app):
    setup_signals(app)

    @app.errorhandler(HTTPException)
    def handle_http(e: HTTPException):
        app.logger.warning("HTTP %s on %s %s", e.code, request.method, request.path, exc_info=e)
        resp = e.get_response()
        payload = {
            "ok": False,
            "error": e.name,
            "code": e.code,
            "description": e.description,
            "path": request.path,
            "method": request.method,
        }
        resp.data = json.dumps(payload)
        resp.content_type = "application/json"
        return resp

    @app.errorhandler(UnknownTableError)
    def handle_unknown_table(e: UnknownTableError):
        app.logger.info("Unknown table %r on %s %s", e.table, request.method, request.path)
        return jsonify(ok=False, error="Not Found", code=404, description=str(e)), 404

    @app.errorhandler(InvalidModeError)
    def handle_invalid_mode(e: InvalidModeError):
        app.logger.info("Rejected %s %r on %s", e.kind, e.value, request.path)
        return jsonify(ok=False, error="Bad Request", code=400, description=str(e)), 400

    @app.errorhandler(Exception)
    def handle_uncaught(e: Exception):
        app.logger.exception("Unhandled exception")
        return jsonify(ok=False, error="Internal Server Error"), 500

    @app.teardown_request
    def log_teardown(exc):
        if exc is not None:
            app.logger.exception("Teardown exception", exc_info=exc)
        return None


def setup_signals(app):
    def on_exc(sender, exception, **extra):
        app.logger.exception("Signal caught exception")
    got_request_exception.connect(on_exc, app)
