from __future__ import annotations

import logging

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from ..core.exceptions import DomainError, ValidationError

logger = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        body = {"success": False, "message": str(exc)}
        if isinstance(exc, ValidationError) and exc.errors:
            body["errors"] = [e.to_dict() for e in exc.errors]
        if exc.status_code >= 500 and exc.__cause__ is not None and app.config.get("DEBUG"):
            body["error"] = str(exc.__cause__)
        return jsonify(body), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        return jsonify({"success": False, "message": exc.description}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        logger.exception("Unhandled error")
        body = {"success": False, "message": "Internal server error"}
        if app.config.get("DEBUG"):
            body["error"] = str(exc)
        return jsonify(body), 500
