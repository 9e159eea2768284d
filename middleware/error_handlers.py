# middleware/error_handlers.py
"""
Translate exceptions into the JSON error envelope
"""

from flask import Flask, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from api.schemas import ErrorResponse, validation_messages
from core.exceptions import ConstraintViolationError, DuplicateItemError, TypeMismatchError


def error_response(status: int, error: str, messages):
    body = ErrorResponse.of(status, error, messages, request.path)
    return jsonify(body.to_dict()), status


def register_error_handlers(app: Flask) -> None:
    """Install the handlers on ``app``"""

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        return error_response(400, 'Validation Failed', validation_messages(e.errors()))

    @app.errorhandler(ConstraintViolationError)
    def handle_constraint_violation(e):
        return error_response(400, 'Constraint Violation', [str(e)])

    @app.errorhandler(TypeMismatchError)
    def handle_type_mismatch(e):
        return error_response(400, 'Type Mismatch', [str(e)])

    @app.errorhandler(DuplicateItemError)
    def handle_duplicate(e):
        app.logger.warning(f"Data conflict on {request.method} {request.path}: {e}")
        return error_response(409, 'Data Conflict', [str(e)])

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        if e.code == 429:
            app.logger.warning(f"Rate limit exceeded for {request.remote_addr}")
        description = e.description or e.name
        return error_response(e.code, e.name, [description])

    @app.errorhandler(Exception)
    def handle_exception(e):
        """Catch-all: log the traceback, expose only the message"""
        app.logger.error(f"Unhandled exception: {e}", exc_info=True)
        return error_response(500, 'Internal Server Error', [str(e)])
