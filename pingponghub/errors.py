"""Error taxonomy shared by the server functions.

Handlers raise one of the ``ApiError`` subclasses; the handlers registered
here turn them into ``{"error": ...}`` JSON bodies. Anything else that
escapes a view is logged with its traceback and reported as a generic 500.
"""
from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    status_code = 500
    default_message = 'Internal server error'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_response(self):
        return jsonify({'error': self.message}), self.status_code


class ValidationError(ApiError):
    """A required field is missing or malformed."""
    status_code = 400
    default_message = 'Invalid request'


class NotFound(ApiError):
    """A referenced entity does not exist."""
    status_code = 404
    default_message = 'Not found'


class DependencyFailure(ApiError):
    """The data layer or a rating/badge routine failed."""
    status_code = 500
    default_message = 'Dependency failure'


def _handle_api_error(err):
    if err.status_code >= 500:
        current_app.logger.error(
            'function error: path=%s method=%s error=%s',
            request.path, request.method, err.message,
        )
    return err.to_response()


def _handle_http_exception(err):
    return jsonify({'error': err.description or err.name}), err.code


def _handle_unexpected_error(err):
    current_app.logger.exception(
        'unexpected error: path=%s method=%s', request.path, request.method,
    )
    return jsonify({'error': 'Internal server error'}), 500


def register_error_handlers(app):
    app.register_error_handler(ApiError, _handle_api_error)
    app.register_error_handler(HTTPException, _handle_http_exception)
    app.register_error_handler(Exception, _handle_unexpected_error)
