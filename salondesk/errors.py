import logging
from flask import jsonify
from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class APIError(Exception):
    status_code = 500

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {'error': self.message}


class ValidationError(APIError):
    status_code = 400


class AuthenticationError(APIError):
    status_code = 401


class PermissionDenied(APIError):
    status_code = 403


class NotFound(APIError):
    status_code = 404


class Conflict(APIError):
    status_code = 409


class RateLimited(APIError):
    status_code = 429

    def __init__(self, message, retry_after):
        super().__init__(message)
        self.retry_after = max(1, int(retry_after))

    def to_dict(self):
        return {'error': self.message, 'retryAfter': self.retry_after}


def schema_error_message(exc):
    """Collapse a pydantic error into the single message shown to the user."""
    first = exc.errors()[0]
    field = '.'.join(str(part) for part in first.get('loc', ()) if part != '__root__')
    message = first.get('msg', 'Invalid input')
    if message.startswith('Value error, '):
        message = message[len('Value error, '):]
    return f'{field}: {message}' if field else message


def register_error_handlers(app):
    from salondesk.extensions import db

    @app.errorhandler(APIError)
    def handle_api_error(exc):
        response = jsonify(exc.to_dict())
        response.status_code = exc.status_code
        if isinstance(exc, RateLimited):
            response.headers['Retry-After'] = str(exc.retry_after)
        return response

    @app.errorhandler(SchemaError)
    def handle_schema_error(exc):
        return jsonify({'error': schema_error_message(exc)}), 400

    @app.errorhandler(SQLAlchemyError)
    def handle_db_error(exc):
        db.session.rollback()
        logger.exception('Database error')
        return jsonify({'error': 'Database error'}), 500

    @app.errorhandler(400)
    def handle_bad_request(_exc):
        return jsonify({'error': 'Malformed request body'}), 400

    @app.errorhandler(404)
    def handle_not_found(_exc):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(405)
    def handle_method_not_allowed(_exc):
        return jsonify({'error': 'Method not allowed'}), 405
