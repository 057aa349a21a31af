"""
API error types and the handlers that render them as JSON envelopes
"""
from flask import current_app, jsonify, request
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Error carrying an HTTP status and a machine readable code"""
    status_code = 400
    code = 'BAD_REQUEST'

    def __init__(self, message, status_code=None, code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code

    def to_dict(self):
        return {'message': self.message, 'code': self.code}


class ValidationError(ApiError):
    status_code = 400
    code = 'VALIDATION_ERROR'


class UnauthorizedError(ApiError):
    status_code = 401
    code = 'UNAUTHORIZED'


class ForbiddenError(ApiError):
    status_code = 403
    code = 'FORBIDDEN'


class NotFoundError(ApiError):
    status_code = 404
    code = 'NOT_FOUND'


class ConflictError(ApiError):
    status_code = 409
    code = 'ALREADY_EXISTS'


class PaymentGatewayError(ApiError):
    status_code = 502
    code = 'PAYMENT_GATEWAY_ERROR'


def error_response(message, status_code, code):
    return jsonify({
        'success': False,
        'error': {
            'message': message,
            'code': code
        }
    }), status_code


def register_error_handlers(app, db):
    @app.errorhandler(ApiError)
    def handle_api_error(error):
        db.session.rollback()
        if error.status_code >= 500:
            current_app.logger.error(f"{request.method} {request.path} failed: {error.message}")
        return error_response(error.message, error.status_code, error.code)

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        db.session.rollback()
        if error.code == 404:
            return error_response(f'Not Found - {request.path}', 404, 'NOT_FOUND')
        code = 'SERVER_ERROR' if error.code >= 500 else error.name.upper().replace(' ', '_')
        return error_response(error.description, error.code, code)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        current_app.logger.exception(f"Unhandled error on {request.method} {request.path}")
        return error_response('Server error. Please try again.', 500, 'SERVER_ERROR')


def register_jwt_handlers(jwt):
    @jwt.unauthorized_loader
    def missing_token_callback(reason):
        return error_response('No token, authorization denied', 401, 'UNAUTHORIZED')

    @jwt.invalid_token_loader
    def invalid_token_callback(reason):
        return error_response('Token is not valid', 401, 'UNAUTHORIZED')

    @jwt.expired_token_loader
    def expired_token_callback(jwt_header, jwt_data):
        return error_response('Token expired', 401, 'UNAUTHORIZED')

    @jwt.user_lookup_error_loader
    def user_lookup_error_callback(jwt_header, jwt_data):
        return error_response('User not found or inactive', 401, 'UNAUTHORIZED')
