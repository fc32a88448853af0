"""
Error taxonomy for the incentive engines and its HTTP rendering
"""
import logging

from flask import jsonify

logger = logging.getLogger(__name__)


class IncentiveError(Exception):
    """Base class for errors raised by the incentive engines"""
    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self):
        return {'error': self.message, 'code': self.__class__.__name__}


class NotFound(IncentiveError):
    """Referenced cleaner, booking, punishment, bonus or rating does not exist"""
    status_code = 404


class InvalidArgument(IncentiveError):
    """Unknown punishment/achievement type, malformed period or value"""
    status_code = 400


class Conflict(IncentiveError):
    """Duplicate record, illegal state transition or lost concurrent update"""
    status_code = 409


class MissingPayoutDetails(IncentiveError):
    """Cleaner has neither a PIX key nor a bank account configured"""
    status_code = 422


class Unexpected(IncentiveError):
    """Store or external collaborator failure"""
    status_code = 500


def register_error_handlers(app):
    """Render engine errors as JSON responses"""

    @app.errorhandler(IncentiveError)
    def handle_incentive_error(error):
        if error.status_code >= 500:
            logger.error('Unexpected incentive error: %s', error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(404)
    def handle_not_found(error):
        return jsonify({'error': 'Resource not found'}), 404

    @app.errorhandler(429)
    def ratelimit_handler(e):
        retry_after = dict(e.get_headers()).get('Retry-After') if hasattr(e, 'get_headers') else None
        return jsonify({
            'error': 'Too many requests. Please try again later.',
            'retry_after': int(retry_after) if retry_after else 60,
        }), 429
