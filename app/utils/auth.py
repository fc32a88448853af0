"""
Token verification for the incentive API. Tokens are issued by the auth
service; this side only checks them.
"""
from functools import wraps

import jwt
from flask import current_app, jsonify, request


def decode_token(token: str) -> dict:
    """Decode and verify JWT token"""
    try:
        return jwt.decode(
            token,
            current_app.config['JWT_SECRET_KEY'],
            algorithms=[current_app.config['JWT_ALGORITHM']]
        )
    except jwt.ExpiredSignatureError:
        raise ValueError('Token has expired')
    except jwt.InvalidTokenError:
        raise ValueError('Invalid token')


def require_auth(f):
    """Decorator to require a valid bearer token"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get('Authorization')

        if not auth_header:
            return jsonify({'error': 'Missing authorization header'}), 401

        try:
            token = auth_header.split(' ')[1] if ' ' in auth_header else auth_header
            payload = decode_token(token)

            request.user_id = payload['user_id']
            request.user_role = payload.get('role', 'user')

        except (ValueError, IndexError, KeyError) as e:
            return jsonify({'error': str(e) or 'Invalid token'}), 401

        return f(*args, **kwargs)

    return decorated_function


def require_role(*roles):
    """Decorator to require specific role(s); use below require_auth"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not hasattr(request, 'user_role'):
                return jsonify({'error': 'Authentication required'}), 401

            if request.user_role not in roles:
                return jsonify({'error': 'Insufficient permissions'}), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def is_admin() -> bool:
    return getattr(request, 'user_role', None) == 'admin'


def can_access(actor_id: str) -> bool:
    """Admins see everything, everyone else only their own records"""
    return is_admin() or getattr(request, 'user_id', None) == actor_id
