"""Utilities package"""
from .auth import can_access, decode_token, is_admin, require_auth, require_role
from .helpers import format_currency, int_arg, json_body, safe_int

__all__ = [
    'can_access',
    'decode_token',
    'is_admin',
    'require_auth',
    'require_role',
    'format_currency',
    'int_arg',
    'json_body',
    'safe_int',
]
