"""
Helper utilities
"""
from decimal import Decimal

from flask import request

from app.errors import InvalidArgument


def format_currency(amount, currency='BRL'):
    """
    Format amount as currency

    Args:
        amount: Numeric amount
        currency (str): Currency code

    Returns:
        str: Formatted currency string
    """
    if isinstance(amount, (Decimal, float, int)):
        amount = float(amount)

        if currency.upper() == 'BRL':
            return f'R$ {amount:,.2f}'
        return f'{amount:,.2f} {currency.upper()}'

    return str(amount)


def safe_int(value, default=0):
    """
    Safely convert value to int

    Args:
        value: Value to convert
        default (int): Default value if conversion fails

    Returns:
        int: Converted value or default
    """
    try:
        return int(value)
    except (ValueError, TypeError):
        return default


def int_arg(name, default, minimum=None, maximum=None):
    """Integer query-string argument clamped to [minimum, maximum]"""
    value = safe_int(request.args.get(name), default)
    if minimum is not None:
        value = max(minimum, value)
    if maximum is not None:
        value = min(maximum, value)
    return value


def json_body(*required):
    """Request JSON body; InvalidArgument when it is missing or lacks a field"""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgument('Request body must be a JSON object')

    missing = [field for field in required if data.get(field) in (None, '')]
    if missing:
        raise InvalidArgument(f'Missing required fields: {", ".join(missing)}')
    return data
