import math
import re
import uuid
from datetime import datetime
from flask import jsonify, request
from yumrun.utils.errors import ValidationError

OBJECT_ID_PATTERN = re.compile(r'^[0-9a-fA-F]{24}$')


def new_object_id():
    """Generate a 24 character hexadecimal identifier"""
    return uuid.uuid4().hex[:24]


def is_valid_object_id(value):
    return isinstance(value, str) and bool(OBJECT_ID_PATTERN.match(value))


def require_object_id(value, label='ID'):
    if not is_valid_object_id(value):
        raise ValidationError(f'Invalid {label} format')
    return value


def api_response(data=None, message=None, status=200, **extra):
    """Build the standard success envelope"""
    body = {'success': True}
    if message is not None:
        body['message'] = message
    if data is not None:
        body['data'] = data
    body.update(extra)
    return jsonify(body), status


def get_json_body():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def require_fields(data, *fields, message=None):
    missing = [f for f in fields if data.get(f) in (None, '', [])]
    if missing:
        raise ValidationError(message or f"Missing required fields: {', '.join(missing)}")


def pagination_args(default_limit=10, max_limit=100):
    try:
        page = max(int(request.args.get('page', 1)), 1)
        limit = min(max(int(request.args.get('limit', default_limit)), 1), max_limit)
    except (TypeError, ValueError):
        raise ValidationError('page and limit must be integers')
    return page, limit


def pagination_meta(page, limit, total):
    return {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': (total + limit - 1) // limit
    }


def parse_datetime(value, label='date'):
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00')).replace(tzinfo=None)
    except (AttributeError, ValueError):
        raise ValidationError(f'Invalid {label}: {value}')


def to_number(value, label, default=None, minimum=None):
    if value is None or value == '':
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{label} must be a number')
    if not math.isfinite(number):
        raise ValidationError(f'{label} must be a number')
    if minimum is not None and number < minimum:
        raise ValidationError(f'{label} must be at least {minimum}')
    return number


def isoformat(value):
    return value.isoformat() if value else None
