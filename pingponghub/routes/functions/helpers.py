"""Request parsing shared by the function endpoints."""
import math

from flask import request

from pingponghub.errors import ValidationError

ALLOWED_MATCHMAKING_TYPES = {'RANKED', 'FRIENDLY'}


def _coerce_bool(raw_value):
    if isinstance(raw_value, bool):
        return raw_value
    if isinstance(raw_value, (int, float)):
        return raw_value == 1
    if raw_value is None:
        return False
    return str(raw_value).strip().lower() in {'1', 'true', 'yes', 'on'}


def _json_payload():
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError('Invalid JSON payload')
    return data


def _required_id(data, *names):
    """Return the stripped string ids for ``names``; 400 if any is blank."""
    values = []
    for name in names:
        raw = data.get(name)
        value = str(raw).strip() if raw is not None else ''
        values.append(value)
    if not all(values):
        raise ValidationError(f'{" and ".join(names)} {"is" if len(names) == 1 else "are"} required')
    return values[0] if len(values) == 1 else tuple(values)


def _parse_number(data, name, default, allow_zero=False):
    raw = data.get(name)
    if raw is None:
        value = default
    else:
        if isinstance(raw, bool):
            raise ValidationError(f'{name} must be a number')
        try:
            value = float(raw)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError(f'{name} must be a number') from None
    if not math.isfinite(value) or value < 0 or (value == 0 and not allow_zero):
        bound = 'zero or greater' if allow_zero else 'greater than zero'
        raise ValidationError(f'{name} must be {bound}')
    value = float(value)
    return int(value) if value.is_integer() else value


def _parse_match_type(data, default='RANKED'):
    match_type = str(data.get('match_type') or default).strip().upper()
    if match_type not in ALLOWED_MATCHMAKING_TYPES:
        raise ValidationError('match_type must be RANKED or FRIENDLY')
    return match_type
