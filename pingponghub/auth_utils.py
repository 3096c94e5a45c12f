from functools import wraps
from flask import request, jsonify, current_app
import jwt


def generate_token(subject, role='authenticated'):
    """Generate a JWT accepted by the function endpoints."""
    from datetime import datetime, timedelta, timezone
    payload = {
        'sub': str(subject),
        'role': role,
        'exp': datetime.now(timezone.utc) + timedelta(
            hours=current_app.config.get('JWT_EXPIRATION_HOURS', 24)
        ),
    }
    return jwt.encode(payload, current_app.config['SECRET_KEY'], algorithm='HS256')


def _normalize_bearer_token(raw_token):
    token = str(raw_token or '').strip()
    if token.startswith('Bearer '):
        token = token.split(' ', 1)[1].strip()
    return token


def decode_token(token):
    """Return ``(claims, error)`` for a raw bearer token value."""
    normalized = _normalize_bearer_token(token)
    if not normalized:
        return None, 'Authentication required'
    try:
        claims = jwt.decode(
            normalized, current_app.config['SECRET_KEY'], algorithms=['HS256']
        )
    except jwt.ExpiredSignatureError:
        return None, 'Token expired'
    except jwt.InvalidTokenError:
        return None, 'Invalid token'
    return claims, None


def function_auth_required(f):
    """Verify the caller's JWT, as the hosted functions gateway did."""
    @wraps(f)
    def decorated(*args, **kwargs):
        if not current_app.config.get('FUNCTIONS_VERIFY_JWT', True):
            request.jwt_claims = {}
            return f(*args, **kwargs)
        claims, error = decode_token(request.headers.get('Authorization', ''))
        if error:
            return jsonify({'error': error}), 401
        request.jwt_claims = claims
        return f(*args, **kwargs)
    return decorated
