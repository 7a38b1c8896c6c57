from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, jsonify, request


@dataclass(frozen=True)
class CurrentUser:
    """Identity decoded from the bearer token.

    Routes pass these fields explicitly into the engine; nothing below the
    route layer reads the request context.
    """

    id: str
    email: str
    name: str
    token: str


def generate_token(user_id, email='', name=''):
    """Generate a JWT token for a platform user."""
    payload = {
        'user_id': str(user_id),
        'email': email,
        'name': name,
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


def _decode_user_from_token(token):
    normalized = _normalize_bearer_token(token)
    if not normalized:
        return None, 'Authentication required'
    try:
        payload = jwt.decode(
            normalized, current_app.config['SECRET_KEY'], algorithms=['HS256']
        )
    except jwt.ExpiredSignatureError:
        return None, 'Token expired'
    except jwt.InvalidTokenError:
        return None, 'Invalid token'

    user_id = str(payload.get('user_id') or '').strip()
    if not user_id:
        return None, 'Invalid token'
    user = CurrentUser(
        id=user_id,
        email=str(payload.get('email') or '').strip().lower(),
        name=str(payload.get('name') or '').strip(),
        token=normalized,
    )
    return user, None


def login_required(f):
    """Decorator to require authentication on a route."""
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization', '')
        user, error = _decode_user_from_token(auth_header)
        if error:
            return jsonify({'error': error}), 401
        request.current_user = user
        return f(*args, **kwargs)
    return decorated
