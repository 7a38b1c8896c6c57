"""Tests for bearer token handling."""
import json

import jwt

from conftest import AMY
from player_finder.auth_utils import _decode_user_from_token, generate_token


def test_generated_token_round_trips_identity(app):
    token = generate_token(AMY['id'], email='Amy@Test.com', name='Amy')
    user, error = _decode_user_from_token(f'Bearer {token}')
    assert error is None
    assert user.id == 'u2'
    assert user.email == 'amy@test.com'
    assert user.token == token


def test_missing_token(app):
    user, error = _decode_user_from_token('')
    assert user is None
    assert error == 'Authentication required'


def test_expired_token(app):
    app.config['JWT_EXPIRATION_HOURS'] = -1
    token = generate_token(AMY['id'])
    assert _decode_user_from_token(token) == (None, 'Token expired')


def test_token_signed_with_another_key_is_rejected(app):
    token = jwt.encode({'user_id': 'u2'}, 'some-other-secret-that-is-long-enough-too', algorithm='HS256')
    assert _decode_user_from_token(token) == (None, 'Invalid token')


def test_token_without_user_id_is_rejected(app):
    token = jwt.encode({'email': 'amy@test.com'}, app.config['SECRET_KEY'], algorithm='HS256')
    assert _decode_user_from_token(token) == (None, 'Invalid token')


def test_protected_route_returns_401_json(client):
    res = client.get('/api/invitations/sent')
    assert res.status_code == 401
    assert json.loads(res.data) == {'error': 'Authentication required'}
