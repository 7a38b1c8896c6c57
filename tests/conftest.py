from datetime import datetime

import pytest

from player_finder.app import create_app
from player_finder.auth_utils import generate_token
from player_finder.errors import ConflictError, NotFoundError
from player_finder.models import InviteeResponse, parse_rows

NOW = datetime(2025, 7, 24, 12, 0)

ORGANIZER = {'id': 'u1', 'email': 'olivia@test.com', 'name': 'Olivia'}
AMY = {'id': 'u2', 'email': 'amy@test.com', 'name': 'Amy'}
BEN = {'id': 'u3', 'email': 'ben@test.com', 'name': 'Ben'}
CARA = {'id': 'u4', 'email': 'cara@test.com', 'name': 'Cara'}


def row_payload(**overrides):
    """A tracker row as the platform returns it."""
    invitation_id = overrides.pop('invitation_id', 'i1')
    payload = {
        'requestId': overrides.pop('request_id', 'r1'),
        'invitationId': invitation_id,
        'inviteeId': overrides.pop('invitee_id', AMY['id']),
        'inviteeName': overrides.pop('invitee_name', AMY['name']),
        'inviteeEmail': overrides.pop('invitee_email', AMY['email']),
        'status': overrides.pop('status', 'PENDING'),
        'playTime': overrides.pop('play_time', [2025, 7, 24, 14, 0]),
        'playEndTime': overrides.pop('play_end_time', [2025, 7, 24, 15, 0]),
        'placeToPlay': overrides.pop('place', 'Riverside Courts'),
        'playersNeeded': overrides.pop('players_needed', 2),
        'organizerId': overrides.pop('organizer_id', ORGANIZER['id']),
        'organizerName': overrides.pop('organizer_name', ORGANIZER['name']),
        'organizerEmail': overrides.pop('organizer_email', ORGANIZER['email']),
        'acceptUrl': overrides.pop('accept_url', f'http://platform.test/accept/{invitation_id}'),
        'declineUrl': overrides.pop('decline_url', f'http://platform.test/decline/{invitation_id}'),
        'reminderMetadata': overrides.pop('reminder_metadata', None),
    }
    payload.update(overrides)
    return payload


def game_rows(request_id='r1', players_needed=2, statuses=('PENDING', 'PENDING', 'PENDING'), **shared):
    """Rows for one request with Amy, Ben and Cara invited."""
    rows = []
    for index, (person, status) in enumerate(zip((AMY, BEN, CARA), statuses), start=1):
        rows.append(row_payload(
            request_id=request_id,
            invitation_id=f'{request_id}-i{index}',
            invitee_id=person['id'],
            invitee_name=person['name'],
            invitee_email=person['email'],
            status=status,
            players_needed=players_needed,
            **shared,
        ))
    return rows


class FakeGateway:
    """In-memory stand-in for the platform; mutations change the stored rows."""

    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.calls = []
        self.comments = {}
        self.refuse_capability = False
        self.created = []

    def _matching(self, predicate, skip_malformed=False):
        return parse_rows([row for row in self.rows if predicate(row)], skip_malformed=skip_malformed)

    def _set_status(self, predicate, status):
        for row in self.rows:
            if predicate(row):
                row['status'] = status

    def fetch_request_rows(self, request_id, token=None):
        self.calls.append(('fetch_request_rows', request_id))
        return self._matching(lambda row: row['requestId'] == str(request_id))

    def fetch_incoming_rows(self, user_id, token=None):
        self.calls.append(('fetch_incoming_rows', user_id))
        return self._matching(lambda row: row['inviteeId'] == str(user_id), skip_malformed=True)

    def fetch_outgoing_rows(self, email, token=None):
        self.calls.append(('fetch_outgoing_rows', email))
        return self._matching(lambda row: row.get('organizerEmail') == email, skip_malformed=True)

    def invoke_capability(self, action):
        self.calls.append(('invoke_capability', action.action, action.invitation_id, action.comment))
        if self.refuse_capability:
            raise ConflictError(
                f'Failed to {action.action} invitation. You may have another event at the same time.'
            )
        target = 'ACCEPTED' if action.action == 'accept' else 'DECLINED'
        self._set_status(lambda row: row['invitationId'] == action.invitation_id, target)
        return True

    def cancel_invitation(self, request_id, user_id, comment='', token=None):
        self.calls.append(('cancel_invitation', request_id, user_id, comment))
        self._set_status(
            lambda row: row['requestId'] == request_id and row['inviteeId'] == user_id,
            'CANCELLED',
        )
        return True

    def withdraw_request(self, request_id, organizer_id, comment='', token=None):
        self.calls.append(('withdraw_request', request_id, organizer_id, comment))
        self._set_status(lambda row: row['requestId'] == request_id, 'WITHDRAWN')
        return True

    def create_request(self, finder_request, place_to_save=None, token=None):
        self.calls.append(('create_request', finder_request['placeToPlay']))
        self.created.append((finder_request, place_to_save))
        return {'requestId': f'new-{len(self.created)}', **finder_request}

    def update_request(self, request_id, requester_id, changes, token=None):
        self.calls.append(('update_request', request_id, requester_id))
        matched = [row for row in self.rows if row['requestId'] == request_id]
        if not matched:
            raise NotFoundError(f'Update request: {request_id} not found')
        for row in matched:
            row.update(changes)
        return {'requestId': request_id}

    def fetch_comments(self, thread_key, token=None):
        self.calls.append(('fetch_comments', thread_key))
        return list(self.comments.get(thread_key, []))

    def mutation_calls(self):
        return [call for call in self.calls if not call[0].startswith('fetch_')]


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def app(fake_gateway):
    app = create_app('testing', gateway=fake_gateway, clock=lambda: NOW)
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    """Build bearer headers for one of the test users."""
    def _headers(user=ORGANIZER):
        token = generate_token(user['id'], email=user['email'], name=user['name'])
        return {'Authorization': f'Bearer {token}', 'Content-Type': 'application/json'}
    return _headers


@pytest.fixture
def make_row():
    def _make(**overrides):
        return InviteeResponse.from_payload(row_payload(**overrides))
    return _make
