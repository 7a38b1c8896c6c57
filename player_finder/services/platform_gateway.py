"""HTTP client for the club platform's player-finder and tracker endpoints.

The platform is authoritative: every view is re-derived from what these
calls return, and nothing is retried automatically because the mutation
endpoints are not idempotent.
"""
import logging
from dataclasses import dataclass

import requests

from player_finder.errors import (
    ConflictError,
    MalformedError,
    NotFoundError,
    TransientError,
    UnauthorizedError,
    UpstreamPayloadError,
)
from player_finder.models import parse_rows

logger = logging.getLogger(__name__)

_TRANSIENT_STATUSES = {408, 425, 429}


@dataclass(frozen=True)
class CapabilityAction:
    """An accept/decline to perform through the row's own capability link.

    ``url`` is an opaque token handed out by the platform; it is fetched as
    is, with the comment passed as a query parameter, and never rewritten.
    """

    action: str
    request_id: str
    invitation_id: str
    invitee_id: str
    url: str
    comment: str = ''


def _raise_for_status(response, what):
    status = response.status_code
    if 200 <= status < 300:
        return
    detail = {'status': status, 'operation': what}
    if status == 404:
        raise NotFoundError(f'{what}: not found', detail)
    if status in (401, 403):
        raise UnauthorizedError(f'{what}: not allowed', detail)
    if status == 409:
        raise ConflictError(f'{what}: rejected by the platform', detail)
    if status in (400, 422):
        raise MalformedError(f'{what}: platform rejected the payload', detail)
    if status in _TRANSIENT_STATUSES or status >= 500:
        raise TransientError(f'{what}: platform unavailable, try again', detail)
    raise ConflictError(f'{what}: unexpected platform response', detail)


def comment_thread_key(request_id, user_id=None, other_user_id=None):
    """Join key for a comment thread: the request, or a 1:1 sub-thread of it."""
    if user_id and other_user_id:
        return f'{request_id}_{user_id}_{other_user_id}'
    return str(request_id)


class PlatformGateway:
    def __init__(self, base_url, timeout=10, session=None):
        self.base_url = str(base_url or '').rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _url(self, path):
        return f'{self.base_url}{path}'

    @staticmethod
    def _headers(token=None):
        headers = {'Accept': 'application/json'}
        if token:
            headers['Authorization'] = f'Bearer {token}'
        return headers

    def _send(self, method, url, what, token=None, params=None, json=None, allow_redirects=True):
        try:
            response = self.session.request(
                method, url,
                params=params, json=json,
                headers=self._headers(token),
                timeout=self.timeout,
                allow_redirects=allow_redirects,
            )
        except requests.Timeout:
            logger.warning('%s timed out after %ss', what, self.timeout)
            raise TransientError(f'{what}: timed out, try again') from None
        except requests.RequestException as exc:
            logger.warning('%s failed: %s', what, exc)
            raise TransientError(f'{what}: network error, try again') from None
        return response

    def _call(self, method, path, what, token=None, params=None, json=None):
        response = self._send(method, self._url(path), what, token=token, params=params, json=json)
        _raise_for_status(response, what)
        return response

    @staticmethod
    def _json(response, what):
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise UpstreamPayloadError(f'{what}: unreadable platform response') from None

    def _rows(self, path, params, token, what, skip_malformed=False):
        response = self._call('GET', path, what, token=token, params=params)
        payload = self._json(response, what)
        try:
            return parse_rows(payload, skip_malformed=skip_malformed)
        except MalformedError as exc:
            raise UpstreamPayloadError(f'{what}: {exc.message}') from None

    def fetch_request_rows(self, request_id, token=None):
        """All invitee rows of one request."""
        return self._rows(
            '/api/player-tracker/tracker/request',
            {'requestId': request_id}, token, 'Fetch request',
        )

    def fetch_incoming_rows(self, user_id, token=None):
        """Rows where ``user_id`` is the invitee, across all requests."""
        return self._rows(
            '/api/player-tracker/tracker/user',
            {'userId': user_id}, token, 'Fetch invitations', skip_malformed=True,
        )

    def fetch_outgoing_rows(self, email, token=None):
        """Rows of every request the account behind ``email`` sent."""
        return self._rows(
            '/api/player-tracker/tracker/invitee',
            {'inviteeEmail': email}, token, 'Fetch sent invitations', skip_malformed=True,
        )

    def invoke_capability(self, action):
        """Fetch an accept/decline link. Only HTTP 200 counts as success."""
        what = f'{action.action.capitalize()} invitation'
        if not action.url:
            raise ConflictError(f'{what}: no {action.action} link on this invitation')
        params = {'comments': action.comment} if action.comment else None
        response = self._send('GET', action.url, what, params=params, allow_redirects=False)
        if response.status_code == 200:
            return True
        logger.info(
            '%s refused for request %s invitation %s (status %s)',
            what, action.request_id, action.invitation_id, response.status_code,
        )
        if response.status_code >= 500:
            raise TransientError(f'{what}: platform unavailable, try again')
        raise ConflictError(
            f'Failed to {action.action} invitation. You may have another event at the same time.',
            {'status': response.status_code},
        )

    def cancel_invitation(self, request_id, user_id, comment='', token=None):
        self._call(
            'GET', '/api/player-finder-queue/cancel', 'Cancel invitation', token=token,
            params={'requestId': request_id, 'userId': user_id, 'comments': comment or ''},
        )
        return True

    def withdraw_request(self, request_id, organizer_id, comment='', token=None):
        """One call withdraws every row of the request."""
        self._call(
            'GET', '/api/player-finder-queue/cancelByRequester', 'Withdraw request', token=token,
            params={'requestId': request_id, 'requestorId': organizer_id, 'comments': comment or ''},
        )
        return True

    def create_request(self, finder_request, place_to_save=None, token=None):
        payload = {'playerFinderRequest': finder_request}
        if place_to_save:
            payload['placeToSave'] = place_to_save
        response = self._call(
            'POST', '/api/player-finder-queue/request', 'Create request',
            token=token, json=payload,
        )
        return self._json(response, 'Create request')

    def update_request(self, request_id, requester_id, changes, token=None):
        response = self._call(
            'PUT', f'/api/player-finder-queue/update/player-finder-event/{request_id}',
            'Update request', token=token,
            params={'requesterId': requester_id}, json=changes,
        )
        return self._json(response, 'Update request')

    def fetch_comments(self, thread_key, token=None):
        response = self._call(
            'GET', f'/api/player-finder/comments/request/{thread_key}',
            'Fetch comments', token=token,
        )
        payload = self._json(response, 'Fetch comments')
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise UpstreamPayloadError('Fetch comments: expected a JSON array')
        return payload
