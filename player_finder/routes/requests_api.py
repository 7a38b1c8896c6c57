"""Player-finder request endpoints: create, view, respond, cancel and withdraw."""
from flask import Blueprint, current_app, jsonify, request

from player_finder.app import current_time, get_gateway, get_lifecycle
from player_finder.auth_utils import login_required
from player_finder.errors import ConflictError, MalformedError, UnauthorizedError
from player_finder.services.expiry import classify
from player_finder.services.lifecycle import ResponseAction, available_actions, ensure_not_finished
from player_finder.services.platform_gateway import comment_thread_key
from player_finder.services.play_time import PlayDateTime
from player_finder.services.reminders import reminder_status

requests_bp = Blueprint('player_finder_requests', __name__)

_EDITABLE_FIELDS = {
    'place_to_play': 'placeToPlay',
    'play_time': 'playTime',
    'play_end_time': 'playEndTime',
    'players_needed': 'playersNeeded',
    'skill_level': 'skillLevel',
}

_RESPONSE_MESSAGES = {
    ResponseAction.ACCEPT: 'Invitation accepted',
    ResponseAction.DECLINE: 'Invitation declined',
}


def _json_body():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return None
    return data


def _clean_comment(data):
    text = str(data.get('comment') or data.get('comments') or '').strip()
    max_len = current_app.config.get('MAX_COMMENT_LENGTH', 500)
    return text[:max_len]


def _parse_players_needed(raw):
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    max_players = current_app.config.get('MAX_PLAYERS_NEEDED', 20)
    if value < 1 or value > max_players:
        return None
    return value


def _parse_window(start_raw, end_raw):
    """Validated (start, end) play times, or an error message."""
    start = PlayDateTime.parse(start_raw)
    end = PlayDateTime.parse(end_raw)
    if not start.valid or not end.valid:
        return None, None, 'Valid play start and end times are required'
    if end.to_datetime() <= start.to_datetime():
        return None, None, 'Play end time must be after the start time'
    return start, end, None


def serialize_request(finder_request, now, viewer=None):
    """Aggregate plus expiry, reminder and caller-specific action state."""
    enforce = current_app.config.get('ENFORCE_QUORUM_ON_ACCEPT', True)
    data = finder_request.to_dict()
    data['expiry'] = classify(finder_request, now).value
    data['play_window'] = (
        f'{finder_request.play_time.format()} - {finder_request.play_end_time.format_time()}'
    )
    for row, row_data in zip(finder_request.invitees, data['invitees']):
        row_data['reminder'] = reminder_status(row, now).to_dict()

    if viewer is not None:
        data['is_organizer'] = str(viewer.id) == str(finder_request.organizer_id)
        mine = finder_request.row_for_user(user_id=viewer.id, email=viewer.email)
        if mine is not None:
            data['my_invitation'] = {
                'invitation_id': mine.invitation_id,
                'status': mine.status.value,
                'actions': available_actions(finder_request, mine, enforce_quorum=enforce, now=now),
                'late_cancel_warning': reminder_status(mine, now).past_cancel_threshold,
            }
        else:
            data['my_invitation'] = None
    return data


@requests_bp.route('/requests', methods=['POST'])
@login_required
def create_request():
    """Submit a player-finder form: one pending invitation per contact."""
    data = _json_body()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400

    place = str(data.get('place_to_play') or '').strip()
    if not place:
        return jsonify({'error': 'Place to play is required'}), 400
    players_needed = _parse_players_needed(data.get('players_needed'))
    if players_needed is None:
        return jsonify({'error': 'Players needed must be a positive number'}), 400
    start, end, error = _parse_window(data.get('play_time'), data.get('play_end_time'))
    if error:
        return jsonify({'error': error}), 400
    if not start.to_datetime() > current_time():
        return jsonify({'error': 'Play time must be in the future'}), 400

    invitees = data.get('invitees') or []
    if not isinstance(invitees, list):
        return jsonify({'error': 'Invitees must be a list of contacts'}), 400
    contacts = []
    for contact in invitees:
        if not isinstance(contact, dict):
            continue
        name = str(contact.get('name') or '').strip()
        phone = str(contact.get('phone') or '').strip()
        if name or phone:
            contacts.append({'contactName': name, 'contactPhoneNumber': phone})
    if not contacts:
        return jsonify({'error': 'Invite at least one player'}), 400

    user = request.current_user
    finder_request = {
        'requestorId': user.id,
        'eventName': str(data.get('event_name') or '').strip(),
        'placeToPlay': place,
        'playTime': start.to_datetime().isoformat(),
        'playEndTime': end.to_datetime().isoformat(),
        'playersNeeded': players_needed,
        'skillRating': data.get('skill_rating'),
        'preferredContacts': contacts,
    }
    place_to_save = data.get('place_to_save') if isinstance(data.get('place_to_save'), dict) else None
    created = get_gateway().create_request(finder_request, place_to_save=place_to_save, token=user.token)
    current_app.logger.info('User %s created a player-finder request for %s', user.id, place)
    return jsonify({'request': created, 'invited_count': len(contacts)}), 201


@requests_bp.route('/requests/<request_id>', methods=['GET'])
@login_required
def get_request(request_id):
    user = request.current_user
    finder_request = get_lifecycle().load(request_id, token=user.token)
    return jsonify({'request': serialize_request(finder_request, current_time(), viewer=user)})


@requests_bp.route('/requests/<request_id>', methods=['PUT'])
@login_required
def update_request(request_id):
    """Organizer edits place, time window or players needed."""
    data = _json_body()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400

    user = request.current_user
    lifecycle = get_lifecycle()
    finder_request = lifecycle.load(request_id, token=user.token)
    if str(user.id) != str(finder_request.organizer_id):
        raise UnauthorizedError('Only the organizer can edit this request')
    now = current_time()
    ensure_not_finished(finder_request, now)

    changes = {}
    if 'place_to_play' in data:
        place = str(data.get('place_to_play') or '').strip()
        if not place:
            return jsonify({'error': 'Place to play cannot be empty'}), 400
        changes['place_to_play'] = place
    if 'play_time' in data or 'play_end_time' in data:
        start, end, error = _parse_window(
            data.get('play_time', finder_request.play_time),
            data.get('play_end_time', finder_request.play_end_time),
        )
        if error:
            return jsonify({'error': error}), 400
        changes['play_time'] = start.to_datetime().isoformat()
        changes['play_end_time'] = end.to_datetime().isoformat()
    if 'players_needed' in data:
        players_needed = _parse_players_needed(data.get('players_needed'))
        if players_needed is None:
            return jsonify({'error': 'Players needed must be a positive number'}), 400
        if players_needed < finder_request.accepted_invitees:
            raise ConflictError(
                'Players needed cannot drop below the players who already accepted',
                {'accepted_invitees': finder_request.accepted_invitees},
            )
        changes['players_needed'] = players_needed
    if 'skill_level' in data:
        changes['skill_level'] = str(data.get('skill_level') or '').strip()
    if not changes:
        return jsonify({'error': 'Nothing to update'}), 400

    payload = {_EDITABLE_FIELDS[key]: value for key, value in changes.items()}
    get_gateway().update_request(finder_request.request_id, user.id, payload, token=user.token)
    refreshed = lifecycle.load(request_id, token=user.token)
    return jsonify({'request': serialize_request(refreshed, now, viewer=user)})


def _respond(request_id, invitation_id, action):
    data = _json_body()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400
    user = request.current_user
    now = current_time()
    result = get_lifecycle().respond(
        request_id, invitation_id, action, user.id,
        comment=_clean_comment(data), token=user.token, email=user.email, now=now,
    )
    payload = result.to_dict()
    payload['request'] = serialize_request(result.request, now, viewer=user)
    payload['message'] = _RESPONSE_MESSAGES[action]
    return jsonify(payload)


@requests_bp.route('/requests/<request_id>/invitations/<invitation_id>/accept', methods=['POST'])
@login_required
def accept_invitation(request_id, invitation_id):
    return _respond(request_id, invitation_id, ResponseAction.ACCEPT)


@requests_bp.route('/requests/<request_id>/invitations/<invitation_id>/decline', methods=['POST'])
@login_required
def decline_invitation(request_id, invitation_id):
    return _respond(request_id, invitation_id, ResponseAction.DECLINE)


@requests_bp.route('/requests/<request_id>/cancel', methods=['POST'])
@login_required
def cancel_invitation(request_id):
    """Invitee cancels a previously accepted invitation."""
    data = _json_body()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400
    user = request.current_user
    now = current_time()
    result = get_lifecycle().cancel(
        request_id, user.id,
        comment=_clean_comment(data), token=user.token, email=user.email, now=now,
    )
    payload = result.to_dict()
    payload['request'] = serialize_request(result.request, now, viewer=user)
    payload['message'] = 'Invitation cancelled'
    return jsonify(payload)


@requests_bp.route('/requests/<request_id>/withdraw', methods=['POST'])
@login_required
def withdraw_request(request_id):
    """Organizer withdraws the whole request."""
    data = _json_body()
    if data is None:
        return jsonify({'error': 'Invalid JSON payload'}), 400
    user = request.current_user
    now = current_time()
    result = get_lifecycle().withdraw(
        request_id, user.id, comment=_clean_comment(data), token=user.token, now=now,
    )
    payload = result.to_dict()
    payload['request'] = serialize_request(result.request, now, viewer=user)
    payload['message'] = 'Game invite withdrawn'
    return jsonify(payload)


@requests_bp.route('/requests/<request_id>/comments', methods=['GET'])
@login_required
def get_comments(request_id):
    """Comment thread for a request, or a 1:1 sub-thread with ``with=<user id>``."""
    user = request.current_user
    other_user_id = str(request.args.get('with') or '').strip()
    if other_user_id and other_user_id == user.id:
        raise MalformedError('A private thread needs another participant')
    key = comment_thread_key(request_id, user.id if other_user_id else None, other_user_id or None)
    comments = get_gateway().fetch_comments(key, token=user.token)
    return jsonify({'thread': key, 'comments': comments})
