from flask import Blueprint, current_app, jsonify, request

from player_finder.app import current_time, get_gateway
from player_finder.auth_utils import login_required
from player_finder.errors import MalformedError, NotFoundError
from player_finder.models import STATUS_PRESENTATION, InviteeStatus
from player_finder.routes.requests_api import serialize_request
from player_finder.services.aggregator import aggregate_request, group_by_request_id, outgoing_requests
from player_finder.services.expiry import history, upcoming
from player_finder.services.filters import (
    filter_by_fulfilment,
    filter_invitations,
    filter_requests,
    normalize_fulfilment,
    normalize_sort,
    parse_filter_date,
    parse_filter_time,
    sort_requests,
    unique_locations,
)
from player_finder.services.lifecycle import available_actions
from player_finder.services.quorum import evaluate

invitations_bp = Blueprint('invitations', __name__)


def _incoming_rows(user, include_withdrawn=False):
    rows = get_gateway().fetch_incoming_rows(user.id, token=user.token)
    if include_withdrawn:
        return rows
    return [row for row in rows if row.status is not InviteeStatus.WITHDRAWN]


def _full_request(request_id, user):
    """Full aggregate for a request the user was invited to, or None if it vanished or is unreadable."""
    try:
        rows = get_gateway().fetch_request_rows(request_id, token=user.token)
        return aggregate_request(rows, request_id)
    except NotFoundError:
        current_app.logger.info('Request %s disappeared while listing invitations', request_id)
        return None
    except MalformedError as exc:
        current_app.logger.warning('Skipping request %s in list: %s', request_id, exc.message)
        return None


def _outgoing(user, hide_withdrawn=True):
    rows = get_gateway().fetch_outgoing_rows(user.email, token=user.token)
    return list(outgoing_requests(rows, hide_withdrawn=hide_withdrawn).values())


def _outgoing_history_label(finder_request):
    if finder_request.all_withdrawn:
        return STATUS_PRESENTATION[InviteeStatus.WITHDRAWN].history_label
    if finder_request.accepted_invitees > 0:
        return STATUS_PRESENTATION[InviteeStatus.ACCEPTED].history_label
    return STATUS_PRESENTATION[InviteeStatus.PENDING].history_label


def _combined_requests(user):
    """Incoming and outgoing aggregates keyed by request id, tagged with the user's role."""
    combined = {}
    for finder_request in _outgoing(user):
        combined[finder_request.request_id] = (finder_request, 'organizer')

    incoming_ids = group_by_request_id(_incoming_rows(user))
    for request_id in incoming_ids:
        if request_id in combined:
            continue
        finder_request = _full_request(request_id, user)
        if finder_request is not None:
            combined[request_id] = (finder_request, 'invitee')
    return combined


@invitations_bp.route('/incoming', methods=['GET'])
@login_required
def incoming():
    """Invitations the user received, with filters and live quorum."""
    user = request.current_user
    now = current_time()
    enforce = current_app.config.get('ENFORCE_QUORUM_ON_ACCEPT', True)

    rows = _incoming_rows(user)
    selected_date = parse_filter_date(request.args.get('date'))
    selected_time = parse_filter_time(request.args.get('time'))
    location = request.args.get('location')
    matched = filter_invitations(rows, selected_date, selected_time, location)

    full_requests = {}
    invitations = []
    for row in matched:
        if row.request_id not in full_requests:
            full_requests[row.request_id] = _full_request(row.request_id, user)
        finder_request = full_requests[row.request_id]

        item = row.to_dict()
        if finder_request is None:
            item['quorum'] = None
            item['actions'] = []
        else:
            item['quorum'] = evaluate(finder_request).to_dict()
            item['actions'] = available_actions(finder_request, row, enforce_quorum=enforce, now=now)
        invitations.append(item)

    return jsonify({
        'invitations': invitations,
        'count': len(invitations),
        'locations': unique_locations(rows),
    })


@invitations_bp.route('/sent', methods=['GET'])
@login_required
def sent():
    """Requests the user organized: fulfilment, date, time and location filters, sorted by play time."""
    user = request.current_user
    now = current_time()
    fulfilment = normalize_fulfilment(request.args.get('status'))
    order = normalize_sort(request.args.get('sort'))
    selected_date = parse_filter_date(request.args.get('date'))
    selected_time = parse_filter_time(request.args.get('time'))
    location = request.args.get('location')

    outgoing = _outgoing(user)
    requests_ = filter_by_fulfilment(outgoing, fulfilment)
    requests_ = filter_requests(requests_, selected_date, selected_time, location)
    requests_ = sort_requests(requests_, order)
    return jsonify({
        'requests': [serialize_request(item, now, viewer=user) for item in requests_],
        'count': len(requests_),
        'status': fulfilment,
        'sort': order,
        'locations': unique_locations(outgoing),
    })


@invitations_bp.route('/dashboard', methods=['GET'])
@login_required
def dashboard():
    user = request.current_user
    now = current_time()
    combined = _combined_requests(user)

    items = []
    for finder_request in upcoming([entry[0] for entry in combined.values()], now):
        data = serialize_request(finder_request, now, viewer=user)
        data['role'] = combined[finder_request.request_id][1]
        items.append(data)
    return jsonify({'requests': items, 'count': len(items)})


@invitations_bp.route('/history', methods=['GET'])
@login_required
def game_history():
    """Finished games, newest date first, with the history status label."""
    user = request.current_user
    now = current_time()

    combined = {}
    for finder_request in _outgoing(user, hide_withdrawn=False):
        combined[finder_request.request_id] = (finder_request, 'organizer')
    for request_id in group_by_request_id(_incoming_rows(user, include_withdrawn=True)):
        if request_id in combined:
            continue
        finder_request = _full_request(request_id, user)
        if finder_request is not None:
            combined[request_id] = (finder_request, 'invitee')

    def _serialize(finder_request):
        role = combined[finder_request.request_id][1]
        data = serialize_request(finder_request, now, viewer=user)
        data['role'] = role
        if role == 'organizer':
            data['history_label'] = _outgoing_history_label(finder_request)
        else:
            mine = finder_request.row_for_user(user_id=user.id, email=user.email)
            status = mine.status if mine is not None else InviteeStatus.PENDING
            data['history_label'] = STATUS_PRESENTATION[status].history_label
        return data

    groups = history([entry[0] for entry in combined.values()], now)
    return jsonify({
        'groups': [group.to_dict(serialize=_serialize) for group in groups],
        'count': sum(len(group.requests) for group in groups),
    })
