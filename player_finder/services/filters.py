"""List filters for the incoming and sent invitation views."""
from datetime import date, time

from player_finder.services.expiry import sort_recent_first, sort_upcoming

FULFILMENT_FILTERS = {'ALL', 'FULFILLED', 'UNFULFILLED'}
SORT_ORDERS = {'asc', 'desc'}


def normalize_fulfilment(raw):
    value = str(raw or 'ALL').strip().upper()
    return value if value in FULFILMENT_FILTERS else 'ALL'


def normalize_sort(raw):
    value = str(raw or 'asc').strip().lower()
    return value if value in SORT_ORDERS else 'asc'


def filter_by_fulfilment(requests, fulfilment='ALL'):
    """FULFILLED means nobody is still pending; UNFULFILLED means someone is."""
    fulfilment = normalize_fulfilment(fulfilment)
    if fulfilment == 'FULFILLED':
        return [request for request in requests if request.pending_count == 0]
    if fulfilment == 'UNFULFILLED':
        return [request for request in requests if request.pending_count > 0]
    return list(requests)


def sort_requests(requests, order='asc'):
    if normalize_sort(order) == 'desc':
        return sort_recent_first(requests)
    return sort_upcoming(requests)


def parse_filter_date(raw):
    text = str(raw or '').strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def parse_filter_time(raw):
    text = str(raw or '').strip()
    if not text:
        return None
    try:
        return time.fromisoformat(text)
    except ValueError:
        return None


def _matches(item, selected_date=None, selected_time=None, location=''):
    if selected_date or selected_time:
        if not item.play_time.valid:
            return False
        start = item.play_time.to_datetime()
        if selected_date and start.date() != selected_date:
            return False
        if selected_time and (start.hour, start.minute) != (
            selected_time.hour, selected_time.minute,
        ):
            return False
    if location and item.place_to_play != location:
        return False
    return True


def filter_invitations(rows, selected_date=None, selected_time=None, location=None):
    """Match rows on calendar date, hour:minute of play time, and exact place."""
    location = str(location or '').strip()
    return [row for row in rows if _matches(row, selected_date, selected_time, location)]


def filter_requests(requests, selected_date=None, selected_time=None, location=None):
    """Same matching as ``filter_invitations``, on each request's canonical fields."""
    location = str(location or '').strip()
    return [
        request for request in requests
        if _matches(request, selected_date, selected_time, location)
    ]


def unique_locations(items):
    seen = []
    for item in items:
        if item.place_to_play and item.place_to_play not in seen:
            seen.append(item.place_to_play)
    return seen
