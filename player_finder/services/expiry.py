"""Active/expired classification for the dashboard and history views."""
import enum
from dataclasses import dataclass, field


class ExpiryState(str, enum.Enum):
    ACTIVE = 'ACTIVE'
    EXPIRED = 'EXPIRED'


def classify(request, now):
    """EXPIRED iff the play end time is strictly before ``now``.

    An unparseable end time never expires a request; it stays visible in the
    active list (sorted last) instead of silently dropping into history.
    """
    if request.play_end_time.is_before(now):
        return ExpiryState.EXPIRED
    return ExpiryState.ACTIVE


def _ascending_key(request):
    return (request.play_time.sort_key(), request.request_id)


def sort_upcoming(requests):
    """Ascending by play time; equal play times fall back to request id."""
    return sorted(requests, key=_ascending_key)


def sort_recent_first(requests):
    """Descending by play time; equal play times still ordered by request id ascending."""
    by_id = sorted(requests, key=lambda request: request.request_id)
    valid = [request for request in by_id if request.play_time.valid]
    invalid = [request for request in by_id if not request.play_time.valid]
    valid.sort(key=lambda request: request.play_time.to_datetime(), reverse=True)
    return valid + invalid


def upcoming(requests, now):
    """Only ACTIVE requests, soonest first."""
    active = [request for request in requests if classify(request, now) is ExpiryState.ACTIVE]
    return sort_upcoming(active)


@dataclass
class HistoryGroup:
    date: object
    requests: list = field(default_factory=list)

    def to_dict(self, serialize=None):
        serialize = serialize or (lambda request: request.to_dict())
        return {
            'date': self.date.strftime('%m/%d/%Y') if self.date else None,
            'iso_date': self.date.isoformat() if self.date else None,
            'requests': [serialize(request) for request in self.requests],
        }


def history(requests, now):
    """Only EXPIRED requests, grouped by calendar date of play time, newest group first."""
    expired = [request for request in requests if classify(request, now) is ExpiryState.EXPIRED]
    groups = {}
    for request in sort_recent_first(expired):
        key = request.play_time.date_key()
        groups.setdefault(key, HistoryGroup(date=key)).requests.append(request)
    dated = sorted(
        (group for key, group in groups.items() if key is not None),
        key=lambda group: group.date,
        reverse=True,
    )
    undated = [group for key, group in groups.items() if key is None]
    return dated + undated
