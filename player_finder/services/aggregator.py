"""Group invitee rows into logical player-finder requests.

Several views derive aggregates independently from their own fetches, so
grouping has to be a pure function of the row set: same rows in, same
aggregate out, whatever the order they arrived in.
"""
import logging
from dataclasses import dataclass

from player_finder.errors import NotFoundError
from player_finder.models import InviteeStatus
from player_finder.services import quorum
from player_finder.services.play_time import PlayDateTime

logger = logging.getLogger(__name__)

SHARED_FIELDS = ('place_to_play', 'play_time', 'play_end_time', 'players_needed')


@dataclass(frozen=True)
class PlayerFinderRequest:
    request_id: str
    place_to_play: str
    play_time: PlayDateTime
    play_end_time: PlayDateTime
    players_needed: int
    organizer_id: str
    organizer_name: str
    event_name: str
    invitees: tuple
    divergent_fields: tuple = ()

    @property
    def accepted_invitees(self):
        return sum(1 for row in self.invitees if row.status is InviteeStatus.ACCEPTED)

    @property
    def pending_count(self):
        return sum(1 for row in self.invitees if row.status is InviteeStatus.PENDING)

    @property
    def accepted_count(self):
        return quorum.evaluate(self).accepted_count

    @property
    def total_slots(self):
        return quorum.evaluate(self).total_slots

    @property
    def is_full(self):
        return quorum.evaluate(self).is_full

    @property
    def is_consistent(self):
        return not self.divergent_fields

    @property
    def all_withdrawn(self):
        return bool(self.invitees) and all(
            row.status is InviteeStatus.WITHDRAWN for row in self.invitees
        )

    def row_for_invitation(self, invitation_id):
        for row in self.invitees:
            if row.invitation_id == str(invitation_id):
                return row
        return None

    def row_for_user(self, user_id=None, email=None):
        for row in self.invitees:
            if row.is_for_user(user_id=user_id, email=email):
                return row
        return None

    def canonical_key(self):
        """Comparison key that ignores the order rows were fetched in."""
        rows = tuple(sorted(
            (row.invitation_id, row.invitee_id, row.status.value) for row in self.invitees
        ))
        return (
            self.request_id, self.place_to_play, self.play_time, self.play_end_time,
            self.players_needed, self.organizer_id, rows,
        )

    def to_dict(self, include_invitees=True):
        result = quorum.evaluate(self)
        data = {
            'request_id': self.request_id,
            'place_to_play': self.place_to_play,
            'play_time': self.play_time.to_dict(),
            'play_end_time': self.play_end_time.to_dict(),
            'players_needed': self.players_needed,
            'organizer_id': self.organizer_id,
            'organizer_name': self.organizer_name,
            'event_name': self.event_name,
            'pending_count': self.pending_count,
            'consistent': self.is_consistent,
            'divergent_fields': list(self.divergent_fields),
            'quorum': result.to_dict(),
        }
        if include_invitees:
            data['invitees'] = [row.to_dict() for row in self.invitees]
        return data


def find_divergent_fields(rows):
    """Shared fields whose value differs from row 0 somewhere in ``rows``."""
    if not rows:
        return ()
    head = rows[0]
    divergent = []
    for name in SHARED_FIELDS:
        expected = getattr(head, name)
        if any(getattr(row, name) != expected for row in rows[1:]):
            divergent.append(name)
    return tuple(divergent)


def _dedupe(rows):
    seen = set()
    unique = []
    for row in rows:
        if row.invitation_id in seen:
            continue
        seen.add(row.invitation_id)
        unique.append(row)
    return unique


def build_request(rows):
    """Aggregate rows already known to share one request id."""
    rows = _dedupe(rows)
    if not rows:
        return None
    head = rows[0]
    divergent = find_divergent_fields(rows)
    if divergent:
        logger.warning(
            'Request %s rows disagree on %s; using first row',
            head.request_id, ', '.join(divergent),
        )
    return PlayerFinderRequest(
        request_id=head.request_id,
        place_to_play=head.place_to_play,
        play_time=head.play_time,
        play_end_time=head.play_end_time,
        players_needed=head.players_needed,
        organizer_id=head.organizer_id,
        organizer_name=head.organizer_name,
        event_name=head.event_name,
        invitees=tuple(rows),
        divergent_fields=divergent,
    )


def group_by_request_id(rows):
    """Partition rows by request id, preserving first-seen order."""
    partitions = {}
    for row in rows or []:
        partitions.setdefault(row.request_id, []).append(row)
    grouped = {}
    for request_id, members in partitions.items():
        request = build_request(members)
        if request is not None:
            grouped[request_id] = request
    return grouped


def aggregate_request(rows, request_id):
    """Aggregate for one request id; a request with no rows does not exist."""
    request_id = str(request_id)
    members = [row for row in rows or [] if row.request_id == request_id]
    request = build_request(members)
    if request is None:
        raise NotFoundError(f'Request {request_id} not found')
    return request


def outgoing_requests(rows, hide_withdrawn=True):
    """Aggregates for the organizer's "sent" view.

    A request is hidden only when every one of its rows is withdrawn; a
    partially withdrawn request stays listed with all of its rows.
    """
    grouped = group_by_request_id(rows)
    if not hide_withdrawn:
        return grouped
    return {
        request_id: request
        for request_id, request in grouped.items()
        if not request.all_withdrawn
    }
