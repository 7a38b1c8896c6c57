import enum
import logging
from dataclasses import dataclass, field

from player_finder.errors import MalformedError
from player_finder.services.play_time import INVALID_PLAY_TIME, PlayDateTime

logger = logging.getLogger(__name__)


class InviteeStatus(str, enum.Enum):
    PENDING = 'PENDING'
    ACCEPTED = 'ACCEPTED'
    DECLINED = 'DECLINED'
    CANCELLED = 'CANCELLED'
    WITHDRAWN = 'WITHDRAWN'

    @classmethod
    def parse(cls, raw):
        text = str(raw or '').strip().upper()
        try:
            return cls(text)
        except ValueError:
            raise MalformedError(f'Unknown invitee status: {raw!r}') from None

    @property
    def is_terminal(self):
        return self is InviteeStatus.WITHDRAWN


@dataclass(frozen=True)
class StatusPresentation:
    label: str
    history_label: str
    color: str
    icon: str


# Every InviteeStatus member must have an entry; a missing one is a KeyError,
# not a fallthrough to some default badge.
STATUS_PRESENTATION = {
    InviteeStatus.PENDING: StatusPresentation('Pending', 'Expired', '#928E85', 'clock'),
    InviteeStatus.ACCEPTED: StatusPresentation('Accepted', 'Played', '#327D85', 'check-circle'),
    InviteeStatus.DECLINED: StatusPresentation('Declined', 'Rejected', '#8B0000', 'close-circle'),
    InviteeStatus.CANCELLED: StatusPresentation('Cancelled', 'Cancelled', '#C76E00', 'cancel'),
    InviteeStatus.WITHDRAWN: StatusPresentation('Withdrawn', 'Withdrawn', 'gray', 'minus-circle'),
}


def _first(payload, *keys, default=None):
    for key in keys:
        value = payload.get(key)
        if value is not None and value != '':
            return value
    return default


def _as_int(value, default=0):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_text(value):
    if value is None:
        return ''
    return str(value).strip()


@dataclass(frozen=True)
class ReminderMetadata:
    invitation_sent_at: PlayDateTime = INVALID_PLAY_TIME
    last_reminder_sent_at: PlayDateTime | None = None
    next_reminder_at: PlayDateTime = INVALID_PLAY_TIME
    total_time_before_play: int = 0
    reminder_start_offset_minutes: int = 0
    reminder_interval_minutes: int = 0
    cancel_threshold_minutes: int = 0

    @classmethod
    def from_payload(cls, payload):
        if not isinstance(payload, dict):
            return cls()
        last_sent = payload.get('lastReminderSentAt')
        return cls(
            invitation_sent_at=PlayDateTime.parse(payload.get('invitationSentAt')),
            last_reminder_sent_at=PlayDateTime.parse(last_sent) if last_sent else None,
            next_reminder_at=PlayDateTime.parse(payload.get('nextReminderAt')),
            total_time_before_play=_as_int(payload.get('totalTimeBeforePlay')),
            reminder_start_offset_minutes=_as_int(payload.get('reminderStartOffsetMinutes')),
            reminder_interval_minutes=_as_int(payload.get('reminderIntervalMinutes')),
            cancel_threshold_minutes=_as_int(payload.get('cancelThresholdMinutes')),
        )

    def to_dict(self):
        return {
            'invitation_sent_at': self.invitation_sent_at.to_dict(),
            'last_reminder_sent_at': (
                self.last_reminder_sent_at.to_dict() if self.last_reminder_sent_at else None
            ),
            'next_reminder_at': self.next_reminder_at.to_dict(),
            'total_time_before_play': self.total_time_before_play,
            'reminder_start_offset_minutes': self.reminder_start_offset_minutes,
            'reminder_interval_minutes': self.reminder_interval_minutes,
            'cancel_threshold_minutes': self.cancel_threshold_minutes,
        }


@dataclass(frozen=True)
class InviteeResponse:
    """One invitee's row for one request, as the tracker endpoints return it."""

    request_id: str
    invitation_id: str
    invitee_id: str
    invitee_name: str
    status: InviteeStatus
    play_time: PlayDateTime
    play_end_time: PlayDateTime
    place_to_play: str
    players_needed: int
    organizer_id: str
    organizer_name: str
    reminder_metadata: ReminderMetadata = field(default_factory=ReminderMetadata)
    accept_url: str = ''
    decline_url: str = ''
    comment: str | None = None
    invitee_email: str = ''
    comment_by_requestor: str | None = None
    response_at: str | None = None
    skill_rating: float | None = None
    event_name: str = ''

    @classmethod
    def from_payload(cls, payload):
        if not isinstance(payload, dict):
            raise MalformedError('Invitee row must be a JSON object')
        request_id = _as_text(payload.get('requestId'))
        invitation_id = _as_text(_first(payload, 'invitationId', 'id'))
        if not request_id or not invitation_id:
            raise MalformedError('Invitee row is missing requestId or invitation id')

        skill = payload.get('skillRating')
        try:
            skill = float(skill) if skill is not None else None
        except (TypeError, ValueError):
            skill = None

        return cls(
            request_id=request_id,
            invitation_id=invitation_id,
            invitee_id=_as_text(_first(payload, 'inviteeId', 'inviteeUserId')),
            invitee_name=_as_text(payload.get('inviteeName')),
            invitee_email=_as_text(payload.get('inviteeEmail')).lower(),
            status=InviteeStatus.parse(payload.get('status')),
            play_time=PlayDateTime.parse(payload.get('playTime')),
            play_end_time=PlayDateTime.parse(payload.get('playEndTime')),
            place_to_play=_as_text(payload.get('placeToPlay')),
            players_needed=_as_int(payload.get('playersNeeded')),
            organizer_id=_as_text(_first(payload, 'organizerId', 'userId', 'requestorId')),
            organizer_name=_as_text(_first(payload, 'organizerName', 'name')),
            reminder_metadata=ReminderMetadata.from_payload(payload.get('reminderMetadata')),
            accept_url=_as_text(payload.get('acceptUrl')),
            decline_url=_as_text(payload.get('declineUrl')),
            comment=payload.get('comments') or payload.get('comment') or None,
            comment_by_requestor=payload.get('commentByRequestor') or None,
            response_at=payload.get('responseAt') or None,
            skill_rating=skill,
            event_name=_as_text(payload.get('eventName')),
        )

    def is_for_user(self, user_id=None, email=None):
        if user_id and self.invitee_id and self.invitee_id == str(user_id):
            return True
        if email and self.invitee_email and self.invitee_email == str(email).strip().lower():
            return True
        return False

    def to_dict(self):
        presentation = STATUS_PRESENTATION[self.status]
        return {
            'request_id': self.request_id,
            'invitation_id': self.invitation_id,
            'invitee_id': self.invitee_id,
            'invitee_name': self.invitee_name,
            'invitee_email': self.invitee_email,
            'status': self.status.value,
            'status_label': presentation.label,
            'status_color': presentation.color,
            'status_icon': presentation.icon,
            'play_time': self.play_time.to_dict(),
            'play_end_time': self.play_end_time.to_dict(),
            'place_to_play': self.place_to_play,
            'players_needed': self.players_needed,
            'organizer_id': self.organizer_id,
            'organizer_name': self.organizer_name,
            'comment': self.comment,
            'comment_by_requestor': self.comment_by_requestor,
            'response_at': self.response_at,
            'skill_rating': self.skill_rating,
            'event_name': self.event_name,
            'can_respond': bool(self.accept_url or self.decline_url),
        }


def parse_rows(payload, skip_malformed=False):
    """Parse a tracker response body (a JSON array) into InviteeResponse rows.

    With ``skip_malformed`` a bad row drops every row of its request instead
    of failing the whole payload; a request is never aggregated from a
    partial row set.
    """
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise MalformedError('Tracker response must be a JSON array of invitee rows')
    rows = []
    broken_requests = set()
    for item in payload:
        try:
            rows.append(InviteeResponse.from_payload(item))
        except MalformedError as exc:
            if not skip_malformed:
                raise
            request_id = _as_text(item.get('requestId')) if isinstance(item, dict) else ''
            logger.warning('Skipping request %s: malformed tracker row (%s)', request_id or '?', exc.message)
            if request_id:
                broken_requests.add(request_id)
    return [row for row in rows if row.request_id not in broken_requests]
