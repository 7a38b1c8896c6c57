"""Invitee status transitions and the platform calls that commit them.

Local state is never flipped ahead of the platform: every operation
re-fetches the request, validates the transition against that fresh view,
performs exactly one platform call, then re-fetches again and returns the
re-derived aggregate. A repeated 200 from a capability link is therefore
harmless; counts always come from the platform's rows.
"""
import enum
import logging
from dataclasses import dataclass

from player_finder.errors import ConflictError, NotFoundError, PlayerFinderError, UnauthorizedError
from player_finder.models import InviteeStatus
from player_finder.services import quorum
from player_finder.services.aggregator import aggregate_request
from player_finder.services.expiry import ExpiryState, classify
from player_finder.services.platform_gateway import CapabilityAction

logger = logging.getLogger(__name__)


class ResponseAction(str, enum.Enum):
    ACCEPT = 'accept'
    DECLINE = 'decline'

    @property
    def target_status(self):
        if self is ResponseAction.ACCEPT:
            return InviteeStatus.ACCEPTED
        return InviteeStatus.DECLINED


ALLOWED_TRANSITIONS = {
    InviteeStatus.PENDING: frozenset({
        InviteeStatus.ACCEPTED, InviteeStatus.DECLINED, InviteeStatus.WITHDRAWN,
    }),
    InviteeStatus.ACCEPTED: frozenset({InviteeStatus.CANCELLED, InviteeStatus.WITHDRAWN}),
    InviteeStatus.DECLINED: frozenset({InviteeStatus.ACCEPTED, InviteeStatus.WITHDRAWN}),
    InviteeStatus.CANCELLED: frozenset({InviteeStatus.ACCEPTED, InviteeStatus.WITHDRAWN}),
    InviteeStatus.WITHDRAWN: frozenset(),
}


def can_transition(current, target):
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current, target):
    if current is InviteeStatus.WITHDRAWN:
        raise ConflictError('This invitation was withdrawn by the organizer')
    if not can_transition(current, target):
        raise ConflictError(
            f'Cannot change an invitation from {current.value} to {target.value}',
            {'current_status': current.value, 'target_status': target.value},
        )


def check_response(request, row, action, enforce_quorum=True):
    """Validate an accept/decline against the current aggregate."""
    target = action.target_status
    ensure_transition(row.status, target)
    if target is InviteeStatus.ACCEPTED and enforce_quorum:
        result = quorum.evaluate(request)
        if result.remaining == 0:
            raise ConflictError('This request is already full', {'quorum': result.to_dict()})
    return target


def available_actions(request, row, enforce_quorum=True, now=None):
    """Actions the invitee on ``row`` may take right now, for button state."""
    if now is not None and classify(request, now) is ExpiryState.EXPIRED:
        return []
    actions = []
    if can_transition(row.status, InviteeStatus.ACCEPTED):
        if not enforce_quorum or quorum.has_open_slot(request):
            actions.append(ResponseAction.ACCEPT.value)
    if can_transition(row.status, InviteeStatus.DECLINED):
        actions.append(ResponseAction.DECLINE.value)
    if can_transition(row.status, InviteeStatus.CANCELLED):
        actions.append('cancel')
    return actions


def ensure_not_finished(request, now):
    """Finished games are history and read-only."""
    if now is not None and classify(request, now) is ExpiryState.EXPIRED:
        raise ConflictError('This game has already finished')


@dataclass(frozen=True)
class TransitionResult:
    request: object
    invitation_id: str
    previous_status: InviteeStatus
    target_status: InviteeStatus

    @property
    def confirmed(self):
        """The re-fetched rows show the new status (the platform may lag)."""
        for row in self.request.invitees:
            if row.invitation_id == self.invitation_id:
                return row.status is self.target_status
        return False

    def to_dict(self):
        return {
            'invitation_id': self.invitation_id,
            'previous_status': self.previous_status.value,
            'target_status': self.target_status.value,
            'confirmed': self.confirmed,
            'request': self.request.to_dict(),
        }


@dataclass(frozen=True)
class WithdrawalResult:
    request: object
    withdrawn_rows: int

    def to_dict(self):
        return {
            'withdrawn_rows': self.withdrawn_rows,
            'all_withdrawn': self.request.all_withdrawn,
            'request': self.request.to_dict(),
        }


class LifecycleService:
    def __init__(self, gateway, enforce_quorum=True):
        self.gateway = gateway
        self.enforce_quorum = enforce_quorum

    def load(self, request_id, token=None):
        rows = self.gateway.fetch_request_rows(request_id, token=token)
        return aggregate_request(rows, request_id)

    def _attach_current_state(self, exc, request_id, token):
        """Conflicts carry the corrected aggregate so the caller can redraw."""
        try:
            refreshed = self.load(request_id, token=token)
        except PlayerFinderError:
            return exc
        exc.details = {**exc.details, 'request': refreshed.to_dict()}
        return exc

    def respond(self, request_id, invitation_id, action, user_id, comment='',
                token=None, email=None, now=None):
        action = ResponseAction(action)
        request = self.load(request_id, token=token)
        row = request.row_for_invitation(invitation_id)
        if row is None:
            raise NotFoundError(f'Invitation {invitation_id} not found on request {request_id}')
        if not row.is_for_user(user_id=user_id, email=email):
            raise UnauthorizedError('Only the invitee can respond to this invitation')

        try:
            ensure_not_finished(request, now)
            target = check_response(request, row, action, enforce_quorum=self.enforce_quorum)
            self.gateway.invoke_capability(CapabilityAction(
                action=action.value,
                request_id=request.request_id,
                invitation_id=row.invitation_id,
                invitee_id=row.invitee_id,
                url=row.accept_url if action is ResponseAction.ACCEPT else row.decline_url,
                comment=comment or '',
            ))
        except ConflictError as exc:
            raise self._attach_current_state(exc, request_id, token)

        logger.info(
            'Invitation %s on request %s: %s -> %s',
            row.invitation_id, request.request_id, row.status.value, target.value,
        )
        refreshed = self.load(request_id, token=token)
        return TransitionResult(
            request=refreshed,
            invitation_id=row.invitation_id,
            previous_status=row.status,
            target_status=target,
        )

    def cancel(self, request_id, user_id, comment='', token=None, email=None, now=None):
        """Invitee backs out of a game they previously accepted."""
        request = self.load(request_id, token=token)
        row = request.row_for_user(user_id=user_id, email=email)
        if row is None:
            if str(user_id) == str(request.organizer_id):
                raise UnauthorizedError('Organizers withdraw a request; only invitees can cancel')
            raise NotFoundError(f'You have no invitation on request {request_id}')

        try:
            ensure_not_finished(request, now)
            ensure_transition(row.status, InviteeStatus.CANCELLED)
            self.gateway.cancel_invitation(
                request.request_id, row.invitee_id or user_id, comment=comment, token=token,
            )
        except ConflictError as exc:
            raise self._attach_current_state(exc, request_id, token)

        logger.info('Invitation %s on request %s cancelled', row.invitation_id, request.request_id)
        refreshed = self.load(request_id, token=token)
        return TransitionResult(
            request=refreshed,
            invitation_id=row.invitation_id,
            previous_status=row.status,
            target_status=InviteeStatus.CANCELLED,
        )

    def withdraw(self, request_id, organizer_id, comment='', token=None, now=None):
        """Organizer withdraws the whole request in a single platform call."""
        request = self.load(request_id, token=token)
        if str(organizer_id) != str(request.organizer_id):
            raise UnauthorizedError('Only the organizer can withdraw this request')

        live_rows = [row for row in request.invitees if not row.status.is_terminal]
        try:
            ensure_not_finished(request, now)
            if not live_rows:
                raise ConflictError('This request has already been withdrawn')
            self.gateway.withdraw_request(
                request.request_id, organizer_id, comment=comment, token=token,
            )
        except ConflictError as exc:
            raise self._attach_current_state(exc, request_id, token)

        logger.info('Request %s withdrawn (%d rows)', request.request_id, len(live_rows))
        refreshed = self.load(request_id, token=token)
        return WithdrawalResult(request=refreshed, withdrawn_rows=len(live_rows))
