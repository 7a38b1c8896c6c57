"""Quorum evaluation.

The organizer never has an invitee row but always occupies a slot, so both
sides of the comparison carry an implicit ``+ 1``. This is the only place
that adds it; every view reads counts from ``evaluate``.
"""
import enum
from dataclasses import dataclass

from player_finder.models import InviteeStatus

ORGANIZER_SLOTS = 1


class RequestStatus(str, enum.Enum):
    PENDING = 'PENDING'
    FULL = 'FULL'


@dataclass(frozen=True)
class QuorumResult:
    status: RequestStatus
    remaining: int
    accepted_count: int
    total_slots: int

    @property
    def is_full(self):
        return self.status is RequestStatus.FULL

    def to_dict(self):
        return {
            'status': self.status.value,
            'remaining': self.remaining,
            'accepted_count': self.accepted_count,
            'total_slots': self.total_slots,
            'label': f'{self.accepted_count}/{self.total_slots} Accepted',
        }


def evaluate(request):
    accepted = sum(1 for row in request.invitees if row.status is InviteeStatus.ACCEPTED)
    accepted_count = accepted + ORGANIZER_SLOTS
    total_slots = max(int(request.players_needed or 0), 0) + ORGANIZER_SLOTS
    remaining = max(0, total_slots - accepted_count)
    status = RequestStatus.FULL if remaining == 0 else RequestStatus.PENDING
    return QuorumResult(
        status=status,
        remaining=remaining,
        accepted_count=accepted_count,
        total_slots=total_slots,
    )


def has_open_slot(request):
    return evaluate(request).remaining > 0
