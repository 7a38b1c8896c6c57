"""Read-only view over the reminder metadata the platform scheduler keeps.

Nothing here sends a reminder. The scheduler lives server-side; these
helpers only classify its bookkeeping so a screen can say "reminder due" or
warn that a late cancellation leaves the organizer no time to backfill.
"""
from dataclasses import dataclass
from datetime import timedelta


def reminder_due(metadata, now):
    """``now >= next_reminder_at``. Unknown schedules are never due."""
    if not metadata.next_reminder_at.valid:
        return False
    return now >= metadata.next_reminder_at.to_datetime()


def reminder_overdue(metadata, now):
    """A full reminder interval has passed since the reminder fell due."""
    if not reminder_due(metadata, now) or metadata.reminder_interval_minutes <= 0:
        return False
    grace = timedelta(minutes=metadata.reminder_interval_minutes)
    return now >= metadata.next_reminder_at.to_datetime() + grace


def reminder_window_open(play_time, metadata, now):
    """Inside the pre-play window in which the scheduler sends reminders."""
    if not play_time.valid:
        return False
    return play_time.minutes_until(now) <= metadata.reminder_start_offset_minutes


def past_cancel_threshold(play_time, metadata, now):
    """``(play_time - now) <= cancel_threshold_minutes``.

    An invalid play time counts as past the threshold so the late-cancel
    warning is shown rather than suppressed.
    """
    if not play_time.valid:
        return True
    return play_time.minutes_until(now) <= metadata.cancel_threshold_minutes


@dataclass(frozen=True)
class ReminderStatus:
    due: bool
    overdue: bool
    window_open: bool
    past_cancel_threshold: bool
    minutes_until_play: float | None

    def to_dict(self):
        return {
            'due': self.due,
            'overdue': self.overdue,
            'window_open': self.window_open,
            'past_cancel_threshold': self.past_cancel_threshold,
            'minutes_until_play': (
                round(self.minutes_until_play) if self.minutes_until_play is not None else None
            ),
        }


def reminder_status(row, now):
    metadata = row.reminder_metadata
    return ReminderStatus(
        due=reminder_due(metadata, now),
        overdue=reminder_overdue(metadata, now),
        window_open=reminder_window_open(row.play_time, metadata, now),
        past_cancel_threshold=past_cancel_threshold(row.play_time, metadata, now),
        minutes_until_play=row.play_time.minutes_until(now) if row.play_time.valid else None,
    )
