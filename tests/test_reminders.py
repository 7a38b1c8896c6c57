"""Tests for the reminder metadata view."""
from datetime import datetime

from player_finder.models import ReminderMetadata
from player_finder.services.play_time import INVALID_PLAY_TIME, PlayDateTime
from player_finder.services.reminders import (
    past_cancel_threshold,
    reminder_due,
    reminder_overdue,
    reminder_status,
    reminder_window_open,
)

PLAY_TIME = PlayDateTime.parse([2025, 7, 24, 14, 0])


def _metadata(**overrides):
    payload = {
        'invitationSentAt': [2025, 7, 23, 9, 0],
        'nextReminderAt': [2025, 7, 24, 11, 0],
        'totalTimeBeforePlay': 1740,
        'reminderStartOffsetMinutes': 240,
        'reminderIntervalMinutes': 60,
        'cancelThresholdMinutes': 120,
    }
    payload.update(overrides)
    return ReminderMetadata.from_payload(payload)


def test_metadata_parses_camel_case_payload():
    metadata = _metadata(lastReminderSentAt=[2025, 7, 24, 10, 0])
    assert metadata.reminder_interval_minutes == 60
    assert metadata.last_reminder_sent_at.to_datetime() == datetime(2025, 7, 24, 10, 0)
    assert ReminderMetadata.from_payload(None) == ReminderMetadata()


def test_reminder_due_at_and_after_next_reminder():
    metadata = _metadata()
    assert not reminder_due(metadata, datetime(2025, 7, 24, 10, 59))
    assert reminder_due(metadata, datetime(2025, 7, 24, 11, 0))


def test_unknown_schedule_is_never_due():
    metadata = _metadata(nextReminderAt=None)
    assert not reminder_due(metadata, datetime(2030, 1, 1))
    assert not reminder_overdue(metadata, datetime(2030, 1, 1))


def test_overdue_after_a_full_interval():
    metadata = _metadata()
    assert not reminder_overdue(metadata, datetime(2025, 7, 24, 11, 59))
    assert reminder_overdue(metadata, datetime(2025, 7, 24, 12, 0))


def test_reminder_window_opens_at_start_offset():
    metadata = _metadata()
    assert not reminder_window_open(PLAY_TIME, metadata, datetime(2025, 7, 24, 9, 59))
    assert reminder_window_open(PLAY_TIME, metadata, datetime(2025, 7, 24, 10, 0))


def test_cancel_threshold_boundary():
    metadata = _metadata()
    assert not past_cancel_threshold(PLAY_TIME, metadata, datetime(2025, 7, 24, 11, 59))
    assert past_cancel_threshold(PLAY_TIME, metadata, datetime(2025, 7, 24, 12, 0))
    assert past_cancel_threshold(INVALID_PLAY_TIME, metadata, datetime(2025, 7, 24, 0, 0))


def test_reminder_status_for_row(make_row):
    row = make_row(reminder_metadata={
        'nextReminderAt': [2025, 7, 24, 11, 0],
        'reminderStartOffsetMinutes': 240,
        'reminderIntervalMinutes': 60,
        'cancelThresholdMinutes': 120,
    })
    status = reminder_status(row, datetime(2025, 7, 24, 12, 30))
    assert status.to_dict() == {
        'due': True,
        'overdue': True,
        'window_open': True,
        'past_cancel_threshold': True,
        'minutes_until_play': 90,
    }
