"""Tests for play date-time parsing and formatting."""
from datetime import datetime, timezone

import pytest

from player_finder.errors import MalformedError
from player_finder.services.play_time import INVALID_DATE_LABEL, INVALID_PLAY_TIME, PlayDateTime


def test_parse_array_with_hour_and_minute():
    value = PlayDateTime.parse([2025, 7, 24, 14, 0])
    assert value.valid
    assert value.to_datetime() == datetime(2025, 7, 24, 14, 0)
    assert value.to_list() == [2025, 7, 24, 14, 0, 0]


def test_parse_date_only_array_defaults_to_midnight():
    value = PlayDateTime.parse([2025, 7, 24])
    assert value.to_datetime() == datetime(2025, 7, 24)


def test_parse_iso_string_and_aware_datetime():
    assert PlayDateTime.parse('2025-07-24T14:00:00').to_datetime() == datetime(2025, 7, 24, 14)
    aware = datetime(2025, 7, 24, 14, tzinfo=timezone.utc)
    assert PlayDateTime.parse(aware).to_datetime() == datetime(2025, 7, 24, 14)


@pytest.mark.parametrize('raw', [
    None, '', 'not a date', [2025, 7], [2025, 13, 1], [2025, 2, 30, 10], ['x', 1, 1], {'year': 2025},
])
def test_unparseable_values_become_the_invalid_sentinel(raw):
    value = PlayDateTime.parse(raw)
    assert value == INVALID_PLAY_TIME
    assert not value.valid
    assert value.format() == INVALID_DATE_LABEL
    assert value.to_list() is None


def test_parse_strict_raises_malformed():
    with pytest.raises(MalformedError):
        PlayDateTime.parse_strict([2025, 2, 30], 'play time')


def test_to_datetime_on_invalid_value_raises():
    with pytest.raises(MalformedError):
        INVALID_PLAY_TIME.to_datetime()


def test_format_matches_display_style():
    assert PlayDateTime.parse([2025, 7, 24, 14, 0]).format() == 'Thu, Jul 24, 2:00 PM'
    assert PlayDateTime.parse([2025, 7, 24, 0, 5]).format() == 'Thu, Jul 24, 12:05 AM'
    assert PlayDateTime.parse([2025, 7, 24, 15, 30]).format_time() == '03:30 PM'


def test_invalid_values_sort_after_every_valid_value():
    values = [
        INVALID_PLAY_TIME,
        PlayDateTime.parse([2030, 1, 1]),
        PlayDateTime.parse([2020, 1, 1]),
    ]
    ordered = sorted(values, key=lambda value: value.sort_key())
    assert ordered[0].year == 2020
    assert ordered[1].year == 2030
    assert not ordered[2].valid


def test_is_before_is_strict_and_false_for_invalid():
    now = datetime(2025, 7, 24, 15, 0)
    assert PlayDateTime.parse([2025, 7, 24, 14, 59]).is_before(now)
    assert not PlayDateTime.parse([2025, 7, 24, 15, 0]).is_before(now)
    assert not INVALID_PLAY_TIME.is_before(now)


def test_minutes_until_is_signed():
    value = PlayDateTime.parse([2025, 7, 24, 14, 0])
    assert value.minutes_until(datetime(2025, 7, 24, 12, 0)) == 120
    assert value.minutes_until(datetime(2025, 7, 24, 14, 30)) == -30


def test_to_dict_exposes_iso_and_display():
    data = PlayDateTime.parse([2025, 7, 24, 14, 0]).to_dict()
    assert data['iso'] == '2025-07-24T14:00:00'
    assert data['display'] == 'Thu, Jul 24, 2:00 PM'
    assert data['valid'] is True
    assert INVALID_PLAY_TIME.to_dict()['iso'] is None
