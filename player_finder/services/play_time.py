"""Structured play date-time: the single parse/format boundary for the
``[year, month, day, hour?, minute?, second?]`` arrays the platform sends.

Anything that cannot be turned into a real calendar instant becomes
``INVALID_PLAY_TIME``. The sentinel formats as ``"Invalid Date"`` and has a
sort key that places it after every valid value, so a bad row can never
corrupt ordering or expiry classification.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta

from player_finder.errors import MalformedError

INVALID_DATE_LABEL = 'Invalid Date'
_MIN_ARRAY_PARTS = 3


@dataclass(frozen=True)
class PlayDateTime:
    year: int
    month: int
    day: int
    hour: int = 0
    minute: int = 0
    second: int = 0
    valid: bool = True

    @classmethod
    def parse(cls, raw):
        """Parse an array, ISO string or datetime. Never raises."""
        if isinstance(raw, PlayDateTime):
            return raw
        if isinstance(raw, datetime):
            return cls.from_datetime(raw)
        if isinstance(raw, (list, tuple)):
            return _from_parts(raw)
        if isinstance(raw, str) and raw.strip():
            try:
                parsed = datetime.fromisoformat(raw.strip())
            except ValueError:
                return INVALID_PLAY_TIME
            return cls.from_datetime(parsed)
        return INVALID_PLAY_TIME

    @classmethod
    def parse_strict(cls, raw, field_name='date-time'):
        value = cls.parse(raw)
        if not value.valid:
            raise MalformedError(f'Invalid {field_name}: {raw!r}')
        return value

    @classmethod
    def from_datetime(cls, value):
        if value.tzinfo is not None:
            value = value.replace(tzinfo=None)
        return cls(
            value.year, value.month, value.day,
            value.hour, value.minute, value.second,
        )

    def to_datetime(self):
        if not self.valid:
            raise MalformedError('Cannot convert an invalid play time')
        return datetime(
            self.year, self.month, self.day,
            self.hour, self.minute, self.second,
        )

    def to_list(self):
        if not self.valid:
            return None
        return [self.year, self.month, self.day, self.hour, self.minute, self.second]

    def sort_key(self):
        if not self.valid:
            return (1, datetime.max)
        return (0, self.to_datetime())

    def date_key(self):
        """Calendar date used to group history, or None when invalid."""
        if not self.valid:
            return None
        return self.to_datetime().date()

    def minutes_until(self, now):
        """Signed minutes from ``now`` until this instant."""
        delta = self.to_datetime() - now
        return delta / timedelta(minutes=1)

    def is_before(self, now):
        """Strictly earlier than ``now``. Invalid values are never before anything."""
        if not self.valid:
            return False
        return self.to_datetime() < now

    def format(self):
        """Display form such as ``Thu, Jul 24, 2:00 PM``."""
        if not self.valid:
            return INVALID_DATE_LABEL
        value = self.to_datetime()
        hour = value.hour % 12 or 12
        meridiem = 'AM' if value.hour < 12 else 'PM'
        return f'{value:%a}, {value:%b} {value.day}, {hour}:{value:%M} {meridiem}'

    def format_time(self):
        if not self.valid:
            return INVALID_DATE_LABEL
        value = self.to_datetime()
        hour = value.hour % 12 or 12
        meridiem = 'AM' if value.hour < 12 else 'PM'
        return f'{hour:02d}:{value:%M} {meridiem}'

    def to_dict(self):
        return {
            'value': self.to_list(),
            'iso': self.to_datetime().isoformat() if self.valid else None,
            'display': self.format(),
            'valid': self.valid,
        }


INVALID_PLAY_TIME = PlayDateTime(1, 1, 1, valid=False)


def _from_parts(parts):
    if len(parts) < _MIN_ARRAY_PARTS:
        return INVALID_PLAY_TIME
    try:
        numbers = [int(part) for part in parts[:6]]
    except (TypeError, ValueError):
        return INVALID_PLAY_TIME
    while len(numbers) < 6:
        numbers.append(0)
    year, month, day, hour, minute, second = numbers
    try:
        datetime(year, month, day, hour, minute, second)
    except ValueError:
        return INVALID_PLAY_TIME
    return PlayDateTime(year, month, day, hour, minute, second)
