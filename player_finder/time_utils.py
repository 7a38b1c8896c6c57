from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def platform_now(tz_name='UTC'):
    """Current wall-clock time in the platform's zone, as a naive datetime.

    Play times arrive as naive local date-time arrays, so "now" has to be
    expressed in the same zone before the two are compared.
    """
    try:
        zone = ZoneInfo(str(tz_name or 'UTC'))
    except (ZoneInfoNotFoundError, ValueError):
        zone = ZoneInfo('UTC')
    return datetime.now(zone).replace(tzinfo=None)
