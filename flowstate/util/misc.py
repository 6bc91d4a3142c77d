import math
import time
import uuid
from datetime import datetime

from flowstate.common.logger import log

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND


# Simply returns the current local time as an ISO8601 string with timezone offset.
def now_iso():
    return datetime.now().astimezone().isoformat()


# Wall-clock epoch milliseconds. Everything in the timer core is integer ms from this.
class SystemClock:
    def now(self) -> int:
        return time.time_ns() // 1_000_000


# Short random identity for sessions.
def generate_id():
    return uuid.uuid4().hex[:12]


# Epoch ms -> naive local datetime, and back.
def ms_to_local(ms):
    return datetime.fromtimestamp(ms / MS_PER_SECOND)

def local_to_ms(dt):
    return round(dt.timestamp() * MS_PER_SECOND)


def format_time(ms):
    """Clock-style display: ``M:SS`` under an hour, ``H:MM:SS`` above."""
    total_seconds = max(0, int(ms)) // MS_PER_SECOND
    hours, rem = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rem, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_duration_full(ms):
    """Coarse duration such as ``2h 5m`` or ``45m``."""
    total_minutes = max(0, int(ms)) // MS_PER_MINUTE
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"


# Countdowns show the ceiling second so "0:00" only appears once the time is actually up. Display only, never stored.
def round_up_to_second(ms):
    return math.ceil(ms / MS_PER_SECOND) * MS_PER_SECOND


# Converts user supplied minutes (int, float, or text from an input box) to ms, falling back to `default_minutes`
# on anything non-numeric or non-positive.
def minutes_to_ms(value, default_minutes):
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        log.warning(f"Ignoring non-numeric minutes value {value!r}, using default of {default_minutes}")
        minutes = default_minutes
    if not math.isfinite(minutes) or minutes <= 0:
        log.warning(f"Ignoring out of range minutes value {value!r}, using default of {default_minutes}")
        minutes = default_minutes
    return int(minutes * MS_PER_MINUTE)
