from dataclasses import dataclass
from datetime import timedelta

from flowstate.util import ms_to_local


@dataclass(frozen=True)
class Streaks:
    current: int
    longest: int


# Counts consecutive local days (ending today or yesterday) that have at least one session starting on them.
# `longest_recorded` is the best streak seen before, since old history may have been exported and cleared.
def compute_streaks(sessions, today, longest_recorded=0):
    days = sorted({ms_to_local(s.start_time).date() for s in sessions}, reverse=True)
    if not days or days[0] < today - timedelta(days=1):
        return Streaks(current=0, longest=longest_recorded)

    current = 1
    for newer, older in zip(days, days[1:]):
        if (newer - older).days != 1:
            break
        current += 1
    return Streaks(current=current, longest=max(current, longest_recorded))
