from dataclasses import replace
from datetime import datetime, time, timedelta

from flowstate.util import generate_id, local_to_ms, ms_to_local


# Local midnight that starts the day after the given local datetime.
def _next_midnight(dt):
    return datetime.combine(dt.date() + timedelta(days=1), time.min)


def split_by_midnight(session):
    """Split a session into one record per local calendar day it touches.

    Parts are half-open ``[start, next midnight)`` so they tile the original
    span exactly: durations add up to ``end_time - start_time`` and each part's
    end equals the next part's start. A session that never crosses a midnight
    (including one ending exactly on it) comes back unchanged as a
    single-element list.
    """
    boundary = _next_midnight(ms_to_local(session.start_time))
    if local_to_ms(boundary) >= session.end_time:
        return [session]

    parts = []
    part_start_ms = session.start_time
    boundary_ms = local_to_ms(boundary)
    while boundary_ms < session.end_time:
        parts.append(replace(
            session,
            id=generate_id(),
            start_time=part_start_ms,
            end_time=boundary_ms,
            duration=boundary_ms - part_start_ms,
        ))
        part_start_ms = boundary_ms
        boundary = _next_midnight(boundary)
        boundary_ms = local_to_ms(boundary)

    parts.append(replace(
        session,
        id=generate_id(),
        start_time=part_start_ms,
        end_time=session.end_time,
        duration=session.end_time - part_start_ms,
    ))
    return parts
