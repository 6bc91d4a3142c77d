"""Session assembly: turns a terminating timer state into at most one session candidate."""

from flowstate.common.logger import log
from flowstate.core.session import SessionCandidate
from flowstate.core.timer_state import TimerState, TimerStatus

# Chains with this much focused work or less are treated as accidental starts and dropped without a record.
MIN_FOCUSED_MS = 1000


def resolve_session_start(state, now):
    """First start of the chain: session_start_time, then start_time, then now."""
    for candidate in (state.session_start_time, state.start_time):
        if candidate is not None:
            return candidate
    return now


def reset_chain(state):
    """IDLE with every chain accumulator cleared. Mode is the only thing that survives."""
    return TimerState(mode=state.mode)


def assemble(state, now, category_id):
    """Returns ``(candidate_or_None, reset_state)``, both computed from the same snapshot."""
    if state.status == TimerStatus.RUNNING:
        start = state.start_time if state.start_time is not None else now
        work_in_current = max(0, now - start)
    else:
        work_in_current = 0

    intervals = list(state.intervals)
    open_work = work_in_current + state.accumulated_time
    total_focused = sum(intervals) + open_work
    segment_count = len(intervals) + (1 if open_work > 0 else 0)

    session_start = resolve_session_start(state, now)
    reset_state = reset_chain(state)

    if total_focused <= MIN_FOCUSED_MS:
        log.debug(f"Discarding session for '{category_id}' with only {total_focused}ms focused")
        return None, reset_state

    candidate = SessionCandidate(
        category_id=category_id,
        start_time=session_start,
        end_time=now,
        duration=total_focused,
        total_elapsed=now - session_start,
        session_start_time=session_start,
        mode=state.mode,
        segment_count=max(1, segment_count),
        completed_tasks=tuple(state.completed_tasks),
    )
    log.info(f"Assembled session for '{category_id}': {total_focused}ms focused over {candidate.segment_count} segment(s)")
    return candidate, reset_state
