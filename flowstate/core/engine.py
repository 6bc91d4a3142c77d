"""Timer engine: every legal transition of one category's TimerState.

Each operation is a pure function of ``(state, now, ...)`` returning a
``Transition``: the new state plus a list of effects (notifications, a ready
session candidate) for the caller to dispatch. Input states are never mutated.
``now`` is sampled once by the caller so every derived value in a transition
agrees with every other.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from flowstate.common.logger import log
from flowstate.core.assembler import assemble
from flowstate.core.session import SessionCandidate
from flowstate.core.timer_state import CompletedTaskRecord, TimerMode, TimerState, TimerStatus
from flowstate.util import minutes_to_ms


class InvalidTransition(Exception):
    """Raised when an operation is not legal from the state's current status."""

    def __init__(self, operation, state):
        super().__init__(f"Cannot {operation} while {state.mode.value} timer is {state.status.value}")
        self.operation = operation
        self.status = state.status


class EffectKind(Enum):
    NOTIFY_COMPLETE = "notify_complete"
    NOTIFY_BREAK_OVER = "notify_break_over"
    SESSION_READY = "session_ready"


@dataclass(frozen=True)
class Effect:
    kind: EffectKind
    category_id: str
    candidate: SessionCandidate | None = None


@dataclass
class Transition:
    state: TimerState
    effects: list[Effect] = field(default_factory=list)


#region === Queries ===

# Missing start_time is read as `now`, so a malformed RUNNING/BREAK state contributes zero rather than crashing.
def _since_start(state, now):
    start = state.start_time if state.start_time is not None else now
    return max(0, now - start)


def elapsed(state, now):
    """Work time for RUNNING/PAUSED/IDLE, remaining break time for BREAK."""
    if state.status == TimerStatus.RUNNING:
        return state.accumulated_time + _since_start(state, now)
    if state.status == TimerStatus.BREAK:
        return max(0, (state.break_remaining or 0) - _since_start(state, now))
    return state.accumulated_time


def countdown_target(state, settings):
    return state.target_time if state.target_time is not None else settings.countdown_ms


def display_ms(state, now, settings):
    """What the timer face shows. Countdowns show time left, breaks show break left, flow shows time worked."""
    value = elapsed(state, now)
    if state.mode == TimerMode.COUNTDOWN:
        if state.status == TimerStatus.BREAK:
            return value
        if state.status == TimerStatus.IDLE and state.accumulated_time == 0:
            return countdown_target(state, settings)
        return max(0, countdown_target(state, settings) - value)
    return value

#endregion === Queries ===

#region === Transitions ===

def _start(state, now, settings):
    if state.mode == TimerMode.FLOW:
        accumulated, target = 0, None
    else:
        accumulated, target = state.accumulated_time, countdown_target(state, settings)
    return replace(
        state,
        status=TimerStatus.RUNNING,
        start_time=now,
        session_start_time=state.session_start_time if state.session_start_time is not None else now,
        accumulated_time=accumulated,
        target_time=target,
        break_remaining=None,
    )


def _flow_to_break(state, now, settings):
    interval = _since_start(state, now)
    return replace(
        state,
        status=TimerStatus.BREAK,
        start_time=now,
        accumulated_time=0,
        intervals=[*state.intervals, interval],
        break_remaining=int(interval // settings.flow_divisor),
    )


def _countdown_pause(state, now):
    return replace(
        state,
        status=TimerStatus.PAUSED,
        start_time=None,
        accumulated_time=state.accumulated_time + _since_start(state, now),
    )


def _break_to_work(state, now):
    return replace(
        state,
        status=TimerStatus.RUNNING,
        start_time=now,
        accumulated_time=0,
        break_remaining=None,
    )


def toggle(state, now, settings):
    """The single start/stop button.

    RUNNING flow goes on break, RUNNING countdown pauses, BREAK goes back to
    work, and anything else (IDLE, PAUSED) starts running.
    """
    if state.status == TimerStatus.RUNNING:
        if state.mode == TimerMode.FLOW:
            return Transition(_flow_to_break(state, now, settings))
        return Transition(_countdown_pause(state, now))
    if state.status == TimerStatus.BREAK:
        return Transition(_break_to_work(state, now))
    return Transition(_start(state, now, settings))


def end_session(state, now, category_id):
    candidate, reset_state = assemble(state, now, category_id)
    effects = [Effect(EffectKind.SESSION_READY, category_id, candidate)] if candidate is not None else []
    return Transition(reset_state, effects)


def _expire_break(state):
    return replace(state, status=TimerStatus.IDLE, start_time=None, break_remaining=None)


def tick(state, now, category_id):
    """Fire automatic transitions due at `now`. A no-op for anything not RUNNING or BREAK."""
    if state.status == TimerStatus.RUNNING and state.mode == TimerMode.COUNTDOWN and state.target_time is not None:
        if elapsed(state, now) >= state.target_time:
            log.info(f"Countdown for '{category_id}' reached its {state.target_time}ms target")
            done = end_session(state, now, category_id)
            done.effects.insert(0, Effect(EffectKind.NOTIFY_COMPLETE, category_id))
            return done
    elif state.status == TimerStatus.BREAK and state.break_remaining is not None:
        if state.break_remaining - _since_start(state, now) <= 0:
            log.info(f"Break for '{category_id}' is over")
            return Transition(_expire_break(state), [Effect(EffectKind.NOTIFY_BREAK_OVER, category_id)])
    return Transition(state)


def reset(state):
    return Transition(TimerState(mode=state.mode))


def skip_break(state):
    if state.status != TimerStatus.BREAK:
        raise InvalidTransition("skip break", state)
    return Transition(_expire_break(state))


def extend_break(state, extra_ms):
    if state.status != TimerStatus.BREAK:
        raise InvalidTransition("extend break", state)
    if extra_ms < 0:
        raise ValueError(f"Break extension must be non-negative, got {extra_ms}")
    return Transition(replace(state, break_remaining=(state.break_remaining or 0) + int(extra_ms)))


def set_mode(state, mode):
    mode = TimerMode(mode)
    if mode == state.mode:
        return Transition(state)
    if state.chain_open:
        raise InvalidTransition(f"switch to {mode.value}", state)
    return Transition(replace(state, mode=mode, target_time=None))


def set_target(state, minutes, settings):
    """Set the countdown goal before starting. Junk input falls back to the configured default."""
    if state.mode != TimerMode.COUNTDOWN or state.status != TimerStatus.IDLE or state.chain_open:
        raise InvalidTransition("set countdown target", state)
    return Transition(replace(state, target_time=minutes_to_ms(minutes, settings.countdown_minutes)))


def record_task(state, title, note, now):
    """Credit a completed task to the open session. Ignored while IDLE."""
    if state.status == TimerStatus.IDLE:
        return Transition(state)
    record = CompletedTaskRecord(title=title, completed_at=now, note=note or None)
    return Transition(replace(state, completed_tasks=[*state.completed_tasks, record]))

#endregion === Transitions ===
