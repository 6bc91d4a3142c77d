"""Per-category timer state: plain data, no behavior beyond (de)serialization.

All timestamps are wall-clock epoch milliseconds and all durations are integer
milliseconds. Transitions live in ``flowstate.core.engine``.
"""

import math
from dataclasses import dataclass, field
from enum import Enum

from flowstate.common.logger import log


class TimerMode(str, Enum):
    FLOW = "FLOW"
    COUNTDOWN = "COUNTDOWN"


class TimerStatus(str, Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    BREAK = "BREAK"


ACTIVE_STATUSES = (TimerStatus.RUNNING, TimerStatus.BREAK)


# Persisted millisecond value as an int, or None for anything that is not a finite real number.
def _finite_ms(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return int(value)


@dataclass(frozen=True)
class CompletedTaskRecord:
    title: str
    completed_at: int
    note: str | None = None

    def to_dict(self):
        return {"title": self.title, "note": self.note, "completed_at": self.completed_at}

    @staticmethod
    def from_dict(raw):
        """Unreadable completion times become 0 and non-text notes are dropped."""
        completed_at = _finite_ms(raw.get("completed_at"))
        note = raw.get("note")
        return CompletedTaskRecord(
            title=str(raw.get("title", "")),
            completed_at=completed_at if completed_at is not None else 0,
            note=note if isinstance(note, str) else None,
        )


@dataclass
class TimerState:
    mode: TimerMode = TimerMode.FLOW
    status: TimerStatus = TimerStatus.IDLE
    start_time: int | None = None
    session_start_time: int | None = None
    accumulated_time: int = 0
    target_time: int | None = None
    break_remaining: int | None = None
    intervals: list[int] = field(default_factory=list)
    completed_tasks: list[CompletedTaskRecord] = field(default_factory=list)

    @property
    def is_active(self):
        return self.status in ACTIVE_STATUSES

    # A chain is open from the first Start until End-Session/Reset, even while IDLE after an expired break.
    @property
    def chain_open(self):
        return (self.status != TimerStatus.IDLE
                or self.session_start_time is not None
                or self.accumulated_time > 0
                or bool(self.intervals))

    def validate(self):
        """Return a list of human readable invariant violations (empty when consistent)."""
        problems = []
        if (self.start_time is not None) != self.is_active:
            problems.append(f"start_time={self.start_time} with status {self.status.value}")
        if self.accumulated_time < 0:
            problems.append(f"negative accumulated_time {self.accumulated_time}")
        if self.mode == TimerMode.COUNTDOWN and self.intervals:
            problems.append("countdown state carries flow intervals")
        if self.break_remaining is not None and self.status != TimerStatus.BREAK:
            problems.append(f"break_remaining set with status {self.status.value}")
        if self.status != TimerStatus.IDLE and self.session_start_time is None:
            problems.append(f"no session_start_time with status {self.status.value}")
        return problems

    def to_dict(self):
        return {
            "mode": self.mode.value,
            "status": self.status.value,
            "start_time": self.start_time,
            "session_start_time": self.session_start_time,
            "accumulated_time": self.accumulated_time,
            "target_time": self.target_time,
            "break_remaining": self.break_remaining,
            "intervals": list(self.intervals),
            "completed_tasks": [t.to_dict() for t in self.completed_tasks],
        }

    @staticmethod
    def from_dict(raw):
        """Build a state from a persisted dict, defaulting anything missing or malformed."""
        if not isinstance(raw, dict):
            log.warning(f"Timer state was {type(raw).__name__}, not a dict - using a fresh idle state")
            return TimerState()

        defaulted = set()

        def enum_field(key, enum_cls, default):
            try:
                return enum_cls(raw[key])
            except (KeyError, TypeError, ValueError):
                defaulted.add(key)
                return default

        def ms_field(key, default=None):
            value = raw.get(key, default)
            if value is None:
                return default
            ms = _finite_ms(value)
            if ms is None:
                defaulted.add(key)
                return default
            return ms

        intervals = raw.get("intervals", [])
        if not isinstance(intervals, list):
            defaulted.add("intervals")
            intervals = []
        clean_intervals = [ms for ms in map(_finite_ms, intervals) if ms is not None and ms >= 0]
        if len(clean_intervals) != len(intervals):
            defaulted.add("intervals")

        tasks = []
        raw_tasks = raw.get("completed_tasks", [])
        if isinstance(raw_tasks, list):
            for t in raw_tasks:
                if isinstance(t, dict):
                    if _finite_ms(t.get("completed_at")) is None:
                        defaulted.add("completed_tasks")
                    tasks.append(CompletedTaskRecord.from_dict(t))
                else:
                    defaulted.add("completed_tasks")
        else:
            defaulted.add("completed_tasks")

        state = TimerState(
            mode=enum_field("mode", TimerMode, TimerMode.FLOW),
            status=enum_field("status", TimerStatus, TimerStatus.IDLE),
            start_time=ms_field("start_time"),
            session_start_time=ms_field("session_start_time"),
            accumulated_time=max(0, ms_field("accumulated_time", 0)),
            target_time=ms_field("target_time"),
            break_remaining=ms_field("break_remaining"),
            intervals=clean_intervals,
            completed_tasks=tasks,
        )
        if defaulted:
            log.warning(f"Loaded timer state with malformed values that were defaulted: {', '.join(sorted(defaulted))}")
        problems = state.validate()
        if problems:
            log.warning(f"Loaded timer state violates invariants: {'; '.join(problems)}")
        return state
