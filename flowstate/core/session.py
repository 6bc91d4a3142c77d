"""Session records: the candidate the assembler emits and the finalized, storable session."""

from dataclasses import dataclass, field, replace

from flowstate.common.logger import log
from flowstate.core.timer_state import CompletedTaskRecord, TimerMode
from flowstate.util import generate_id


@dataclass(frozen=True)
class SessionCandidate:
    category_id: str
    start_time: int
    end_time: int
    duration: int
    total_elapsed: int
    session_start_time: int
    mode: TimerMode
    segment_count: int
    completed_tasks: tuple[CompletedTaskRecord, ...] = ()


@dataclass(frozen=True)
class SessionMetadata:
    """What the confirmation step collects. A rating of 0 means the user skipped rating."""
    rating: int = 0
    tags: tuple[str, ...] = ()
    distractions: tuple[str, ...] = ()
    distraction_note: str = ""

    def __post_init__(self):
        if isinstance(self.rating, bool) or not isinstance(self.rating, int) or not 0 <= self.rating <= 5:
            raise ValueError(f"Session rating must be an integer from 0 to 5, got {self.rating!r}")
        # Sets in, ordered unique tuples out
        object.__setattr__(self, "tags", tuple(dict.fromkeys(self.tags)))
        object.__setattr__(self, "distractions", tuple(dict.fromkeys(self.distractions)))

    @staticmethod
    def skipped():
        return SessionMetadata()


@dataclass(frozen=True)
class Session:
    id: str
    category_id: str
    start_time: int
    end_time: int
    duration: int
    total_elapsed: int
    session_start_time: int
    mode: TimerMode
    notes: str = ""
    is_flagged: bool = False
    rating: int | None = None
    tags: tuple[str, ...] = ()
    distractions: tuple[str, ...] = ()
    distraction_note: str | None = None
    completed_tasks: tuple[CompletedTaskRecord, ...] = field(default_factory=tuple)

    def with_note(self, note):
        return replace(self, notes=note)

    def to_dict(self):
        return {
            "id": self.id,
            "category_id": self.category_id,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration": self.duration,
            "total_elapsed": self.total_elapsed,
            "session_start_time": self.session_start_time,
            "mode": self.mode.value,
            "notes": self.notes,
            "is_flagged": self.is_flagged,
            "rating": self.rating,
            "tags": list(self.tags),
            "distractions": list(self.distractions),
            "distraction_note": self.distraction_note,
            "completed_tasks": [t.to_dict() for t in self.completed_tasks],
        }

    @staticmethod
    def from_dict(raw):
        """Raises KeyError/ValueError/TypeError on records missing required fields."""
        rating = raw.get("rating")
        return Session(
            id=str(raw["id"]),
            category_id=str(raw["category_id"]),
            start_time=int(raw["start_time"]),
            end_time=int(raw["end_time"]),
            duration=int(raw["duration"]),
            total_elapsed=int(raw.get("total_elapsed", raw["end_time"] - raw["start_time"])),
            session_start_time=int(raw.get("session_start_time", raw["start_time"])),
            mode=TimerMode(raw.get("mode", TimerMode.FLOW.value)),
            notes=str(raw.get("notes") or ""),
            is_flagged=bool(raw.get("is_flagged", False)),
            rating=int(rating) if rating else None,
            tags=tuple(raw.get("tags") or ()),
            distractions=tuple(raw.get("distractions") or ()),
            distraction_note=raw.get("distraction_note") or None,
            completed_tasks=tuple(CompletedTaskRecord.from_dict(t) for t in raw.get("completed_tasks") or ()),
        )


# Attaches the confirmation step's metadata to a candidate. Flagging lives here rather than in the assembler since
# it needs the configured idle threshold.
def finalize(candidate, metadata, idle_threshold_ms, notes=""):
    is_flagged = candidate.duration > idle_threshold_ms
    session = Session(
        id=generate_id(),
        category_id=candidate.category_id,
        start_time=candidate.start_time,
        end_time=candidate.end_time,
        duration=candidate.duration,
        total_elapsed=candidate.total_elapsed,
        session_start_time=candidate.session_start_time,
        mode=candidate.mode,
        notes=(notes or "").strip(),
        is_flagged=is_flagged,
        rating=metadata.rating or None,
        tags=metadata.tags,
        distractions=metadata.distractions,
        distraction_note=metadata.distraction_note.strip() or None,
        completed_tasks=tuple(candidate.completed_tasks),
    )
    if is_flagged:
        log.info(f"Session {session.id} for '{candidate.category_id}' flagged: {candidate.duration}ms exceeds idle threshold of {idle_threshold_ms}ms")
    return session
