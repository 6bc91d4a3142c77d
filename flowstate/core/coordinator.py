"""Coordinator: the single owner and writer of every category's TimerState.

Samples the injected clock once per action, runs the matching engine
transition, stores the result and hands the transition's effects to listeners.
Session candidates wait in ``pending`` until the confirmation step supplies
metadata, at which point they are finalized, split at midnight and appended to
the store.
"""

from collections import deque
from dataclasses import replace

from flowstate.common.logger import log
from flowstate.core import engine
from flowstate.core.config import Settings
from flowstate.core.engine import EffectKind, InvalidTransition
from flowstate.core.session import SessionMetadata, finalize
from flowstate.core.splitter import split_by_midnight
from flowstate.core.store import SessionStore
from flowstate.core.timer_state import TimerMode, TimerState, TimerStatus


# Patches up loaded states that would otherwise never leave RUNNING or BREAK on their own.
def _repair_loaded(category_id, state, settings):
    if state.mode == TimerMode.COUNTDOWN and state.status != TimerStatus.IDLE and state.target_time is None:
        log.warning(f"Countdown for '{category_id}' was loaded without a target, using the default of {settings.countdown_ms}ms")
        return replace(state, target_time=settings.countdown_ms)
    if state.status == TimerStatus.BREAK and state.break_remaining is None:
        log.warning(f"Break for '{category_id}' was loaded without a remaining time, ending it")
        return replace(state, status=TimerStatus.IDLE, start_time=None)
    return state


class Coordinator:

    def __init__(self, clock, settings=None, timers=None, store=None, drafts=None):
        self.clock = clock
        self.settings = settings or Settings()
        self.store = store or SessionStore()
        self._timers = dict(timers or {})
        self._drafts = dict(drafts or {})  # category_id -> in-progress session notes
        self.pending = deque()
        self._listeners = []

    #region === State access ===

    # Unknown categories (never started, or deleted mid-session) read as a fresh idle state.
    def state_for(self, category_id):
        return self._timers.get(category_id) or TimerState()

    def category_ids(self):
        return list(self._timers)

    def has_active(self):
        return any(state.is_active for state in self._timers.values())

    def elapsed(self, category_id, now=None):
        return engine.elapsed(self.state_for(category_id), self.clock.now() if now is None else now)

    def display_ms(self, category_id, now=None):
        now = self.clock.now() if now is None else now
        return engine.display_ms(self.state_for(category_id), now, self.settings)

    def current_notes(self, category_id):
        return self._drafts.get(category_id, "")

    def set_current_notes(self, category_id, text):
        self._drafts[category_id] = text

    #endregion === State access ===

    #region === Listeners ===

    def add_listener(self, listener):
        self._listeners.append(listener)

    # Delivery problems are logged and dropped; they must never undo a transition that already happened.
    def _dispatch(self, effects):
        for effect in effects:
            if effect.kind == EffectKind.SESSION_READY:
                self.pending.append(effect.candidate)
            for listener in list(self._listeners):
                try:
                    listener(effect)
                except Exception:
                    log.exception(f"Listener {listener!r} failed handling {effect.kind.value} for '{effect.category_id}'")

    #endregion === Listeners ===

    #region === Transitions ===

    def _apply(self, category_id, operation, *args):
        before = self.state_for(category_id)
        try:
            transition = operation(before, *args)
        except InvalidTransition as e:
            log.warning(f"Ignored action on '{category_id}': {e}")
            return before
        self._timers[category_id] = transition.state
        if transition.state.status != before.status:
            log.debug(f"'{category_id}' {before.status.value} -> {transition.state.status.value}")
        self._dispatch(transition.effects)
        return transition.state

    def toggle(self, category_id):
        return self._apply(category_id, engine.toggle, self.clock.now(), self.settings)

    def end_session(self, category_id):
        return self._apply(category_id, engine.end_session, self.clock.now(), category_id)

    def reset(self, category_id):
        return self._apply(category_id, engine.reset)

    def skip_break(self, category_id):
        return self._apply(category_id, engine.skip_break)

    def extend_break(self, category_id, extra_ms=None):
        return self._apply(category_id, engine.extend_break,
                           self.settings.break_extend_ms if extra_ms is None else extra_ms)

    def set_mode(self, category_id, mode):
        return self._apply(category_id, engine.set_mode, mode)

    def set_target(self, category_id, minutes):
        return self._apply(category_id, engine.set_target, minutes, self.settings)

    def record_task(self, category_id, title, note=None):
        return self._apply(category_id, engine.record_task, title, note, self.clock.now())

    def tick(self):
        """Fire any due automatic transitions across all categories, using a single clock sample."""
        now = self.clock.now()
        for category_id, state in list(self._timers.items()):
            if not state.is_active:
                continue
            transition = engine.tick(state, now, category_id)
            if transition.state is not state:
                self._timers[category_id] = transition.state
            self._dispatch(transition.effects)

    #endregion === Transitions ===

    #region === Confirmation and history ===

    def confirm(self, metadata):
        """Finalize the oldest pending candidate and store it. Returns the stored (possibly split) records."""
        if not self.pending:
            log.warning("confirm() called with no pending session")
            return []
        candidate = self.pending.popleft()
        notes = self._drafts.pop(candidate.category_id, "")
        session = finalize(candidate, metadata, self.settings.idle_threshold_ms, notes)
        records = split_by_midnight(session)
        self.store.append(records)
        log.info(f"Saved session for '{candidate.category_id}' as {len(records)} record(s)")
        return records

    def skip_confirmation(self):
        return self.confirm(SessionMetadata.skipped())

    def discard_pending(self):
        if self.pending:
            dropped = self.pending.popleft()
            log.info(f"Discarded pending session for '{dropped.category_id}' ({dropped.duration}ms)")
            return dropped
        return None

    def update_session_note(self, session_id, note):
        return self.store.update_note(session_id, note)

    def remove_category(self, category_id):
        self._timers.pop(category_id, None)
        self._drafts.pop(category_id, None)
        self.store.drop_category(category_id)

    #endregion === Confirmation and history ===

    #region === Persistence ===

    def apply_to(self, state_dict):
        """Write timers, drafts and history into a state dict (as produced by config.load_state)."""
        state_dict["timers"] = {cid: st.to_dict() for cid, st in self._timers.items()}
        state_dict["drafts"] = dict(self._drafts)
        state_dict["sessions"] = self.store.to_dict()
        state_dict["settings"] = self.settings.to_dict()
        return state_dict

    @staticmethod
    def from_state(state_dict, clock):
        settings = Settings.from_dict(state_dict.get("settings"))
        timers = {cid: _repair_loaded(cid, TimerState.from_dict(raw), settings)
                  for cid, raw in state_dict.get("timers", {}).items()}
        drafts = {cid: text for cid, text in state_dict.get("drafts", {}).items() if isinstance(text, str)}
        return Coordinator(
            clock,
            settings=settings,
            timers=timers,
            store=SessionStore.from_dict(state_dict.get("sessions")),
            drafts=drafts,
        )

    #endregion === Persistence ===
