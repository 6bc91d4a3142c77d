"""Tests for loading persisted timer state.

Covers: flowstate.core.timer_state, Coordinator.from_state
"""

import json
import unittest

from flowstate.core.coordinator import Coordinator
from flowstate.core.timer_state import CompletedTaskRecord, TimerMode, TimerState, TimerStatus

T0 = 1_700_000_000_000


class FakeClock:

    def __init__(self, t=T0):
        self.t = t

    def now(self):
        return self.t


# ──────────────────────────────────────────────────────────────────────────
# timer_state.py tests
# ──────────────────────────────────────────────────────────────────────────

class TestTimerStateFromDict(unittest.TestCase):

    def test_roundtrip(self):
        state = TimerState(mode=TimerMode.FLOW, status=TimerStatus.BREAK, start_time=T0, session_start_time=T0 - 5000,
                           break_remaining=1000, intervals=[5000],
                           completed_tasks=[CompletedTaskRecord("Email", T0 - 10, "sent")])
        self.assertEqual(TimerState.from_dict(json.loads(json.dumps(state.to_dict()))), state)

    def test_non_dict_is_fresh_idle(self):
        for raw in (None, "junk", [1, 2], 42):
            with self.assertLogs("flowstate", level="WARNING"):
                self.assertEqual(TimerState.from_dict(raw), TimerState())

    def test_unknown_mode_and_status(self):
        with self.assertLogs("flowstate", level="WARNING"):
            state = TimerState.from_dict({"mode": "POMODORO", "status": ["RUNNING"]})
        self.assertEqual(state.mode, TimerMode.FLOW)
        self.assertEqual(state.status, TimerStatus.IDLE)

    def test_intervals_not_a_list(self):
        with self.assertLogs("flowstate", level="WARNING"):
            state = TimerState.from_dict({"intervals": "5000,6000"})
        self.assertEqual(state.intervals, [])

    def test_bad_interval_entries_dropped(self):
        raw = json.loads('{"intervals": [5000, -1, "6000", true, NaN, Infinity, 7000.9]}')
        with self.assertLogs("flowstate", level="WARNING"):
            state = TimerState.from_dict(raw)
        self.assertEqual(state.intervals, [5000, 7000])

    def test_bad_completed_at_defaults_to_zero(self):
        raw = json.loads('{"status": "RUNNING", "start_time": 1, "session_start_time": 1, "completed_tasks": ['
                         '{"title": "a", "completed_at": null},'
                         '{"title": "b", "completed_at": "yesterday"},'
                         '{"title": "c", "completed_at": NaN, "note": 5},'
                         '{"title": "d", "completed_at": 1234, "note": "ok"},'
                         '"not a task"]}')
        with self.assertLogs("flowstate", level="WARNING") as logs:
            state = TimerState.from_dict(raw)
        self.assertIn("completed_tasks", "\n".join(logs.output))
        self.assertEqual([t.title for t in state.completed_tasks], ["a", "b", "c", "d"])
        self.assertEqual([t.completed_at for t in state.completed_tasks], [0, 0, 0, 1234])
        self.assertIsNone(state.completed_tasks[2].note)
        self.assertEqual(state.completed_tasks[3].note, "ok")

    def test_non_finite_timestamps_default(self):
        raw = json.loads('{"mode": "COUNTDOWN", "status": "PAUSED", "session_start_time": NaN,'
                         ' "accumulated_time": Infinity, "target_time": -Infinity}')
        with self.assertLogs("flowstate", level="WARNING"):
            state = TimerState.from_dict(raw)
        self.assertIsNone(state.session_start_time)
        self.assertEqual(state.accumulated_time, 0)
        self.assertIsNone(state.target_time)
        self.assertEqual(state.status, TimerStatus.PAUSED)

    def test_task_record_from_dict_directly(self):
        record = CompletedTaskRecord.from_dict({"title": "x", "completed_at": None})
        self.assertEqual(record, CompletedTaskRecord("x", 0))


# ──────────────────────────────────────────────────────────────────────────
# Coordinator.from_state with malformed timers
# ──────────────────────────────────────────────────────────────────────────

class TestLoadMalformedTimers(unittest.TestCase):

    def _load(self, text):
        with self.assertLogs("flowstate", level="WARNING"):
            return Coordinator.from_state(json.loads(text), FakeClock())

    def test_survives_every_malformed_timer(self):
        coord = self._load("""{"timers": {
            "work": {"completed_tasks": [{"completed_at": "x"}]},
            "study": {"status": "RUNNING", "start_time": NaN, "session_start_time": 1},
            "gym": "junk",
            "read": {"mode": "???", "intervals": {"a": 1}}
        }}""")
        self.assertEqual(coord.state_for("work").completed_tasks[0].completed_at, 0)
        self.assertEqual(coord.state_for("gym"), TimerState())
        self.assertEqual(coord.state_for("read").mode, TimerMode.FLOW)
        self.assertEqual(coord.state_for("study").status, TimerStatus.RUNNING)
        # Still usable afterwards
        coord.tick()
        coord.end_session("study")

    def test_running_countdown_without_target_gets_default(self):
        coord = self._load(
            f'{{"settings": {{"countdown_minutes": 1}}, "timers": {{"work": '
            f'{{"mode": "COUNTDOWN", "status": "RUNNING", "start_time": {T0}, "session_start_time": {T0}}}}}}}'
        )
        self.assertEqual(coord.state_for("work").target_time, 60_000)
        coord.clock.t = T0 + 60_000
        coord.tick()
        self.assertFalse(coord.has_active())
        self.assertEqual(len(coord.pending), 1)

    def test_break_without_remaining_time_ends(self):
        coord = self._load(
            f'{{"timers": {{"work": {{"status": "BREAK", "start_time": {T0}, "session_start_time": {T0 - 5000},'
            f' "intervals": [5000], "break_remaining": NaN}}}}}}'
        )
        state = coord.state_for("work")
        self.assertEqual(state.status, TimerStatus.IDLE)
        self.assertIsNone(state.start_time)
        self.assertEqual(state.intervals, [5000])
        self.assertFalse(coord.has_active())


if __name__ == "__main__":
    unittest.main()
