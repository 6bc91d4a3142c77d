"""Tests for the timer state machine, covering flowstate.core.engine transitions and queries.

All times are plain integer milliseconds; no real clock is involved.
"""

import unittest

from flowstate.core import engine
from flowstate.core.config import Settings
from flowstate.core.engine import EffectKind, InvalidTransition
from flowstate.core.timer_state import TimerMode, TimerState, TimerStatus

T0 = 1_700_000_000_000


def _flow_running(start=T0):
    return engine.toggle(TimerState(), start, Settings()).state


def _countdown(target_ms=None):
    return TimerState(mode=TimerMode.COUNTDOWN, target_time=target_ms)


# ──────────────────────────────────────────────────────────────────────────
# FLOW mode
# ──────────────────────────────────────────────────────────────────────────

class TestFlowTransitions(unittest.TestCase):

    def test_start_from_idle(self):
        state = _flow_running()
        self.assertEqual(state.status, TimerStatus.RUNNING)
        self.assertEqual(state.start_time, T0)
        self.assertEqual(state.session_start_time, T0)
        self.assertEqual(state.accumulated_time, 0)
        self.assertIsNone(state.target_time)
        self.assertEqual(state.validate(), [])

    def test_work_to_break_round_trip(self):
        """5s of work with divisor 5 earns a 1s break."""
        state = engine.toggle(_flow_running(), T0 + 5000, Settings()).state
        self.assertEqual(state.status, TimerStatus.BREAK)
        self.assertEqual(state.intervals, [5000])
        self.assertEqual(state.break_remaining, 1000)
        self.assertEqual(state.start_time, T0 + 5000)
        self.assertEqual(state.accumulated_time, 0)
        self.assertEqual(state.session_start_time, T0)
        self.assertEqual(state.validate(), [])

    def test_break_length_uses_configured_divisor(self):
        state = engine.toggle(_flow_running(), T0 + 60_000, Settings(flow_divisor=3)).state
        self.assertEqual(state.break_remaining, 20_000)

    def test_break_back_to_work_keeps_chain_origin(self):
        on_break = engine.toggle(_flow_running(), T0 + 10_000, Settings()).state
        working = engine.toggle(on_break, T0 + 11_000, Settings()).state
        self.assertEqual(working.status, TimerStatus.RUNNING)
        self.assertEqual(working.start_time, T0 + 11_000)
        self.assertIsNone(working.break_remaining)
        self.assertEqual(working.accumulated_time, 0)
        self.assertEqual(working.intervals, [10_000])
        self.assertEqual(working.session_start_time, T0)

    def test_input_state_not_mutated(self):
        running = _flow_running()
        engine.toggle(running, T0 + 5000, Settings())
        self.assertEqual(running.status, TimerStatus.RUNNING)
        self.assertEqual(running.intervals, [])


# ──────────────────────────────────────────────────────────────────────────
# COUNTDOWN mode
# ──────────────────────────────────────────────────────────────────────────

class TestCountdownTransitions(unittest.TestCase):

    def test_start_uses_default_target(self):
        state = engine.toggle(_countdown(), T0, Settings(countdown_minutes=25)).state
        self.assertEqual(state.target_time, 25 * 60_000)

    def test_start_preserves_explicit_target(self):
        state = engine.toggle(_countdown(60_000), T0, Settings()).state
        self.assertEqual(state.target_time, 60_000)

    def test_pause_banks_elapsed_time(self):
        running = engine.toggle(_countdown(60_000), T0, Settings()).state
        paused = engine.toggle(running, T0 + 10_000, Settings()).state
        self.assertEqual(paused.status, TimerStatus.PAUSED)
        self.assertIsNone(paused.start_time)
        self.assertEqual(paused.accumulated_time, 10_000)
        self.assertEqual(paused.intervals, [])
        self.assertEqual(paused.validate(), [])

    def test_resume_keeps_accumulated_and_origin(self):
        running = engine.toggle(_countdown(60_000), T0, Settings()).state
        paused = engine.toggle(running, T0 + 10_000, Settings()).state
        resumed = engine.toggle(paused, T0 + 50_000, Settings()).state
        self.assertEqual(resumed.status, TimerStatus.RUNNING)
        self.assertEqual(resumed.accumulated_time, 10_000)
        self.assertEqual(resumed.session_start_time, T0)
        self.assertEqual(engine.elapsed(resumed, T0 + 60_000), 20_000)

    def test_auto_complete_at_target(self):
        running = engine.toggle(_countdown(60_000), T0, Settings()).state

        early = engine.tick(running, T0 + 59_999, "work")
        self.assertIs(early.state, running)
        self.assertEqual(early.effects, [])

        done = engine.tick(running, T0 + 60_000, "work")
        self.assertEqual(done.state.status, TimerStatus.IDLE)
        self.assertEqual(done.state.mode, TimerMode.COUNTDOWN)
        self.assertIsNone(done.state.target_time)
        kinds = [e.kind for e in done.effects]
        self.assertEqual(kinds, [EffectKind.NOTIFY_COMPLETE, EffectKind.SESSION_READY])
        candidate = done.effects[1].candidate
        self.assertEqual(candidate.duration, 60_000)
        self.assertEqual(candidate.segment_count, 1)
        self.assertEqual(candidate.end_time, T0 + 60_000)

    def test_auto_complete_counts_paused_time(self):
        running = engine.toggle(_countdown(60_000), T0, Settings()).state
        paused = engine.toggle(running, T0 + 40_000, Settings()).state
        resumed = engine.toggle(paused, T0 + 100_000, Settings()).state
        self.assertEqual(engine.tick(resumed, T0 + 119_999, "work").effects, [])
        done = engine.tick(resumed, T0 + 120_000, "work")
        self.assertEqual(done.effects[1].candidate.duration, 60_000)
        self.assertEqual(done.effects[1].candidate.total_elapsed, 120_000)


# ──────────────────────────────────────────────────────────────────────────
# Ticks and breaks
# ──────────────────────────────────────────────────────────────────────────

class TestTickAndBreaks(unittest.TestCase):

    def test_tick_on_idle_is_noop(self):
        idle = TimerState()
        for now in (0, T0, T0 + 10 ** 9):
            result = engine.tick(idle, now, "work")
            self.assertIs(result.state, idle)
            self.assertEqual(result.effects, [])

    def test_tick_on_paused_is_noop(self):
        running = engine.toggle(_countdown(60_000), T0, Settings()).state
        paused = engine.toggle(running, T0 + 1000, Settings()).state
        self.assertIs(engine.tick(paused, T0 + 10 ** 7, "work").state, paused)

    def test_break_expiry_preserves_chain(self):
        on_break = engine.toggle(_flow_running(), T0 + 10_000, Settings()).state  # 2s break

        self.assertEqual(engine.tick(on_break, T0 + 11_999, "work").effects, [])

        expired = engine.tick(on_break, T0 + 12_000, "work")
        self.assertEqual(expired.state.status, TimerStatus.IDLE)
        self.assertIsNone(expired.state.start_time)
        self.assertIsNone(expired.state.break_remaining)
        self.assertEqual(expired.state.intervals, [10_000])
        self.assertEqual(expired.state.session_start_time, T0)
        self.assertTrue(expired.state.chain_open)
        self.assertEqual([e.kind for e in expired.effects], [EffectKind.NOTIFY_BREAK_OVER])

    def test_restart_after_expired_break_continues_chain(self):
        on_break = engine.toggle(_flow_running(), T0 + 10_000, Settings()).state
        expired = engine.tick(on_break, T0 + 12_000, "work").state
        working = engine.toggle(expired, T0 + 20_000, Settings()).state
        self.assertEqual(working.session_start_time, T0)
        self.assertEqual(working.accumulated_time, 0)
        on_break_again = engine.toggle(working, T0 + 25_000, Settings()).state
        self.assertEqual(on_break_again.intervals, [10_000, 5000])

    def test_skip_break(self):
        on_break = engine.toggle(_flow_running(), T0 + 10_000, Settings()).state
        skipped = engine.skip_break(on_break)
        self.assertEqual(skipped.state.status, TimerStatus.IDLE)
        self.assertIsNone(skipped.state.break_remaining)
        self.assertEqual(skipped.state.intervals, [10_000])
        self.assertEqual(skipped.effects, [])

    def test_extend_break(self):
        on_break = engine.toggle(_flow_running(), T0 + 10_000, Settings()).state
        extended = engine.extend_break(on_break, 5 * 60_000).state
        self.assertEqual(extended.break_remaining, 2000 + 5 * 60_000)
        self.assertEqual(engine.tick(extended, T0 + 12_000, "work").effects, [])

    def test_break_operations_rejected_outside_break(self):
        running = _flow_running()
        with self.assertRaises(InvalidTransition):
            engine.skip_break(running)
        with self.assertRaises(InvalidTransition):
            engine.extend_break(running, 1000)

    def test_negative_extension_rejected(self):
        on_break = engine.toggle(_flow_running(), T0 + 10_000, Settings()).state
        with self.assertRaises(ValueError):
            engine.extend_break(on_break, -1)


# ──────────────────────────────────────────────────────────────────────────
# Queries, reset, mode and tasks
# ──────────────────────────────────────────────────────────────────────────

class TestQueriesAndMisc(unittest.TestCase):

    def test_elapsed_running(self):
        self.assertEqual(engine.elapsed(_flow_running(), T0 + 4321), 4321)

    def test_elapsed_break_counts_down_and_clamps(self):
        on_break = engine.toggle(_flow_running(), T0 + 10_000, Settings()).state
        self.assertEqual(engine.elapsed(on_break, T0 + 10_500), 1500)
        self.assertEqual(engine.elapsed(on_break, T0 + 99_000), 0)

    def test_elapsed_missing_start_time_contributes_nothing(self):
        broken = TimerState(status=TimerStatus.RUNNING, accumulated_time=300, session_start_time=T0)
        self.assertEqual(engine.elapsed(broken, T0 + 5000), 300)

    def test_display_countdown(self):
        settings = Settings(countdown_minutes=25)
        self.assertEqual(engine.display_ms(_countdown(), T0, settings), 25 * 60_000)
        running = engine.toggle(_countdown(60_000), T0, settings).state
        self.assertEqual(engine.display_ms(running, T0 + 15_000, settings), 45_000)
        self.assertEqual(engine.display_ms(running, T0 + 90_000, settings), 0)

    def test_display_flow_is_elapsed(self):
        self.assertEqual(engine.display_ms(_flow_running(), T0 + 7000, Settings()), 7000)

    def test_reset_clears_everything_but_mode(self):
        running = engine.toggle(_countdown(60_000), T0, Settings()).state
        result = engine.reset(running)
        self.assertEqual(result.state, TimerState(mode=TimerMode.COUNTDOWN))
        self.assertEqual(result.effects, [])

    def test_set_mode_only_without_open_chain(self):
        switched = engine.set_mode(TimerState(), TimerMode.COUNTDOWN).state
        self.assertEqual(switched.mode, TimerMode.COUNTDOWN)
        with self.assertRaises(InvalidTransition):
            engine.set_mode(_flow_running(), TimerMode.COUNTDOWN)

    def test_set_mode_rejected_after_expired_break(self):
        on_break = engine.toggle(_flow_running(), T0 + 10_000, Settings()).state
        expired = engine.tick(on_break, T0 + 12_000, "work").state
        with self.assertRaises(InvalidTransition):
            engine.set_mode(expired, TimerMode.COUNTDOWN)

    def test_set_target_falls_back_on_junk(self):
        settings = Settings(countdown_minutes=25)
        self.assertEqual(engine.set_target(_countdown(), "50", settings).state.target_time, 50 * 60_000)
        self.assertEqual(engine.set_target(_countdown(), "abc", settings).state.target_time, 25 * 60_000)
        self.assertEqual(engine.set_target(_countdown(), -3, settings).state.target_time, 25 * 60_000)

    def test_record_task_only_during_open_session(self):
        idle = TimerState()
        self.assertIs(engine.record_task(idle, "Write tests", None, T0).state, idle)

        running = _flow_running()
        recorded = engine.record_task(running, "Write tests", "all green", T0 + 100).state
        self.assertEqual(len(recorded.completed_tasks), 1)
        self.assertEqual(recorded.completed_tasks[0].title, "Write tests")
        self.assertEqual(recorded.completed_tasks[0].note, "all green")
        self.assertEqual(recorded.completed_tasks[0].completed_at, T0 + 100)


if __name__ == "__main__":
    unittest.main()
