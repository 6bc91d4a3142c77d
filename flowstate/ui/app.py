import sys
from datetime import date
from PySide6.QtCore import QTimer
from PySide6.QtGui import QFont, QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QApplication,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)
from flowstate.common.logger import log
from flowstate.core import config
from flowstate.core.coordinator import Coordinator
from flowstate.core.engine import EffectKind
from flowstate.core.export import export_csv, export_json
from flowstate.core.streaks import compute_streaks
from flowstate.core.timer_state import TimerMode
from flowstate.ui.dialogs.session_complete import SessionCompleteDialog
from flowstate.ui.widgets import FONT_FAMILY, build_category_row, refresh_category_row
from flowstate.util import SystemClock

TICK_MS = 100
# Autosave every this many ticks while something is running (~5 seconds)
AUTOSAVE_TICKS = 50


# ---------------------------------------------------------------------------
# Main window
# ---------------------------------------------------------------------------

# Main window. One row per category, a footer with the streak and export buttons, and a tick timer that only runs
# while some category is RUNNING or on BREAK.
class MainWindow(QMainWindow):

    def __init__(self, clock=None):
        super().__init__()
        self.setWindowTitle("FlowState")

        # -- Load unified state --
        self._state = config.load_state()
        self.categories = list(self._state["categories"])
        self.selected_id = self._state["selected_category_id"]
        self.coordinator = Coordinator.from_state(self._state, clock or SystemClock())
        self.coordinator.add_listener(self._on_effect)

        self._widgets = {}  # category_id -> widget dict
        self._confirm_scheduled = False
        self._confirming = False

        # -- Build UI skeleton --
        central = QWidget()
        self.setCentralWidget(central)
        self._main_lay = QVBoxLayout(central)
        self._rows_lay = QVBoxLayout()
        self._main_lay.addLayout(self._rows_lay)
        self._build_rows()
        self._build_footer()
        self._build_shortcuts()

        # -- Tick timer, started on demand by _sync_tick --
        self._tick_n = 0
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._tick)

        # A timer left running from the last launch keeps going. Whatever came due while closed fires on first tick.
        self._refresh_all()
        self._refresh_streak()
        self._sync_tick()

    # ------------------------------------------------------------------ #
    #  Layout                                                              #
    # ------------------------------------------------------------------ #

    def _build_rows(self):
        extend_minutes = self.coordinator.settings.break_extend_minutes
        for cat in self.categories:
            cid = cat["id"]
            container, w = build_category_row(
                cat, extend_minutes,
                on_mode=lambda _=False, c=cid: self._on_mode(c),
                on_toggle=lambda _=False, c=cid: self._act(c, self.coordinator.toggle),
                on_end=lambda _=False, c=cid: self._act(c, self.coordinator.end_session),
                on_skip=lambda _=False, c=cid: self._act(c, self.coordinator.skip_break),
                on_extend=lambda _=False, c=cid: self._act(c, self.coordinator.extend_break),
                on_reset=lambda _=False, c=cid: self._on_reset(c),
                on_target=lambda text, c=cid: self._act(c, lambda cc: self.coordinator.set_target(cc, text)),
                on_notes=lambda text, c=cid: self.coordinator.set_current_notes(c, text),
                on_task=lambda title, c=cid: self._act(c, lambda cc: self.coordinator.record_task(cc, title)),
            )
            self._rows_lay.addWidget(container)
            self._widgets[cid] = w

    def _build_footer(self):
        footer = QHBoxLayout()
        self._streak_lbl = QLabel()
        self._streak_lbl.setFont(QFont(FONT_FAMILY, 11))
        self._streak_lbl.setVisible(self.coordinator.settings.show_streaks)
        footer.addWidget(self._streak_lbl)
        footer.addStretch(1)
        csv_btn = QPushButton("Export CSV")
        csv_btn.clicked.connect(self._on_export_csv)
        footer.addWidget(csv_btn)
        json_btn = QPushButton("Export JSON")
        json_btn.clicked.connect(self._on_export_json)
        footer.addWidget(json_btn)
        self._main_lay.addLayout(footer)

    # ------------------------------------------------------------------ #
    #  Actions                                                             #
    # ------------------------------------------------------------------ #

    def _act(self, category_id, action):
        if category_id is None:
            return
        self.selected_id = category_id
        action(category_id)
        self._after_change()

    def _on_mode(self, category_id):
        state = self.coordinator.state_for(category_id)
        new_mode = TimerMode.FLOW if state.mode == TimerMode.COUNTDOWN else TimerMode.COUNTDOWN
        self._act(category_id, lambda c: self.coordinator.set_mode(c, new_mode))

    def _on_reset(self, category_id):
        if not self.coordinator.state_for(category_id).chain_open:
            return
        answer = QMessageBox.question(self, "Reset Timer", "Discard the current session without saving it?")
        if answer == QMessageBox.Yes:
            self._act(category_id, self.coordinator.reset)

    # Window-wide keys. Text fields keep Space, R and digits for typing.
    def _build_shortcuts(self):
        self._shortcuts = {}
        bindings = [("Space", lambda: self._act(self.selected_id, self.coordinator.toggle)),
                    ("R", lambda: self._on_reset(self.selected_id))]
        bindings += [(str(i + 1), lambda i=i: self._select(i)) for i in range(9)]
        for keys, handler in bindings:
            shortcut = QShortcut(QKeySequence(keys), self)
            shortcut.activated.connect(handler)
            self._shortcuts[keys] = shortcut

    def _select(self, index):
        if index < len(self.categories):
            self.selected_id = self.categories[index]["id"]
            self._refresh_all()

    def _after_change(self):
        self._refresh_all()
        self._sync_tick()
        self._save_state()

    # ------------------------------------------------------------------ #
    #  Effects / confirmation                                              #
    # ------------------------------------------------------------------ #

    def _on_effect(self, effect):
        if effect.kind in (EffectKind.NOTIFY_COMPLETE, EffectKind.NOTIFY_BREAK_OVER):
            QApplication.beep()
        elif effect.kind == EffectKind.SESSION_READY and not self._confirm_scheduled:
            # Never open a modal from inside a tick or button handler
            self._confirm_scheduled = True
            QTimer.singleShot(0, self._confirm_pending)

    def _confirm_pending(self):
        self._confirm_scheduled = False
        # Sessions that finish while a dialog is open are picked up by the loop already running
        if self._confirming:
            return
        self._confirming = True
        try:
            self._confirm_loop()
        finally:
            self._confirming = False
        self._refresh_streak()
        self._after_change()

    def _confirm_loop(self):
        names = {c["id"]: c["name"] for c in self.categories}
        while self.coordinator.pending:
            candidate = self.coordinator.pending[0]
            dialog = SessionCompleteDialog(
                self, candidate, names.get(candidate.category_id, "Unknown"),
                self._state["all_tags"], self._state["distraction_presets"],
                notes=self.coordinator.current_notes(candidate.category_id),
            )
            if dialog.exec():
                self.coordinator.set_current_notes(candidate.category_id, dialog.notes())
                self.coordinator.confirm(dialog.metadata())
            else:
                self.coordinator.skip_confirmation()

    # ------------------------------------------------------------------ #
    #  Tick / display                                                      #
    # ------------------------------------------------------------------ #

    def _sync_tick(self):
        if self.coordinator.has_active() and not self._timer.isActive():
            self._timer.start(TICK_MS)
        elif not self.coordinator.has_active() and self._timer.isActive():
            self._timer.stop()

    def _tick(self):
        self.coordinator.tick()
        self._refresh_all()
        # History only changes on confirm, but "today" moves at midnight
        if date.today() != self._streak_day:
            self._refresh_streak()
        self._tick_n += 1
        if self._tick_n % AUTOSAVE_TICKS == 0:
            self._save_state()
        self._sync_tick()

    def _refresh_all(self):
        now = self.coordinator.clock.now()
        settings = self.coordinator.settings
        for cid, w in self._widgets.items():
            refresh_category_row(w, self.coordinator.state_for(cid), now, settings,
                                 notes=self.coordinator.current_notes(cid))
            font = w["name"].font()
            font.setBold(cid == self.selected_id)
            w["name"].setFont(font)

    def _refresh_streak(self):
        stats = self._state["stats"]
        self._streak_day = date.today()
        streaks = compute_streaks(self.coordinator.store.all_sessions(), self._streak_day, stats["longest_streak"])
        stats["longest_streak"] = streaks.longest
        self._streak_lbl.setText(f"Streak: {streaks.current} day(s)   Best: {streaks.longest}")

    # ------------------------------------------------------------------ #
    #  Persistence / export                                                #
    # ------------------------------------------------------------------ #

    def _save_state(self):
        self._state["selected_category_id"] = self.selected_id
        self.coordinator.apply_to(self._state)
        config.save_state(self._state)
        return self._state

    def _on_export_csv(self):
        path = export_csv(self.coordinator.store.all_sessions(), self.categories)
        QMessageBox.information(self, "Export", f"Sessions exported to:\n{path}")

    def _on_export_json(self):
        path = export_json(self._save_state())
        QMessageBox.information(self, "Export", f"State exported to:\n{path}")

    def closeEvent(self, event):
        try:
            self._save_state()
        except OSError as e:
            log.exception("Failed to save state on exit")
            QMessageBox.warning(self, "Save Error",
                                f"Failed to save state:\n{e}")
        event.accept()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    app = QApplication(sys.argv)
    window = MainWindow()
    window.show()
    sys.exit(app.exec())
