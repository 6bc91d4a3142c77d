"""Row widget builders for the category list.

Each builder returns a (container, widget_dict) tuple. The container is a
QWidget with objectName "rowBg" that can be inserted into the grid. The
widget_dict maps logical names to sub-widgets for later updates.
"""

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)
from flowstate.core.engine import countdown_target, display_ms
from flowstate.core.timer_state import TimerMode, TimerStatus
from flowstate.util import format_time, round_up_to_second

FONT_FAMILY = "Calibri"
BREAK_COLOR = "#10b981"

# Label for the main start/stop button given where the timer currently is.
def toggle_label(state):
    if state.status == TimerStatus.RUNNING:
        return "Break" if state.mode == TimerMode.FLOW else "Pause"
    if state.status == TimerStatus.BREAK:
        return "Resume"
    if state.status == TimerStatus.PAUSED:
        return "Continue"
    return "Start"

# Formatted timer face. Anything counting down shows the ceiling second.
def timer_text(state, now, settings):
    ms = display_ms(state, now, settings)
    if state.mode == TimerMode.COUNTDOWN or state.status == TimerStatus.BREAK:
        ms = round_up_to_second(ms)
    return format_time(ms)


def build_category_row(category, extend_minutes,
                       on_mode, on_toggle, on_end, on_skip, on_extend, on_reset,
                       on_target, on_notes, on_task):
    """Build one category row.

    The top line holds the timer controls, the second line the countdown
    minutes, in-session notes and a task entry. `on_target`, `on_notes` and
    `on_task` are called with the entered text.

    Returns (container, widget_dict).
    """
    rc = QWidget()
    rc.setObjectName("rowBg")
    outer = QVBoxLayout(rc)
    outer.setContentsMargins(6, 2, 6, 2)
    outer.setSpacing(2)
    lay = QHBoxLayout()
    lay.setSpacing(4)
    outer.addLayout(lay)

    name = QLabel(category["name"])
    name.setFont(QFont(FONT_FAMILY, 12))
    name.setStyleSheet(f"color: {category.get('color', '#3b82f6')};")
    name.setMinimumWidth(90)
    lay.addWidget(name)

    mode = QPushButton("Flow")
    mode.setToolTip("Switch between flow and countdown (only while idle)")
    mode.clicked.connect(on_mode)
    lay.addWidget(mode)

    time_lbl = QLabel("0:00")
    time_lbl.setFont(QFont(FONT_FAMILY, 16))
    time_lbl.setAlignment(Qt.AlignRight | Qt.AlignVCenter)
    time_lbl.setMinimumWidth(90)
    lay.addWidget(time_lbl)

    toggle = QPushButton("Start")
    toggle.clicked.connect(on_toggle)
    lay.addWidget(toggle)

    end = QPushButton("End")
    end.clicked.connect(on_end)
    lay.addWidget(end)

    skip = QPushButton("Skip")
    skip.clicked.connect(on_skip)
    lay.addWidget(skip)

    extend = QPushButton(f"+{extend_minutes:g} Min")
    extend.clicked.connect(on_extend)
    lay.addWidget(extend)

    reset = QPushButton("↺")
    reset.setToolTip("Reset without saving")
    reset.clicked.connect(on_reset)
    lay.addWidget(reset)

    # Buttons never take focus so Space stays the window's start/stop key
    for btn in (mode, toggle, end, skip, extend, reset):
        btn.setFocusPolicy(Qt.NoFocus)

    detail = QHBoxLayout()
    detail.setSpacing(4)
    outer.addLayout(detail)

    minutes = QLineEdit()
    minutes.setPlaceholderText("Minutes")
    minutes.setToolTip("Countdown length in minutes, Enter to apply")
    minutes.setMaximumWidth(70)
    minutes.returnPressed.connect(lambda: on_target(minutes.text()))
    detail.addWidget(minutes)

    notes = QLineEdit()
    notes.setPlaceholderText("Session notes...")
    notes.textEdited.connect(on_notes)
    detail.addWidget(notes, 2)

    task = QLineEdit()
    task.setPlaceholderText("Finished a task? Enter to log it")

    def submit_task():
        title = task.text().strip()
        if title:
            on_task(title)
        task.clear()

    task.returnPressed.connect(submit_task)
    detail.addWidget(task, 1)

    return rc, {
        "name": name, "mode": mode, "time": time_lbl, "toggle": toggle,
        "end": end, "skip": skip, "extend": extend, "reset": reset,
        "minutes": minutes, "notes": notes, "task": task,
        "color": category.get("color", "#3b82f6"),
    }


# Pushes one category's state into its row widgets. Text fields the user is typing in are left alone.
def refresh_category_row(w, state, now, settings, notes=""):
    on_break = state.status == TimerStatus.BREAK
    countdown = state.mode == TimerMode.COUNTDOWN
    w["time"].setText(timer_text(state, now, settings))
    w["time"].setStyleSheet(f"color: {BREAK_COLOR};" if on_break else "")
    w["toggle"].setText(toggle_label(state))
    w["mode"].setText("Countdown" if countdown else "Flow")
    w["mode"].setEnabled(not state.chain_open)
    w["end"].setEnabled(state.chain_open)
    w["skip"].setVisible(on_break)
    w["extend"].setVisible(on_break)
    w["minutes"].setVisible(countdown)
    w["minutes"].setEnabled(countdown and not state.chain_open)
    if not w["minutes"].hasFocus():
        w["minutes"].setText(f"{countdown_target(state, settings) / 60_000:g}")
    if not w["notes"].hasFocus() and w["notes"].text() != notes:
        w["notes"].setText(notes)
    w["task"].setEnabled(state.status != TimerStatus.IDLE)
