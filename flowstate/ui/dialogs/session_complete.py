"""Session confirmation dialog: collects rating, tags, distractions and notes for a finished session."""

from PySide6.QtCore import Qt
from PySide6.QtGui import QFont
from PySide6.QtWidgets import (
    QDialog,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QPlainTextEdit,
    QPushButton,
    QSpinBox,
    QVBoxLayout,
)
from flowstate.core.session import SessionMetadata
from flowstate.util import format_duration_full

# Opened by MainWindow whenever a session candidate is waiting. `accepted` means Save, `rejected` means Skip, and
# the caller reads metadata()/notes() afterwards.
class SessionCompleteDialog(QDialog):

    def __init__(self, parent, candidate, category_name, tag_choices, distraction_choices, notes=""):
        super().__init__(parent)
        self.setWindowTitle("Session Complete")
        self.setModal(True)

        outer = QVBoxLayout(self)

        title = QLabel(f"{category_name}: {format_duration_full(candidate.duration)} focused")
        title.setFont(QFont("Calibri", 14, QFont.Bold))
        outer.addWidget(title)
        segments = "segment" if candidate.segment_count == 1 else "segments"
        outer.addWidget(QLabel(f"{candidate.segment_count} {segments}"))

        # Rating 0 shows as "Skip" so leaving it alone means no rating
        rating_row = QHBoxLayout()
        rating_row.addWidget(QLabel("Rating"))
        self._rating = QSpinBox()
        self._rating.setRange(0, 5)
        self._rating.setSpecialValueText("Skip")
        rating_row.addWidget(self._rating)
        rating_row.addStretch(1)
        outer.addLayout(rating_row)

        outer.addWidget(QLabel("Tags"))
        self._tags = self._build_checklist(tag_choices)
        outer.addWidget(self._tags)

        outer.addWidget(QLabel("Distractions"))
        self._distractions = self._build_checklist(distraction_choices)
        outer.addWidget(self._distractions)

        self._distraction_note = QLineEdit()
        self._distraction_note.setPlaceholderText("What pulled you away?")
        outer.addWidget(self._distraction_note)

        outer.addWidget(QLabel("Notes"))
        self._notes = QPlainTextEdit(notes)
        outer.addWidget(self._notes)

        btn_row = QHBoxLayout()
        btn_row.addStretch(1)
        skip_btn = QPushButton("Skip")
        skip_btn.clicked.connect(self.reject)
        btn_row.addWidget(skip_btn)
        save_btn = QPushButton("Save")
        save_btn.setDefault(True)
        save_btn.clicked.connect(self.accept)
        btn_row.addWidget(save_btn)
        outer.addLayout(btn_row)

    @staticmethod
    def _build_checklist(choices):
        lst = QListWidget()
        for choice in choices:
            item = QListWidgetItem(choice)
            item.setFlags(item.flags() | Qt.ItemIsUserCheckable)
            item.setCheckState(Qt.Unchecked)
            lst.addItem(item)
        lst.setMaximumHeight(110)
        return lst

    @staticmethod
    def _checked(lst):
        return tuple(lst.item(i).text() for i in range(lst.count())
                     if lst.item(i).checkState() == Qt.Checked)

    def metadata(self):
        return SessionMetadata(
            rating=self._rating.value(),
            tags=self._checked(self._tags),
            distractions=self._checked(self._distractions),
            distraction_note=self._distraction_note.text(),
        )

    def notes(self):
        return self._notes.toPlainText()
