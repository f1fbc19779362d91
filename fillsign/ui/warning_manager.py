"""
Confirmation prompts for actions that throw away placed annotations.
"""
from enum import Enum
from typing import Dict, Set

from PyQt5.QtWidgets import QCheckBox, QMessageBox, QWidget


class WarningType(Enum):
    """Confirmations the user can silence for the rest of the session."""
    CLEAR_ANNOTATIONS = "clear_annotations"
    SWITCH_SOURCE = "switch_source"


class WarningManager:
    """
    Remembers which confirmations were silenced and what was answered.

    A silenced confirmation returns the answer given when it was silenced.
    """

    def __init__(self):
        self._suppressed: Set[WarningType] = set()
        self._answers: Dict[WarningType, bool] = {}

    def is_suppressed(self, warning_type: WarningType) -> bool:
        return warning_type in self._suppressed

    def suppress(self, warning_type: WarningType, answer: bool = True) -> None:
        self._suppressed.add(warning_type)
        self._answers[warning_type] = answer

    def reset(self) -> None:
        self._suppressed.clear()
        self._answers.clear()

    def confirm(self, parent: QWidget, warning_type: WarningType,
                title: str, message: str, show_dont_ask: bool = True) -> bool:
        """
        Ask a Yes/No question unless it has been silenced.

        Args:
            parent: Parent widget of the dialog
            warning_type: Which confirmation this is
            title: Dialog title
            message: Question text
            show_dont_ask: Offer a "don't ask again" checkbox

        Returns:
            True if the user agreed
        """
        if self.is_suppressed(warning_type):
            return self._answers.get(warning_type, True)

        box = QMessageBox(parent)
        box.setIcon(QMessageBox.Question)
        box.setWindowTitle(title)
        box.setText(message)
        box.setStandardButtons(QMessageBox.Yes | QMessageBox.No)
        box.setDefaultButton(QMessageBox.No)

        dont_ask = None
        if show_dont_ask:
            dont_ask = QCheckBox("Don't ask again this session")
            box.setCheckBox(dont_ask)

        answer = box.exec_() == QMessageBox.Yes
        if dont_ask is not None and dont_ask.isChecked():
            self.suppress(warning_type, answer)
        return answer
