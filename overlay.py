"""Notification bubble window and the thread-safe view bridge in front of it."""

from __future__ import annotations

from typing import Callable, Optional

try:
    from PySide6.QtCore import QObject, Qt, Signal
    from PySide6.QtWidgets import QApplication, QLabel, QVBoxLayout, QWidget
except Exception:  # pragma: no cover
    QObject = object  # type: ignore
    Qt = None  # type: ignore
    Signal = None  # type: ignore
    QApplication = None  # type: ignore
    QLabel = object  # type: ignore
    QVBoxLayout = object  # type: ignore
    QWidget = object  # type: ignore

_BASE_STYLE = (
    "font-size: 14px; padding: 14px;"
    "background: rgba(0,0,0,200); border-radius: 12px;"
)
_TEXT_STYLE = "color: white;" + _BASE_STYLE
_ERROR_STYLE = "color: #FF6B6B;" + _BASE_STYLE


class NotificationBubble(QWidget):
    """Frameless top-right bubble; a click dismisses the current message."""

    def __init__(self, on_click: Optional[Callable[[], None]] = None) -> None:
        if Qt is None:
            raise RuntimeError("PySide6 is not installed")
        super().__init__()
        self._on_click = on_click
        self.setWindowFlags(
            Qt.WindowStaysOnTopHint | Qt.FramelessWindowHint | Qt.Tool
        )
        self.setAttribute(Qt.WA_TranslucentBackground, True)
        self.setAttribute(Qt.WA_ShowWithoutActivating, True)
        self.setFixedWidth(380)

        self._label = QLabel("")
        self._label.setWordWrap(True)
        self._label.setStyleSheet(_TEXT_STYLE)

        layout = QVBoxLayout()
        layout.setContentsMargins(0, 0, 0, 0)
        layout.addWidget(self._label)
        self.setLayout(layout)

    def set_on_click(self, on_click: Callable[[], None]) -> None:
        self._on_click = on_click

    def show_text(self, text: str) -> None:
        self._label.setStyleSheet(_ERROR_STYLE if text.startswith("❌") else _TEXT_STYLE)
        self._label.setText(text)
        self._place_top_right()
        self.show()

    def mousePressEvent(self, event) -> None:  # noqa: N802, ANN001
        if self._on_click is not None:
            self._on_click()
        event.accept()

    def _place_top_right(self) -> None:
        """Position the bubble under the menu bar, near the status icon."""
        if QApplication is None:
            return
        screen = QApplication.primaryScreen()
        if screen is None:
            return
        geom = screen.availableGeometry()
        self.adjustSize()
        x = geom.x() + geom.width() - self.width() - 16
        y = geom.y() + 8
        self.move(x, y)


class QtNotificationView(QObject):
    """NotificationView that marshals calls from any thread onto the Qt thread."""

    if Signal is not None:
        show_signal = Signal(str)
        clear_signal = Signal()

    def __init__(self, bubble: NotificationBubble) -> None:
        super().__init__()
        self._bubble = bubble
        self.show_signal.connect(self._bubble.show_text)
        self.clear_signal.connect(self._bubble.hide)

    def show_message(self, text: str) -> None:
        self.show_signal.emit(text)

    def clear(self) -> None:
        self.clear_signal.emit()
