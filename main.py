"""Application entrypoint."""

from __future__ import annotations

import sys
import threading

from clipboard import PyperclipSink
from config import HOTKEY_FLOWS, TRANSLATOR_INSTRUCTIONS, JsonConfigStore
from dispatcher import HotkeyDispatcher
from hotkey import GlobalHotkeyAdapter, is_valid_chord
from logger import configure_logging, get_logger, shutdown_logging
from models import FlowKind, SessionState
from notification_queue import NotificationQueue
from overlay import NotificationBubble, QtNotificationView
from recorder import SoundDeviceRecorder
from responder import backend_warning, create_responder
from response_pipeline import FlowSpec, ResponsePipeline
from screen_capture import FocusedWindowCapture
from text_recognizer import TesseractRecognizer
from transcriber import create_transcriber

try:
    from PySide6.QtCore import QObject, Signal, QSize
    from PySide6.QtGui import QAction, QIcon, QPixmap, QPainter, QColor, QBrush
    from PySide6.QtWidgets import QApplication, QInputDialog, QLineEdit, QMenu, QMessageBox, QSystemTrayIcon
except Exception as exc:  # pragma: no cover
    raise SystemExit(f"PySide6 is required to run the desktop app: {exc}")

logger = get_logger(__name__)


def _create_icon(color: str = "#888888", size: int = 22) -> QIcon:
    """Generate a simple circular tray icon with the given color."""
    pixmap = QPixmap(QSize(size, size))
    pixmap.fill(QColor(0, 0, 0, 0))  # transparent background
    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.Antialiasing, True)
    painter.setBrush(QBrush(QColor(color)))
    painter.setPen(QColor(color))
    painter.drawEllipse(2, 2, size - 4, size - 4)
    painter.end()
    return QIcon(pixmap)


ICON_IDLE = "#888888"        # grey
ICON_RECORDING = "#FF4444"   # red
ICON_PROCESSING = "#3C8DFF"  # blue
ICON_ERROR = "#FF8800"       # orange

RECORD_LABEL = "🎤 Record voice"
STOP_LABEL = "⏹ Stop recording"


class UIBridge(QObject):
    state_signal = Signal(str, str, str)  # chord, from_state, to_state
    busy_signal = Signal(bool)


class App:
    def __init__(self) -> None:
        self.app = QApplication(sys.argv)
        self.app.setQuitOnLastWindowClosed(False)
        self.config_store = JsonConfigStore()
        self.config = self.config_store.load()
        configure_logging(self.config.log_level)

        self.ui = UIBridge()
        self.ui.state_signal.connect(self._on_state_change_ui)
        self.ui.busy_signal.connect(self._on_busy_ui)

        self.bubble = NotificationBubble()
        self.notifications = NotificationQueue(
            QtNotificationView(self.bubble),
            dwell_s=self.config.notification_dwell_s,
        )
        self.bubble.set_on_click(self.notifications.dismiss_current)

        self.dispatcher = self._build_dispatcher()
        self.hotkey = GlobalHotkeyAdapter(self.dispatcher.chords)
        self._recording: set[str] = set()
        self._busy = False

        self.tray = QSystemTrayIcon()
        self.tray.setIcon(_create_icon(ICON_IDLE))
        self.tray.setToolTip("Mic GPT — Ready")
        self._setup_menu()
        self.tray.show()

    def _build_dispatcher(self) -> HotkeyDispatcher:
        cfg = self.config
        clipboard = PyperclipSink()
        self.responder = create_responder(cfg)
        pipeline = ResponsePipeline(
            transcriber=create_transcriber(cfg),
            responder=self.responder,
            notifier=self.notifications,
            clipboard=clipboard,
        )
        flows = {
            cfg.assistant_hotkey: FlowSpec(FlowKind.ASSISTANT),
            cfg.translate_hotkey: FlowSpec(FlowKind.TRANSLATE, instructions=TRANSLATOR_INSTRUCTIONS),
            cfg.ocr_hotkey: FlowSpec(FlowKind.OCR),
        }
        return HotkeyDispatcher(
            flows=flows,
            audio_capture=SoundDeviceRecorder(),
            screen_capture=FocusedWindowCapture(),
            text_recognizer=TesseractRecognizer(),
            pipeline=pipeline,
            notifier=self.notifications,
            clipboard=clipboard,
            screenshot_timeout_s=cfg.screenshot_timeout_s,
            on_state_change=self._on_state_change,
            on_busy_change=self.ui.busy_signal.emit,
        )

    def _setup_menu(self) -> None:
        menu = QMenu()

        self.record_action = QAction(RECORD_LABEL, menu)
        self.record_action.triggered.connect(lambda: self.dispatcher.toggle(self.config.assistant_hotkey))
        menu.addAction(self.record_action)

        screenshot_action = QAction("📸 Take screenshot", menu)
        screenshot_action.triggered.connect(lambda: self.dispatcher.key_down(self.config.ocr_hotkey))
        menu.addAction(screenshot_action)

        menu.addSeparator()
        api_action = QAction("Set OpenAI API Key", menu)
        api_action.triggered.connect(self._set_api_key)
        menu.addAction(api_action)

        hotkey_action = QAction("Set Hotkeys", menu)
        hotkey_action.triggered.connect(self._set_hotkeys)
        menu.addAction(hotkey_action)

        menu.addSeparator()
        quit_action = QAction("Quit", menu)
        quit_action.triggered.connect(self.quit)
        menu.addAction(quit_action)

        self.tray.setContextMenu(menu)

    def _set_api_key(self) -> None:
        value, ok = QInputDialog.getText(None, "API Key", "OpenAI API Key")
        if not ok:
            return
        self.config_store.set_api_key(value)
        QMessageBox.information(None, "Saved", "API Key saved. Restart app to apply.")

    def _set_hotkeys(self) -> None:
        changed = False
        for flow in HOTKEY_FLOWS:
            current = self.config_store.get_hotkey(flow)
            value, ok = QInputDialog.getText(
                None, "Hotkeys", f"{flow.title()} hotkey", QLineEdit.EchoMode.Normal, current
            )
            if not ok:
                return
            value = value.strip()
            if value == current:
                continue
            if not is_valid_chord(value):
                QMessageBox.warning(None, "Invalid hotkey", f"Cannot parse hotkey: {value}")
                return
            self.config_store.set_hotkey(flow, value)
            changed = True
        if changed:
            QMessageBox.information(None, "Saved", "Hotkeys saved. Restart app to apply.")

    # ------------------------------------------------------------------
    # Callbacks (called from worker threads → emit signals for UI thread)
    # ------------------------------------------------------------------

    def _on_state_change(self, chord: str, from_state: SessionState, to_state: SessionState) -> None:
        self.ui.state_signal.emit(chord, from_state.value, to_state.value)

    # ------------------------------------------------------------------
    # UI thread handlers (safe for Qt)
    # ------------------------------------------------------------------

    def _on_state_change_ui(self, chord: str, from_state: str, to_state: str) -> None:
        if to_state == SessionState.RECORDING.value:
            self._recording.add(chord)
        else:
            self._recording.discard(chord)
        if chord == self.config.assistant_hotkey:
            self.record_action.setText(STOP_LABEL if chord in self._recording else RECORD_LABEL)
        if to_state == SessionState.FAILED.value:
            self.tray.setIcon(_create_icon(ICON_ERROR))
            return
        self._refresh_icon()

    def _on_busy_ui(self, busy: bool) -> None:
        self._busy = busy
        self._refresh_icon()

    def _refresh_icon(self) -> None:
        if self._recording:
            self.tray.setIcon(_create_icon(ICON_RECORDING))
            self.tray.setToolTip("Mic GPT — Recording...")
        elif self._busy:
            self.tray.setIcon(_create_icon(ICON_PROCESSING))
            self.tray.setToolTip("Mic GPT — Processing...")
        else:
            self.tray.setIcon(_create_icon(ICON_IDLE))
            self.tray.setToolTip("Mic GPT — Ready")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def run(self) -> int:
        try:
            self.hotkey.start(
                on_press=self.dispatcher.key_down,
                on_release=self.dispatcher.key_up,
            )
        except Exception as exc:
            logger.error("Hotkeys disabled: %s", exc)
            self.notifications.enqueue(f"❌ Hotkeys disabled: {exc}")
        threading.Thread(target=self._check_backend, name="backend-check", daemon=True).start()
        return self.app.exec()

    def _check_backend(self) -> None:
        warning = backend_warning(self.responder)
        if warning:
            logger.warning("Response backend unavailable at startup")
            self.notifications.enqueue(warning)

    def quit(self) -> None:
        self.hotkey.stop()
        self.dispatcher.shutdown(wait=False)
        close = getattr(self.responder, "close", None)
        if close is not None:
            close()
        self.notifications.close()
        shutdown_logging()
        self.app.quit()


def main() -> int:
    app = App()
    return app.run()


if __name__ == "__main__":
    raise SystemExit(main())
