"""Main window for the LYLA chat client."""

from __future__ import annotations

from typing import Callable

from PySide6.QtCore import Qt, QTimer, Signal, Slot
from PySide6.QtGui import QGuiApplication
from PySide6.QtWidgets import (
    QFrame,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from ..audio.recognizer import build_recognizer
from ..audio.speech import build_speaker
from ..config.settings import AppSettings
from ..config.store import load_settings
from ..core.logger import transport as log
from ..runtime.controller import SessionController
from ..runtime.loop import LoopThread
from ..runtime.output import OutputActions
from ..services.api import LylaAPI
from ..services.schemas import ChatMessage, Role
from ..state.app_state import SessionState, SessionView
from . import theme


class _MessageBubble(QWidget):
    """One transcript entry, with copy/speak buttons on assistant messages."""

    def __init__(
        self,
        text: str,
        *,
        from_user: bool,
        on_copy: Callable[[], None] | None = None,
        on_speak: Callable[[], None] | None = None,
    ) -> None:
        super().__init__()
        outer = QHBoxLayout(self)
        outer.setContentsMargins(0, 0, 0, 0)
        frame = QFrame()
        colour = theme.USER_BUBBLE if from_user else theme.ASSISTANT_BUBBLE
        frame.setStyleSheet(f"QFrame {{ background: {colour}; border-radius: 16px; }}")
        frame.setMaximumWidth(520)
        layout = QVBoxLayout(frame)
        layout.setContentsMargins(14, 8, 14, 8)
        layout.setSpacing(4)

        self._label = QLabel(text)
        self._label.setWordWrap(True)
        self._label.setTextInteractionFlags(Qt.TextInteractionFlag.TextSelectableByMouse)
        layout.addWidget(self._label)

        if on_copy is not None or on_speak is not None:
            row = QHBoxLayout()
            row.setSpacing(6)
            if on_copy is not None:
                copy_btn = QPushButton("📋")
                copy_btn.setToolTip("Copy")
                copy_btn.setFlat(True)
                copy_btn.clicked.connect(on_copy)
                row.addWidget(copy_btn)
            if on_speak is not None:
                speak_btn = QPushButton("🔊")
                speak_btn.setToolTip("Read aloud")
                speak_btn.setFlat(True)
                speak_btn.clicked.connect(on_speak)
                row.addWidget(speak_btn)
            row.addStretch(1)
            layout.addLayout(row)

        if from_user:
            outer.addStretch(1)
            outer.addWidget(frame, 0, Qt.AlignmentFlag.AlignRight)
        else:
            outer.addWidget(frame, 0, Qt.AlignmentFlag.AlignLeft)
            outer.addStretch(1)

    def set_text(self, text: str) -> None:
        self._label.setText(text)


class ChatWindow(QMainWindow):
    """Renders session snapshots and forwards user actions to the controller."""

    _state_changed = Signal(object)
    _notice = Signal(str)
    _submit_rejected = Signal()

    def __init__(self, settings: AppSettings | None = None) -> None:
        super().__init__()
        self.settings = settings or load_settings()
        ui = self.settings.ui
        self.setWindowTitle(ui.title)
        self.resize(ui.width, ui.height)

        self.runner = LoopThread()
        self.api = LylaAPI(self.settings.server)
        self.controller = SessionController(
            SessionState.create(),
            self.api.stream_reply,
            recognizer=build_recognizer(self.settings.voice),
            notify=self._notice.emit,
            language=self.settings.voice.language,
        )
        self.actions = OutputActions(
            clipboard=self._write_clipboard,
            speaker=build_speaker(self.settings.speech),
        )
        self._rendered = 0
        self._busy = False
        self._sent_draft: str | None = None

        self._header = QLabel(f"🤖 {ui.title}")
        self._header.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._header.setStyleSheet("font-size: 22px; font-weight: 700; padding: 12px;")

        self._messages = QWidget()
        self._messages_layout = QVBoxLayout(self._messages)
        self._messages_layout.setSpacing(10)
        self._messages_layout.addStretch(1)
        self._pending = _MessageBubble("", from_user=False)
        self._pending.hide()
        self._messages_layout.addWidget(self._pending)

        self._scroll = QScrollArea()
        self._scroll.setWidgetResizable(True)
        self._scroll.setWidget(self._messages)
        self._scroll.setFrameShape(QFrame.Shape.NoFrame)

        self._input = QLineEdit()
        self._input.setPlaceholderText(ui.placeholder)
        self._input.textChanged.connect(self._on_text_changed)
        self._input.returnPressed.connect(self._on_send)

        self._mic_button = QPushButton("🎤")
        self._mic_button.setToolTip("Voice input")
        self._mic_button.clicked.connect(self._on_mic)

        self._send_button = QPushButton("Send")
        self._send_button.clicked.connect(self._on_send)

        self._build_layout()
        self._state_changed.connect(self._render)
        self._notice.connect(self._show_notice)
        self._submit_rejected.connect(self._forget_sent_draft)
        self.controller.subscribe(self._state_changed.emit)
        self._render(self.controller.snapshot())

    # ------------------------------------------------------------------ #
    # UI construction
    # ------------------------------------------------------------------ #
    def _build_layout(self) -> None:
        container = QWidget()
        layout = QVBoxLayout(container)
        layout.setContentsMargins(16, 8, 16, 16)
        layout.setSpacing(12)
        layout.addWidget(self._header)
        layout.addWidget(self._scroll, 1)

        footer = QHBoxLayout()
        footer.setSpacing(8)
        footer.addWidget(self._input, 1)
        footer.addWidget(self._mic_button)
        footer.addWidget(self._send_button)
        layout.addLayout(footer)
        self.setCentralWidget(container)

    # ------------------------------------------------------------------ #
    # Rendering
    # ------------------------------------------------------------------ #
    @Slot(object)
    def _render(self, view: SessionView) -> None:
        self.setStyleSheet(
            f"QMainWindow {{ background-color: {theme.mood_color(view.mood)}; }}"
            " QWidget { color: white; }"
            " QLineEdit { background: rgba(255, 255, 255, 0.2); border-radius: 10px; padding: 6px; }"
        )
        for message in view.transcript[self._rendered :]:
            self._append_bubble(message)
        self._rendered = len(view.transcript)

        if view.pending:
            self._pending.set_text(view.pending)
            self._pending.show()
        else:
            self._pending.hide()

        if self._sent_draft is not None and self._accepted(view):
            if self._input.text() == self._sent_draft:
                self._input.blockSignals(True)
                self._input.clear()
                self._input.blockSignals(False)
            self._sent_draft = None
        self._busy = view.busy
        self._send_button.setEnabled(theme.can_send(self._input.text(), view.busy))
        self._mic_button.setEnabled(theme.can_listen(view.busy, view.listening))
        self._mic_button.setText("⏹" if view.listening else "🎤")
        self._mic_button.setStyleSheet(
            f"QPushButton {{ background: {theme.mic_color(view.listening)}; border-radius: 16px; padding: 8px; }}"
        )
        QTimer.singleShot(0, self._scroll_to_bottom)

    def _append_bubble(self, message: ChatMessage) -> None:
        if message.role is Role.USER:
            bubble = _MessageBubble(message.content, from_user=True)
        else:
            content = message.content
            bubble = _MessageBubble(
                content,
                from_user=False,
                on_copy=lambda: self.actions.copy_to_clipboard(content),
                on_speak=lambda: self.actions.read_aloud(content),
            )
        # keep the pending bubble last
        self._messages_layout.insertWidget(self._messages_layout.count() - 1, bubble)

    def _accepted(self, view: SessionView) -> bool:
        """The text submission is in the transcript (its draft was cleared)."""
        return not view.draft_input and any(
            message.role is Role.USER and message.content == self._sent_draft
            for message in view.transcript[-2:]
        )

    def _scroll_to_bottom(self) -> None:
        bar = self._scroll.verticalScrollBar()
        bar.setValue(bar.maximum())

    @Slot(str)
    def _show_notice(self, message: str) -> None:
        QMessageBox.warning(self, "LYLA", message)

    # ------------------------------------------------------------------ #
    # User actions
    # ------------------------------------------------------------------ #
    def _on_text_changed(self, text: str) -> None:
        self._send_button.setEnabled(theme.can_send(text, self._busy))
        self.runner.call(self.controller.set_draft, text)

    def _on_send(self) -> None:
        draft = self._input.text()
        if not theme.can_send(draft, self._busy):
            return
        self._sent_draft = draft
        self.runner.submit(self.controller.submit_draft()).add_done_callback(self._on_submit_done)

    def _on_submit_done(self, future) -> None:
        # runs on the loop thread
        if not future.cancelled() and future.exception() is None and future.result() is False:
            self._submit_rejected.emit()

    @Slot()
    def _forget_sent_draft(self) -> None:
        self._sent_draft = None

    def _on_mic(self) -> None:
        self.runner.call(self.controller.voice.toggle)

    @staticmethod
    def _write_clipboard(text: str) -> None:
        clipboard = QGuiApplication.clipboard()
        if clipboard is None:
            raise RuntimeError("clipboard unavailable")
        clipboard.setText(text)

    def closeEvent(self, event) -> None:  # type: ignore[override]
        self.runner.call(self.controller.voice.stop)
        try:
            self.runner.submit(self.api.close()).result(timeout=2)
        except Exception:
            log.exception("closing the endpoint client failed")
        self.runner.shutdown()
        self.actions.shutdown()
        super().closeEvent(event)
