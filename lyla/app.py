"""Entry point for the PySide6 chat client."""

from __future__ import annotations

from PySide6.QtWidgets import QApplication

from .config.settings import AppSettings
from .ui.main_window import ChatWindow


def run(settings: AppSettings | None = None) -> int:
    """Start the chat UI and block until the window closes."""
    app = QApplication.instance() or QApplication([])
    window = ChatWindow(settings)
    window.show()
    return app.exec()
