import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import List, Optional

from PySide6.QtCore import QCoreApplication, QThreadPool

from src.dockchat.app.event_bus import EventBus
from src.dockchat.config import CANCEL_DRAIN_SECONDS, REQUEST_TIMEOUT_SECONDS
from src.dockchat.executor.apply_engine import ApplyEngine
from src.dockchat.executor.prompt_builder import PromptBuilder
from src.dockchat.executor.response_extractor import ResponseExtractor
from src.dockchat.executor.transcript_sanitizer import TranscriptSanitizer
from src.dockchat.models.dialect import DEFAULT_DIALECT
from src.dockchat.models.event_types import (
    APP_SHUTDOWN,
    APP_START,
    APPLY_AVAILABILITY_CHANGED,
    MESSAGE_ADDED,
    SCRIPTS_FOUND,
    SEND_USER_MESSAGE,
    TRANSCRIPT_CLEARED,
)
from src.dockchat.models.events import Event
from src.dockchat.models.session import ConversationMode
from src.dockchat.services.chat_controller import ChatController
from src.dockchat.services.logging_service import LoggingService
from src.dockchat.services.request_lifecycle import RequestLifecycleController
from src.dockchat.services.session_state import SessionState
from src.dockchat.services.transport import RequestsTransport
from src.dockchat.services.user_settings_manager import (
    get_current_mode,
    load_user_settings,
    resolve_api_key,
    update_mode,
)
from src.dockchat.worker import ApplyWorker


HELP_TEXT = (
    "Commands: /attach <path>, /mode ask|composer, /apply, /clear, /help, /quit. "
    "Anything else is sent to Claude."
)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse the console host's command line.

    Args:
        argv: Optional list of CLI arguments to inspect.

    Returns:
        The parsed namespace with ``project``, ``attach`` and ``mode``.
    """
    parser = argparse.ArgumentParser(description="Chat with Claude about a Godot project.")
    parser.add_argument("--project", default=".", help="Godot project root (what res:// maps to).")
    parser.add_argument("--attach", action="append", default=[], help="Scene file to attach at startup.")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in ConversationMode],
        help="Start in this mode instead of the persisted one.",
    )
    args, _ = parser.parse_known_args(argv)
    return args


class DockChatApp:
    """
    Console host for the chat dock.

    Reads lines from stdin, routes slash commands to the chat controller and
    prints every transcript line the controller emits.
    """

    def __init__(self, argv: Optional[List[str]] = None):
        LoggingService.setup_logging()
        logging.info("Initializing DockChatApp...")

        self.args = parse_args(sys.argv[1:] if argv is None else argv)
        self.project_root = Path(self.args.project).expanduser().resolve()

        self.app = QCoreApplication.instance() or QCoreApplication(sys.argv)
        self.app.setOrganizationName("DockChat")
        self.app.setApplicationName("DockChat")

        self.event_bus = EventBus()

        settings = load_user_settings()
        settings["api_key"] = resolve_api_key(settings)
        mode = ConversationMode(self.args.mode) if self.args.mode else get_current_mode(settings)

        self.transport = RequestsTransport(timeout=REQUEST_TIMEOUT_SECONDS)
        self.lifecycle = RequestLifecycleController(self.transport)
        self.apply_engine = ApplyEngine(
            self.project_root,
            DEFAULT_DIALECT,
            report=self._report_apply_step,
        )
        self.controller = ChatController(
            self.event_bus,
            SessionState(mode),
            PromptBuilder(DEFAULT_DIALECT, model_name=settings["model_name"]),
            self.lifecycle,
            ResponseExtractor(DEFAULT_DIALECT),
            TranscriptSanitizer(DEFAULT_DIALECT),
            self.apply_engine,
            settings,
            persist_mode=update_mode,
            apply_runner=self._run_apply_in_background,
        )

        self._stdin_thread: Optional[threading.Thread] = None
        self._register_event_handlers()
        logging.info("DockChatApp initialized for project root %s", self.project_root)

    def _register_event_handlers(self):
        self.event_bus.subscribe(APP_START, self.on_app_start)
        self.event_bus.subscribe(APP_SHUTDOWN, self._handle_shutdown)
        self.event_bus.subscribe(SEND_USER_MESSAGE, self._handle_user_input)
        self.event_bus.subscribe(MESSAGE_ADDED, self._print_message)
        self.event_bus.subscribe(APPLY_AVAILABILITY_CHANGED, self._print_apply_hint)
        self.event_bus.subscribe(SCRIPTS_FOUND, self._log_scripts_found)
        self.event_bus.subscribe(TRANSCRIPT_CLEARED, self._print_separator)

    # ------------------------------------------------------------------ Wiring

    def _report_apply_step(self, text: str) -> None:
        # Runs on the apply worker; the bus delivers on the main thread.
        self.controller.post_system(text)

    def _run_apply_in_background(self, job) -> None:
        QThreadPool.globalInstance().start(ApplyWorker(job, self.event_bus))

    def _read_stdin(self):
        for line in sys.stdin:
            self.event_bus.dispatch(Event(event_type=SEND_USER_MESSAGE, payload={"text": line.rstrip("\r\n")}))
        self.event_bus.dispatch(Event(event_type=APP_SHUTDOWN))

    # ------------------------------------------------------------------ Output

    def _print_message(self, event: Event) -> None:
        payload = event.payload or {}
        print(f"{payload.get('sender', 'System')}: {payload.get('text', '')}", flush=True)

    def _print_apply_hint(self, event: Event) -> None:
        if (event.payload or {}).get("available"):
            print("[apply available: type /apply]", flush=True)

    def _log_scripts_found(self, event: Event) -> None:
        logging.info("Response carried %s script(s).", (event.payload or {}).get("count", 0))

    def _print_separator(self, event: Event) -> None:
        print("-" * 40, flush=True)

    # ------------------------------------------------------------------ Input

    def _handle_user_input(self, event: Event) -> None:
        text = ((event.payload or {}).get("text") or "").strip()
        if not text:
            return
        if not text.startswith("/"):
            self.controller.send_message(text)
            return

        parts = text.split(maxsplit=1)
        command = parts[0].lower()
        argument = parts[1].strip() if len(parts) > 1 else ""

        if command == "/apply":
            self.controller.apply_changes()
        elif command == "/attach":
            if not argument:
                self.controller.post_system("Usage: /attach <path to .tscn>")
                return
            self.controller.attach_document(argument)
        elif command == "/mode":
            try:
                mode = ConversationMode(argument.lower())
            except ValueError:
                self.controller.post_system("Usage: /mode ask|composer")
                return
            self.controller.set_mode(mode)
        elif command == "/clear":
            self.controller.set_mode(self.controller.session.mode)
        elif command == "/help":
            self.controller.post_system(HELP_TEXT)
        elif command in ("/quit", "/exit"):
            self.event_bus.dispatch(Event(event_type=APP_SHUTDOWN))
        else:
            logging.debug("Unknown command '%s'", command)
            self.controller.post_system(f"Unknown command: {command}. {HELP_TEXT}")

    # ------------------------------------------------------------------ Lifecycle

    def on_app_start(self, event):
        logging.info(f"DockChatApp caught event: {event.event_type}")
        self.controller.start()
        for path in self.args.attach:
            self.controller.attach_document(path)
        self.controller.post_system(HELP_TEXT)

    def _handle_shutdown(self, event):
        logging.info("Shutting down DockChatApp...")
        self.lifecycle.cancel()
        self.transport.wait_for_drain(CANCEL_DRAIN_SECONDS)
        QThreadPool.globalInstance().waitForDone()
        self.app.quit()

    def run(self):
        """Starts the stdin reader and the event loop."""
        logging.info("Starting DockChat console...")
        self.event_bus.dispatch(Event(event_type=APP_START))
        self._stdin_thread = threading.Thread(target=self._read_stdin, name="dockchat-stdin", daemon=True)
        self._stdin_thread.start()
        sys.exit(self.app.exec())


def main():
    DockChatApp().run()
