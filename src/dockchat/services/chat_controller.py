"""Chat dock behavior, wired from explicitly injected collaborators."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from src.dockchat.executor.apply_engine import ApplyEngine
from src.dockchat.executor.prompt_builder import PromptBuilder
from src.dockchat.executor.response_extractor import ResponseExtractor
from src.dockchat.executor.transcript_sanitizer import TranscriptSanitizer
from src.dockchat.models.edits import ApplyOutcome, ExtractedEdit
from src.dockchat.models.event_types import (
    APPLY_AVAILABILITY_CHANGED,
    APPLY_FINISHED,
    MESSAGE_ADDED,
    MODE_CHANGED,
    RESPONSE_RECEIVED,
    SCRIPTS_FOUND,
    TRANSCRIPT_CLEARED,
)
from src.dockchat.models.events import Event
from src.dockchat.models.exceptions import (
    ConfigMissingError,
    MalformedResponseError,
    NoActiveTargetError,
    TransportError,
)
from src.dockchat.models.request import TransportResult
from src.dockchat.models.session import ConversationMode, MessageRole
from src.dockchat.services.model_response import decode_response_text
from src.dockchat.services.request_lifecycle import RequestLifecycleController
from src.dockchat.services.session_state import SessionState
from src.dockchat.utils.project_paths import extension, file_name


logger = logging.getLogger(__name__)

SYSTEM_SENDER = "System"
USER_SENDER = "You"
ASSISTANT_SENDER = "Claude"

ApplyJob = Callable[[], ApplyOutcome]


class ChatController:
    """
    Drive one chat session: compose and send requests, interpret replies, and
    apply pending edits.

    Everything the host shows goes out as events (MESSAGE_ADDED,
    APPLY_AVAILABILITY_CHANGED, SCRIPTS_FOUND, ...). Transport completions
    are routed through the bus as RESPONSE_RECEIVED so they are handled on
    the owner thread.
    """

    def __init__(
        self,
        event_bus,
        session: SessionState,
        prompt_builder: PromptBuilder,
        lifecycle: RequestLifecycleController,
        extractor: ResponseExtractor,
        sanitizer: TranscriptSanitizer,
        apply_engine: ApplyEngine,
        settings: Dict[str, Any],
        *,
        persist_mode: Optional[Callable[[ConversationMode], Any]] = None,
        apply_runner: Optional[Callable[[ApplyJob], None]] = None,
    ) -> None:
        self.event_bus = event_bus
        self.session = session
        self.prompt_builder = prompt_builder
        self.lifecycle = lifecycle
        self.extractor = extractor
        self.sanitizer = sanitizer
        self.apply_engine = apply_engine
        self.api_key = str(settings.get("api_key") or "")
        self.api_url = str(settings.get("api_url") or "")
        self.persist_mode = persist_mode
        self.apply_runner = apply_runner

        self.pending_edit = ExtractedEdit()
        self._apply_target: Optional[str] = None
        self._apply_body: Optional[str] = None
        self._apply_in_progress = False

        self._register_event_handlers()

    def _register_event_handlers(self) -> None:
        self.event_bus.subscribe(RESPONSE_RECEIVED, self._handle_response_received)
        self.event_bus.subscribe(APPLY_FINISHED, self._handle_apply_finished)

    # ------------------------------------------------------------------ Startup

    def start(self) -> None:
        self.post_system("Welcome to the Godot Chat with Claude AI!")
        self.post_system(f"Current mode: {self.session.mode.label}")
        if not self.api_key:
            self.post_system("Please configure your Claude API key in the settings file.")
        self._set_apply_available(False)

    # ------------------------------------------------------------------ Sending

    def send_message(self, text: str) -> Optional[str]:
        """
        Record the user's message and issue a request for it.

        Returns:
            The id of the issued request, or None if nothing was sent.
        """
        if not text or not text.strip():
            return None

        self._post(USER_SENDER, text)
        self.session.append(MessageRole.USER, text)

        try:
            self._require_api_key()
        except ConfigMissingError as exc:
            logger.warning("Request skipped: %s", exc)
            self.post_system(str(exc))
            return None

        payload = self.prompt_builder.build_for_session(self.session)
        headers = self.prompt_builder.build_headers(self.api_key)
        self._post_waiting()

        try:
            return self.lifecycle.send(self.api_url, headers, payload.to_body(), self._on_transport_complete)
        except TransportError as exc:
            self.post_system(f"Error sending request to Claude API: {exc}")
            return None

    def _require_api_key(self) -> None:
        if not self.api_key:
            raise ConfigMissingError("Claude API key is not configured. Please set it in the settings file.")

    def _post_waiting(self) -> None:
        if self.session.mode is ConversationMode.ASK:
            self.post_system("Waiting for Claude's response...")
        elif self.session.active_path:
            self.post_system(f"🔄 Processing modifications for {file_name(self.session.active_path)}...")
        else:
            self.post_system("🔄 Processing scene modifications... Please wait.")

    def _on_transport_complete(self, request_id: str, result: TransportResult) -> None:
        # May run on a transport thread; hop to the owner thread through the bus.
        self.event_bus.dispatch(
            Event(event_type=RESPONSE_RECEIVED, payload={"request_id": request_id, "result": result})
        )

    def _handle_response_received(self, event: Event) -> None:
        self.handle_completion(event.payload.get("request_id", ""), event.payload.get("result"))

    # ------------------------------------------------------------------ Receiving

    def handle_completion(self, request_id: str, result: TransportResult) -> None:
        """Interpret a finished exchange. Stale completions are dropped silently."""
        if not self.lifecycle.accept_completion(request_id):
            return

        try:
            text = decode_response_text(result)
        except TransportError as exc:
            logger.error("Request %s failed: %s", request_id, exc)
            self.post_system(str(exc))
            if exc.details:
                self.post_system(f"Error details: {exc.details}")
            return
        except MalformedResponseError as exc:
            logger.error("Malformed response for request %s: %s", request_id, exc)
            self.post_system(str(exc))
            return

        if self.session.mode is ConversationMode.COMPOSER:
            self._process_composer_reply(text)
        else:
            self._post(ASSISTANT_SENDER, text)

        # History keeps the full reply, code blocks included.
        self.session.append(MessageRole.ASSISTANT, text)

    def _process_composer_reply(self, text: str) -> None:
        edit = self.extractor.extract(text, active_path=self.session.active_path)
        display_text = self.sanitizer.sanitize(text)

        for source in edit.source_edits:
            if edit.paths_generated:
                self.post_system(f"📄 Generated script will be saved as: {source.path}")
            else:
                self.post_system(f"📄 Found script: {source.path}")

        self.pending_edit = edit

        if edit.document_body:
            target = file_name(self.session.active_path) if self.session.active_path else "(no scene attached)"
            self.post_system(f"✅ TSCN code ready to apply to: {target}")
        else:
            self.post_system("⚠️ No valid TSCN content found in Claude's response. Cannot modify scene.")

        if edit.source_edits:
            self.post_system(f"✅ Found {len(edit.source_edits)} script file(s) ready to apply")
            self._dispatch(SCRIPTS_FOUND, {"count": len(edit.source_edits)})

        if not edit.is_empty:
            self.post_system("Click 'Apply Changes' to update your files with these modifications.")
        self._set_apply_available(not edit.is_empty)

        self._post(ASSISTANT_SENDER, display_text)

    # ------------------------------------------------------------------ Mode

    def set_mode(self, mode: ConversationMode) -> None:
        """Switch modes; the live request, history, transcript and any pending edit are dropped."""
        mode = ConversationMode(mode)
        self.lifecycle.cancel()
        self.session.set_mode(mode)
        if self.persist_mode is not None:
            try:
                self.persist_mode(mode)
            except Exception as exc:
                logger.error("Failed to persist mode %s: %s", mode.value, exc, exc_info=True)

        self.pending_edit = ExtractedEdit()
        self._dispatch(TRANSCRIPT_CLEARED, {})
        self._dispatch(MODE_CHANGED, {"mode": mode.value})

        self.post_system(f"Switched to {mode.label}")
        if mode is ConversationMode.COMPOSER:
            self.post_system(f"Attach a .{self.extractor.dialect.document_extension} file to get started with modifications.")
        self._set_apply_available(False)

    # ------------------------------------------------------------------ Attachments

    def attach_document(self, path: str) -> bool:
        """
        Read and attach a scene file chosen by the user.

        In Composer mode the document also becomes the active target.

        Returns:
            True if the document was attached.
        """
        dialect = self.extractor.dialect
        name = file_name(path)
        ext = extension(path)
        if ext != dialect.document_extension:
            if ext == "blend":
                self.post_system("Error: .blend files cannot be used directly. Godot needs to import them first.")
                self.post_system("Please use a .tscn file that has been created from an imported .blend file.")
            else:
                self.post_system(f"Error: Only .{dialect.document_extension} files are supported for attachment.")
                self.post_system(
                    f"The selected file ({name}) has extension .{ext} which cannot be processed."
                )
            return False

        resolved = self.apply_engine.resolve_path(path)
        try:
            content = self._read_document(resolved)
        except (OSError, UnicodeError) as exc:
            logger.warning("Failed to load %s: %s", resolved, exc)
            self.post_system(f"Failed to load file: {name}")
            return False

        if not dialect.is_document_content(content):
            self.post_system("Error: The file does not appear to be a valid TSCN file.")
            self.post_system("Please select a different file.")
            return False

        # Keep namespaced paths as given; pin everything else to an absolute location.
        key = path if dialect.namespace and path.startswith(dialect.namespace) else str(resolved)
        replaced = self.session.attach(key, content)
        if self.session.mode is ConversationMode.COMPOSER:
            self.session.designate_active(key)

        self.post_system(f"✅ Attached scene: {name}" + (" (updated)" if replaced else ""))
        if self.session.mode is ConversationMode.COMPOSER:
            self.post_system("Now you can ask Claude to modify this scene. Be specific about what changes you want.")
        return True

    @staticmethod
    def _read_document(path: Path) -> str:
        with open(path, "r", encoding="utf-8", newline="") as handle:
            return handle.read()

    # ------------------------------------------------------------------ Apply

    def apply_changes(self) -> None:
        """Apply the pending edit, inline or through the configured runner."""
        if self._apply_in_progress:
            self.post_system("Changes are already being applied.")
            return

        try:
            active_path = self._require_active_target()
        except NoActiveTargetError as exc:
            logger.warning("Apply requested without an active document.")
            self.post_system(str(exc))
            return

        if self.pending_edit.is_empty:
            self.post_system("No changes were applied. Make sure Claude generated valid content.")
            return

        edit = self.pending_edit
        self._apply_target = active_path
        self._apply_body = edit.document_body
        self._apply_in_progress = True

        def job() -> ApplyOutcome:
            return self.apply_engine.apply(edit, active_path)

        if self.apply_runner is None:
            try:
                outcome = job()
            except NoActiveTargetError as exc:
                self._apply_in_progress = False
                self.post_system(str(exc))
                return
            self.finish_apply(outcome)
        else:
            self.apply_runner(job)

    def _require_active_target(self) -> str:
        active_path = self.session.active_path
        if not active_path:
            raise NoActiveTargetError("Error: No file is attached. Please attach a TSCN file first.")
        return active_path

    def _handle_apply_finished(self, event: Event) -> None:
        outcome = event.payload.get("outcome")
        if outcome is None:
            self._apply_in_progress = False
            self.post_system(f"Applying changes failed: {event.payload.get('error') or 'unknown error'}")
            return
        self.finish_apply(outcome)

    def finish_apply(self, outcome: ApplyOutcome) -> None:
        """Report an apply outcome and settle session state."""
        self._apply_in_progress = False

        if outcome.document_applied and self._apply_target and self._apply_body is not None:
            self.session.refresh_document(self._apply_target, self._apply_body)

        if outcome.sources_failed:
            self.post_system(f"❌ {len(outcome.sources_failed)} script file(s) could not be saved.")

        if outcome.any_applied:
            if outcome.sources_applied:
                self.post_system(f"Created/updated {outcome.sources_applied} script files.")
            self.post_system("To see the changes in the editor, close and reopen the scene.")
            self._set_apply_available(not self.pending_edit.is_empty)
        else:
            self.post_system("No changes were applied. Make sure Claude generated valid content.")

        self._apply_target = None
        self._apply_body = None

    # ------------------------------------------------------------------ Host callbacks

    def post_system(self, text: str) -> None:
        self._post(SYSTEM_SENDER, text)

    def _post(self, sender: str, text: str) -> None:
        self._dispatch(MESSAGE_ADDED, {"sender": sender, "text": text})

    def _set_apply_available(self, available: bool) -> None:
        self._dispatch(APPLY_AVAILABILITY_CHANGED, {"available": available})

    def _dispatch(self, event_type: str, payload: Dict[str, Any]) -> None:
        try:
            self.event_bus.dispatch(Event(event_type=event_type, payload=payload))
        except Exception:
            logger.debug("Failed to dispatch %s event", event_type, exc_info=True)
