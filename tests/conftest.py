from __future__ import annotations

import json
from dataclasses import dataclass, field
from itertools import count
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Tuple

import pytest

from src.dockchat.executor.apply_engine import ApplyEngine
from src.dockchat.executor.prompt_builder import PromptBuilder
from src.dockchat.executor.response_extractor import ResponseExtractor
from src.dockchat.executor.transcript_sanitizer import TranscriptSanitizer
from src.dockchat.models.event_types import MESSAGE_ADDED
from src.dockchat.models.events import Event
from src.dockchat.models.request import TransportResult, TransportStatus
from src.dockchat.models.session import ConversationMode
from src.dockchat.services.chat_controller import ChatController
from src.dockchat.services.request_lifecycle import RequestLifecycleController
from src.dockchat.services.session_state import SessionState
from src.dockchat.services.transport import CompletionCallback, Transport


SCENE_BODY = '[gd_scene load_steps=2 format=3]\n\n[node name="Main" type="Node2D"]\n'


class RecordingEventBus:
    """Synchronous in-memory event bus used by tests."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Callable[[Event], None]]] = {}
        self.dispatched: List[Event] = []

    def subscribe(self, event_type: str, callback: Callable[[Event], None]) -> None:
        self._subscribers.setdefault(event_type, []).append(callback)

    def dispatch(self, event: Event) -> None:
        self.dispatched.append(event)
        for callback in self._subscribers.get(event.event_type, []):
            callback(event)

    def of_type(self, event_type: str) -> List[Event]:
        return [event for event in self.dispatched if event.event_type == event_type]

    def messages(self, sender: Optional[str] = None) -> List[str]:
        return [
            event.payload["text"]
            for event in self.of_type(MESSAGE_ADDED)
            if sender is None or event.payload["sender"] == sender
        ]


@dataclass
class SentRequest:
    request_id: str
    url: str
    headers: Dict[str, str]
    body: str
    on_complete: CompletionCallback


class FakeTransport(Transport):
    """Transport that records exchanges and lets the test complete them by hand."""

    def __init__(self) -> None:
        self.sent: List[SentRequest] = []
        self.cancelled: List[str] = []
        self.drain_waits: List[float] = []
        self.events: List[Tuple[str, str]] = []

    def send(
        self,
        request_id: str,
        url: str,
        headers: Mapping[str, str],
        body: str,
        on_complete: CompletionCallback,
    ) -> None:
        self.events.append(("send", request_id))
        self.sent.append(SentRequest(request_id, url, dict(headers), body, on_complete))

    def cancel(self, request_id: str) -> None:
        self.events.append(("cancel", request_id))
        self.cancelled.append(request_id)

    def wait_for_drain(self, timeout: float) -> None:
        self.events.append(("drain", str(timeout)))
        self.drain_waits.append(timeout)

    def complete(self, index: int, result: TransportResult) -> None:
        request = self.sent[index]
        request.on_complete(request.request_id, result)


def make_reply(text: str, code: int = 200) -> TransportResult:
    """Build a successful transport result carrying a messages-endpoint reply."""
    body = json.dumps({"content": [{"type": "text", "text": text}]}).encode("utf-8")
    return TransportResult(status=TransportStatus.SUCCESS, code=code, body=body)


def sequential_ids() -> Callable[[], str]:
    counter = count(1)
    return lambda: f"req-{next(counter)}"


@pytest.fixture
def event_bus() -> RecordingEventBus:
    return RecordingEventBus()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "project"
    root.mkdir()
    return root.resolve()


@pytest.fixture
def scene_file(project_root: Path) -> Path:
    """A valid scene at res://levels/main.tscn."""
    levels = project_root / "levels"
    levels.mkdir()
    scene = levels / "main.tscn"
    scene.write_text(SCENE_BODY, encoding="utf-8")
    return scene


@dataclass
class ControllerHarness:
    controller: ChatController
    event_bus: RecordingEventBus
    transport: FakeTransport
    session: SessionState
    project_root: Path
    persisted_modes: List[ConversationMode] = field(default_factory=list)


@pytest.fixture
def controller_factory(
    event_bus: RecordingEventBus,
    fake_transport: FakeTransport,
    project_root: Path,
) -> Callable[..., ControllerHarness]:
    """Factory fixture wiring a ChatController with in-memory collaborators."""

    def _factory(
        mode: ConversationMode = ConversationMode.ASK,
        api_key: str = "sk-test",
        apply_runner: Optional[Callable] = None,
    ) -> ControllerHarness:
        session = SessionState(mode)
        persisted: List[ConversationMode] = []
        controller_ref: Dict[str, ChatController] = {}
        engine = ApplyEngine(
            project_root,
            backoff_seconds=0,
            report=lambda text: controller_ref["controller"].post_system(text),
        )
        controller = ChatController(
            event_bus,
            session,
            PromptBuilder(),
            RequestLifecycleController(fake_transport, drain_seconds=0, id_factory=sequential_ids()),
            ResponseExtractor(),
            TranscriptSanitizer(),
            engine,
            {"api_key": api_key, "api_url": "https://example.test/v1/messages"},
            persist_mode=persisted.append,
            apply_runner=apply_runner,
        )
        controller_ref["controller"] = controller
        return ControllerHarness(controller, event_bus, fake_transport, session, project_root, persisted)

    return _factory
