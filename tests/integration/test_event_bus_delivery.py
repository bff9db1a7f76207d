"""
Integration tests for event delivery across threads.

Completions and apply results are produced on worker threads; these tests
check that the Qt-backed EventBus hands them to subscribers on the thread
that owns the bus.
"""
from __future__ import annotations

import sys
import threading
import time
from pathlib import Path
from typing import Any, List

import pytest
from PySide6.QtCore import QCoreApplication, QThreadPool

from src.dockchat.app.event_bus import EventBus
from src.dockchat.executor.apply_engine import ApplyEngine
from src.dockchat.models.edits import ApplyOutcome, ExtractedEdit
from src.dockchat.models.event_types import APPLY_FINISHED, MESSAGE_ADDED
from src.dockchat.models.events import Event
from src.dockchat.worker import ApplyWorker


class EventCollector:
    """Collects events and the thread they were delivered on."""

    def __init__(self) -> None:
        self.events: List[Event] = []
        self.threads: List[threading.Thread] = []

    def handle_event(self, event: Event) -> None:
        self.events.append(event)
        self.threads.append(threading.current_thread())

    def wait_for_events(self, count: int, timeout: float = 5.0) -> bool:
        start = time.time()
        while len(self.events) < count:
            if time.time() - start > timeout:
                return False
            QCoreApplication.processEvents()
            time.sleep(0.01)
        return True


@pytest.fixture(scope="session")
def qapp():
    """Provide a QCoreApplication instance for Qt event processing."""
    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication(sys.argv)
    return app


@pytest.fixture()
def qt_event_bus(qapp) -> EventBus:
    return EventBus()


def test_dispatch_on_owner_thread_is_delivered(qt_event_bus: EventBus) -> None:
    collector = EventCollector()
    qt_event_bus.subscribe(MESSAGE_ADDED, collector.handle_event)

    qt_event_bus.dispatch(Event(event_type=MESSAGE_ADDED, payload={"sender": "System", "text": "hi"}))

    assert collector.wait_for_events(1)
    assert collector.events[0].payload["text"] == "hi"


def test_dispatch_from_worker_thread_arrives_on_owner_thread(qt_event_bus: EventBus) -> None:
    collector = EventCollector()
    qt_event_bus.subscribe(MESSAGE_ADDED, collector.handle_event)

    worker = threading.Thread(
        target=qt_event_bus.dispatch,
        args=(Event(event_type=MESSAGE_ADDED, payload={"sender": "Claude", "text": "from worker"}),),
    )
    worker.start()
    worker.join(5)

    assert collector.wait_for_events(1)
    assert collector.threads == [threading.main_thread()]


def test_failing_subscriber_does_not_block_others(qt_event_bus: EventBus) -> None:
    collector = EventCollector()

    def broken(event: Event) -> None:
        raise RuntimeError("subscriber failed")

    qt_event_bus.subscribe(MESSAGE_ADDED, broken)
    qt_event_bus.subscribe(MESSAGE_ADDED, collector.handle_event)

    qt_event_bus.dispatch(Event(event_type=MESSAGE_ADDED, payload={"sender": "System", "text": "still here"}))

    assert collector.wait_for_events(1)


def test_apply_worker_reports_outcome_through_bus(qt_event_bus: EventBus, tmp_path: Path) -> None:
    collector = EventCollector()
    qt_event_bus.subscribe(APPLY_FINISHED, collector.handle_event)
    engine = ApplyEngine(tmp_path)
    edit = ExtractedEdit()
    edit.add_source("res://scripts/a.gd", "extends Node")

    QThreadPool.globalInstance().start(ApplyWorker(lambda: engine.apply(edit, None), qt_event_bus))

    assert collector.wait_for_events(1)
    outcome: Any = collector.events[0].payload["outcome"]
    assert isinstance(outcome, ApplyOutcome)
    assert outcome.sources_applied == 1
    assert (tmp_path / "scripts" / "a.gd").read_text(encoding="utf-8") == "extends Node"


def test_apply_worker_reports_job_failure(qt_event_bus: EventBus) -> None:
    collector = EventCollector()
    qt_event_bus.subscribe(APPLY_FINISHED, collector.handle_event)

    def failing_job() -> ApplyOutcome:
        raise RuntimeError("disk gone")

    ApplyWorker(failing_job, qt_event_bus).run()

    assert collector.wait_for_events(1)
    assert collector.events[0].payload == {"outcome": None, "error": "disk gone"}
