import logging
from typing import Callable

from PySide6.QtCore import QRunnable, Slot

from src.dockchat.models.edits import ApplyOutcome
from src.dockchat.models.event_types import APPLY_FINISHED
from src.dockchat.models.events import Event


logger = logging.getLogger(__name__)


class ApplyWorker(QRunnable):
    """
    QRunnable that runs an apply job off the interactive thread.

    The outcome travels back through the event bus as APPLY_FINISHED, so the
    chat controller settles it on its own thread.
    """

    def __init__(self, job: Callable[[], ApplyOutcome], event_bus):
        super().__init__()
        self.job = job
        self.event_bus = event_bus

    @Slot()
    def run(self):
        try:
            outcome = self.job()
        except Exception as e:
            logger.error(f"Error in apply worker: {e}", exc_info=True)
            self.event_bus.dispatch(Event(event_type=APPLY_FINISHED, payload={"outcome": None, "error": str(e)}))
            return
        self.event_bus.dispatch(Event(event_type=APPLY_FINISHED, payload={"outcome": outcome}))
