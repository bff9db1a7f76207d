import logging
from typing import Callable, List, Dict

from PySide6.QtCore import QObject, Signal

from src.dockchat.models.events import Event


logger = logging.getLogger(__name__)


class EventBusSignaller(QObject):
    """
    A QObject to emit signals on the owner (UI) thread.
    """
    signal = Signal(Event)


class EventBus:
    """
    A simple event bus for decoupled communication between components.
    Dispatches made from worker threads are delivered on the thread that
    created the bus, so subscribers never run concurrently.
    """
    def __init__(self):
        """Initializes the EventBus."""
        self._subscribers: Dict[str, List[Callable]] = {}
        self._signaller = EventBusSignaller()
        self._signaller.signal.connect(self._handle_event_on_main_thread)

    def subscribe(self, event_type: str, callback: Callable):
        """
        Subscribe a callback function to a specific event type.

        Args:
            event_type: The type of event to subscribe to.
            callback: The function to call when the event is dispatched.
        """
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []
        self._subscribers[event_type].append(callback)
        logger.debug("Subscribed %s to event '%s'", getattr(callback, "__name__", callback), event_type)

    def dispatch(self, event: Event):
        """
        Dispatch an event to all subscribed callbacks.
        Emits a signal, so delivery happens on the owner thread.

        Args:
            event: The Event object to dispatch.
        """
        logger.debug("Dispatching event '%s'", event.event_type)
        self._signaller.signal.emit(event)

    def _handle_event_on_main_thread(self, event: Event):
        """
        Slot connected to the signaller's signal; runs the callbacks on the
        owner thread.
        """
        event_type = event.event_type
        if event_type in self._subscribers:
            for callback in self._subscribers[event_type]:
                try:
                    callback(event)
                except Exception as e:
                    logger.error(
                        "Error in callback %s for event '%s': %s",
                        getattr(callback, "__name__", callback),
                        event_type,
                        e,
                        exc_info=True,
                    )
        else:
            logger.debug("No subscribers for event '%s'", event_type)
