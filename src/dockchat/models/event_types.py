"""
Event Type Constants

Centralized definitions for the event types DockChat exposes to its host.
The host UI subscribes to these on the EventBus instead of calling back into
the chat controller.
"""

# Host UI callback surface
MESSAGE_ADDED = "MESSAGE_ADDED"
"""
Dispatched for every transcript line (system, user or assistant).

Payload:
    sender (str): Display name of the author ('System', 'You', 'Claude')
    text (str): The line to display
"""

APPLY_AVAILABILITY_CHANGED = "APPLY_AVAILABILITY_CHANGED"
"""
Dispatched when the apply action should be enabled or disabled.

Payload:
    available (bool): Whether a pending edit can be applied
"""

SCRIPTS_FOUND = "SCRIPTS_FOUND"
"""
Dispatched after a Composer response yielded one or more source edits.

Payload:
    count (int): Number of source edits extracted from the response
"""

TRANSCRIPT_CLEARED = "TRANSCRIPT_CLEARED"
"""
Dispatched when the visible transcript should be wiped (mode switch).

Payload: none
"""

MODE_CHANGED = "MODE_CHANGED"
"""
Dispatched after the conversation mode changed.

Payload:
    mode (str): The new mode value ('ask' or 'composer')
"""

# Host input events
SEND_USER_MESSAGE = "SEND_USER_MESSAGE"
"""
Dispatched by the host when the user submits a line of input.

Payload:
    text (str): The raw user input
"""

RESPONSE_RECEIVED = "RESPONSE_RECEIVED"
"""
Dispatched by the transport bridge when an exchange completes, so that the
completion is handled on the owner thread.

Payload:
    request_id (str): Identity of the request that completed
    result (TransportResult): Raw transport outcome
"""

APPLY_FINISHED = "APPLY_FINISHED"
"""
Dispatched when a background apply job finished.

Payload:
    outcome (ApplyOutcome): Summary of the apply run
"""

# Application lifecycle events
APP_START = "APP_START"
APP_SHUTDOWN = "APP_SHUTDOWN"
