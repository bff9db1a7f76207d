from pathlib import Path

# This calculates the absolute path to the project's root directory
# It starts from this file's location (.../src/dockchat/config.py) and goes up three levels.
ROOT_DIR = Path(__file__).resolve().parent.parent.parent

# All other important paths are built from the ROOT_DIR to ensure they are always correct.
LOGS_DIR = ROOT_DIR / "logs"
SETTINGS_FILE = ROOT_DIR / "user_settings.json"

# Messages endpoint defaults.
DEFAULT_API_URL = "https://api.anthropic.com/v1/messages"
DEFAULT_MODEL_NAME = "claude-3-sonnet-20240229"
ANTHROPIC_VERSION = "2023-06-01"
MAX_TOKENS = 4096
REQUEST_TIMEOUT_SECONDS = 120.0

# Apply tunables. The document write is retried to ride out transient locks
# (e.g. the scene being held open by the editor).
DOCUMENT_WRITE_ATTEMPTS = 3
DOCUMENT_WRITE_BACKOFF_SECONDS = 0.5

# How long a new request waits for a cancelled one to wind down.
CANCEL_DRAIN_SECONDS = 0.1
