import os
import tempfile
from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv

from pulse.utils.platform_utils import Platform, PlatformUtils

# Load .env from project root
_project_root = Path(__file__).parent.parent.parent
load_dotenv(_project_root / ".env")

APP_NAME = "Pulse"
APP_VERSION = os.getenv("APP_VERSION", "0.1.0")

# Watcher scheduling (seconds)
DEBOUNCE_DELAY = float(os.getenv("PULSE_DEBOUNCE_DELAY", "0.8"))
HEARTBEAT_BASE = float(os.getenv("PULSE_HEARTBEAT_BASE", "30"))
HEARTBEAT_JITTER = float(os.getenv("PULSE_HEARTBEAT_JITTER", "5"))
HEARTBEAT_MIN_INTERVAL = float(os.getenv("PULSE_HEARTBEAT_MIN_INTERVAL", "20"))  # safety floor

# Probe timeouts (seconds)
HTTP_PROBE_TIMEOUT = float(os.getenv("PULSE_HTTP_TIMEOUT", "3"))
TCP_PROBE_TIMEOUT = float(os.getenv("PULSE_TCP_TIMEOUT", "2.5"))
EVALUATION_GRACE = 1.0
MAX_BODY_BYTES = 64 * 1024

# Path observer
PATH_POLL_INTERVAL = float(os.getenv("PULSE_PATH_POLL_INTERVAL", "2"))

LOG_LEVEL = os.getenv("PULSE_LOG_LEVEL", "INFO")

# Temporary directory (cross-platform)
if PlatformUtils.get_platform() == Platform.WINDOWS:
    TMPDIR = os.path.join(tempfile.gettempdir(), "pulse")
elif PlatformUtils.get_platform() == Platform.MACOS:
    TMPDIR = os.path.join(os.path.expanduser("~/Library/Caches"), "pulse")
else:
    TMPDIR = os.path.join(os.environ.get("TMPDIR", "/tmp"), "pulse")

LOG_FILE = os.getenv("PULSE_LOG_FILE", os.path.join(TMPDIR, "pulse.log"))

# Configuration directory
if PlatformUtils.get_platform() == Platform.WINDOWS:
    _default_config_dir = os.path.join(os.path.expanduser("~"), "AppData", "Roaming", "pulse")
elif PlatformUtils.get_platform() == Platform.MACOS:
    _default_config_dir = os.path.expanduser("~/Library/Application Support/pulse")
else:
    _default_config_dir = os.path.join(os.path.expanduser("~"), ".config", "pulse")
CONFIG_DIR = os.getenv("PULSE_CONFIG_DIR", _default_config_dir)

# Notifications
NOTIFICATION_TITLE = "Network Status"
