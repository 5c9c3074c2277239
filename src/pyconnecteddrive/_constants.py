"""Internal constants shared across the library."""

USER_AGENT = "okhttp/3.12.2"

#: Replacement for identifying values in diagnostic output.
ANONYMOUS = "anonymous"

REGION_BASE_URLS: dict[str, str] = {
    "ROW": "https://b2vapi.bmwgroup.com",
    "NORTH_AMERICA": "https://b2vapi.bmwgroup.us",
    "CHINA": "https://b2vapi.bmwgroup.cn:8592",
}
DEFAULT_REGION = "ROW"

# HTTP status that makes the current status endpoint fall back to legacy.
NOT_FOUND = 404

# ------------------------------------------------------------------
# Capabilities (discovery "Services Supported")
# ------------------------------------------------------------------

STATISTICS = "Statistics"
LAST_DESTINATIONS = "LastDestinations"

SUPPORTED = "SUPPORTED"
NOT_SUPPORTED = "NOT_SUPPORTED"
ACTIVATED = "ACTIVATED"

ELECTRIC_DRIVE_TRAINS: frozenset[str] = frozenset({"BEV", "BEV_REX", "PHEV"})

# ------------------------------------------------------------------
# Polling and editing
# ------------------------------------------------------------------

#: Data refresh rate in minutes.
DEFAULT_REFRESH_INTERVAL = 15

#: Idle time after the last charge profile edit before it is discarded.
EDIT_TIMEOUT_SECONDS: float = 5 * 60

REMOTE_POLL_INTERVAL: float = 5.0
REMOTE_POLL_ATTEMPTS = 12

# ------------------------------------------------------------------
# Vehicle image
# ------------------------------------------------------------------

DEFAULT_IMAGE_VIEWPORT = "FRONT"
DEFAULT_IMAGE_SIZE = 1024
IMAGE_VIEWPORTS: tuple[str, ...] = ("FRONT", "REAR", "SIDE", "DASHBOARD", "DRIVERDOOR")
IMAGE_SIZE_MIN = 64
IMAGE_SIZE_MAX = 4096
#: Failed image downloads tolerated before the image is no longer requested.
IMAGE_FAIL_LIMIT = 3
