"""Centralized constants"""

# Redis TTLs
REDIS_KEY_TTL_SECONDS = 7 * 24 * 60 * 60  # 7 days

# Session daemon
DEFAULT_DAEMON_URL = "http://127.0.0.1:40080"
SESSIONS_PATH = "/sessions"
SESSION_START_PATH = "/sessions/start"

# Discovery transports
TRANSPORT_DIRECT = "direct"
TRANSPORT_RELAY = "relay"
DISCOVERY_TRANSPORTS = {TRANSPORT_DIRECT, TRANSPORT_RELAY}

# Timeouts
DISCOVERY_TIMEOUT_SECONDS = 10
SESSION_START_TIMEOUT_SECONDS = 60
RELAY_WAIT_TIMEOUT_SECONDS = 30
RELAY_POLL_INTERVAL_SECONDS = 0.5
DISCONNECT_POLL_SECONDS = 0.5

# Debug port candidates (inclusive)
MIN_DEBUG_PORT = 1111
MAX_DEBUG_PORT = 9999

# Session start defaults
DISABLE_IMAGES = True
IMAGE_DISABLE_CHROMIUM_ARG = "--blink-settings=imagesEnabled=false"
DEFAULT_REFERRER_RULE = {
    "url": "https://www.google.com/",
    "replace": "https://www.google.com/",
}

# Relay
DEFAULT_RELAY_BROWSER_COMMAND = "chromium --new-window"
RELAY_CHANNEL_PREFIX = "relay:sessions"

# Limits
MAX_NODES_PER_WORKFLOW = 1000
MAX_WORKFLOW_NAME_LENGTH = 200
MAX_WORKFLOW_DESCRIPTION_LENGTH = 2000
