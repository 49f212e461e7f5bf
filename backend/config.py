#  Voice Tutor - Configuration
#
#  Loads config.json and provides typed access to all settings.
#  Dot-notation path lookup: cfg("rate_limit.policies.auth.limit")
#  Secrets (JWT_SECRET, OPENAI_API_KEY) come from the environment.
#
#  Depends on: config.json, models/enums.py
#  Used by:    all backend modules

import json
import os
from pathlib import Path

from backend.models.enums import OperationClass

# ---------------------------------------------------------------------------
# Path resolution
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_PATH = PROJECT_ROOT / "config.json"
DATA_DIR = PROJECT_ROOT / "data"
DB_PATH = DATA_DIR / "tutor.db"

# ---------------------------------------------------------------------------
# Load config
# ---------------------------------------------------------------------------

_config: dict = {}


def _load_config(path: Path | None = None):
    """Load configuration from JSON file (internal, called once at import time).

    Module-level constants below are snapshots from _config.
    Do not call this function after import; constants won't update.
    """
    global _config
    config_path = path or CONFIG_PATH
    if not config_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {config_path}. "
            "Copy config.example.json to config.json."
        )
    with open(config_path) as f:
        _config = json.load(f)


# Auto-load if config exists at import time
if CONFIG_PATH.exists():
    _load_config()


def cfg(path: str, default=None):
    """Get a config value by dot-notation path.

    Example: cfg("realtime.model") -> "gpt-4o-realtime-preview-2024-12-17"
    """
    keys = path.split(".")
    val = _config
    for key in keys:
        if isinstance(val, dict) and key in val:
            val = val[key]
        else:
            return default
    return val


# ---------------------------------------------------------------------------
# Convenience constants
# ---------------------------------------------------------------------------

HOST = cfg("server.host", "0.0.0.0")
PORT = cfg("server.port", 5300)
CORS_ORIGINS = cfg("server.cors_origins", [
    "http://localhost:3000",
    f"http://localhost:{PORT}",
    "http://127.0.0.1:3000",
    f"http://127.0.0.1:{PORT}",
])

# Auth
AUTH_SECRET_KEY = os.environ.get("JWT_SECRET") or cfg("auth.secret_key", "")
AUTH_ALGORITHM = cfg("auth.algorithm", "HS256")
AUTH_TOKEN_EXPIRE_DAYS = cfg("auth.token_expire_days", 30)
AUTH_BCRYPT_ROUNDS = cfg("auth.bcrypt_rounds", 10)

# Rate limiting: {operation_class: {limit, window_seconds}}
_DEFAULT_RATE_LIMIT_POLICIES = {
    "default": {"limit": 100, "window_seconds": 60},
    "auth": {"limit": 5, "window_seconds": 15 * 60},
    "conversation": {"limit": 10, "window_seconds": 60 * 60},
    "points": {"limit": 20, "window_seconds": 60},
}
RATE_LIMIT_POLICIES: dict = {
    **_DEFAULT_RATE_LIMIT_POLICIES,
    **cfg("rate_limit.policies", {}),
}
RATE_LIMIT_SWEEP: dict = cfg("rate_limit.sweep", {"strategy": "random", "probability": 0.1})

# Realtime voice API
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
REALTIME_BASE_URL = cfg("realtime.base_url", "https://api.openai.com/v1")
REALTIME_MODEL = cfg("realtime.model", "gpt-4o-realtime-preview-2024-12-17")
REALTIME_TIMEOUT = cfg("realtime.timeout", 30.0)

# Conversations
CONVERSATION_DAILY_LIMIT = cfg("conversation.daily_limit", 20)
CONVERSATION_PAGE_SIZE = cfg("conversation.page_size", 20)
DEFAULT_VOICE = cfg("conversation.default_voice", "shimmer")


# ---------------------------------------------------------------------------
# Startup validation
# ---------------------------------------------------------------------------

_SWEEP_STRATEGIES = ("random", "every_n", "interval")


def validate_config():
    """Validate critical config values. Call during app startup (not at import time).

    Raises ConfigError for fatal issues, logs warnings for non-fatal ones.
    """
    import logging
    _logger = logging.getLogger("tutor.config")

    # Fatal: JWT secret must be non-empty and at least 32 characters
    if not AUTH_SECRET_KEY or len(AUTH_SECRET_KEY) < 32:
        raise ConfigError(
            "FATAL: JWT_SECRET is missing or too short "
            "(must be at least 32 characters)"
        )

    # Fatal: port must be valid
    if not isinstance(PORT, int) or not (1 <= PORT <= 65535):
        raise ConfigError(f"server.port must be 1-65535, got {PORT}")

    if not isinstance(AUTH_BCRYPT_ROUNDS, int) or not (4 <= AUTH_BCRYPT_ROUNDS <= 31):
        raise ConfigError(f"auth.bcrypt_rounds must be 4-31, got {AUTH_BCRYPT_ROUNDS}")

    if not isinstance(AUTH_TOKEN_EXPIRE_DAYS, (int, float)) or AUTH_TOKEN_EXPIRE_DAYS <= 0:
        raise ConfigError(f"auth.token_expire_days must be > 0, got {AUTH_TOKEN_EXPIRE_DAYS}")

    # Fatal: policies must name known operation classes with a positive limit and window
    if "default" not in RATE_LIMIT_POLICIES:
        raise ConfigError("rate_limit.policies must define a 'default' policy")
    known_classes = {op.value for op in OperationClass}
    for name, policy in RATE_LIMIT_POLICIES.items():
        if name not in known_classes:
            raise ConfigError(
                f"rate_limit.policies.{name} is not an operation class "
                f"(expected one of {', '.join(sorted(known_classes))})"
            )
        if not isinstance(policy, dict):
            raise ConfigError(f"rate_limit.policies.{name} must be an object")
        limit = policy.get("limit")
        window = policy.get("window_seconds")
        if not isinstance(limit, int) or limit <= 0:
            raise ConfigError(f"rate_limit.policies.{name}.limit must be > 0, got {limit}")
        if not isinstance(window, (int, float)) or window <= 0:
            raise ConfigError(
                f"rate_limit.policies.{name}.window_seconds must be > 0, got {window}"
            )

    strategy = RATE_LIMIT_SWEEP.get("strategy", "random")
    if strategy not in _SWEEP_STRATEGIES:
        raise ConfigError(
            f"rate_limit.sweep.strategy must be one of {', '.join(_SWEEP_STRATEGIES)}, "
            f"got '{strategy}'"
        )

    # Fatal: timeouts must be positive
    if not isinstance(REALTIME_TIMEOUT, (int, float)) or REALTIME_TIMEOUT <= 0:
        raise ConfigError(f"realtime.timeout must be > 0, got {REALTIME_TIMEOUT}")

    if not isinstance(CONVERSATION_DAILY_LIMIT, int) or CONVERSATION_DAILY_LIMIT < 0:
        raise ConfigError(
            f"conversation.daily_limit must be >= 0, got {CONVERSATION_DAILY_LIMIT}"
        )

    # Fatal: CORS origins must be valid URLs
    for origin in CORS_ORIGINS:
        if not isinstance(origin, str):
            raise ConfigError(f"CORS origin must be a string, got {type(origin).__name__}")
        if origin == "*":
            _logger.warning("CORS origin '*' allows all origins, not recommended for production")
        elif not origin.startswith(("http://", "https://")):
            raise ConfigError(
                f"CORS origin must start with http:// or https://, got '{origin}'"
            )

    # Warning: realtime sessions can't be created without an API key
    if not OPENAI_API_KEY:
        _logger.warning(
            "OPENAI_API_KEY is not set. Starting voice conversations will fail."
        )


class ConfigError(Exception):
    """Raised when critical configuration is invalid."""
