#  Voice Tutor - Logging Configuration
#
#  All backend loggers live under "tutor". Records carry the request id,
#  the signed-in learner and the rate-limit client key of the request
#  that produced them, so one learner's session can be followed through
#  the logs.
#
#  Depends on: (none)
#  Used by:    run.py, app.py, rate_limit.py, middleware/auth.py

import contextvars
import json
import logging
import sys
import time

ROOT_LOGGER = "tutor"

request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("request_id", default=None)
user_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("user_id", default=None)
client_key_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("client_key", default=None)

# JSON field name -> context variable
_CONTEXT_FIELDS = (
    ("request_id", request_id_var),
    ("user_id", user_id_var),
    ("client", client_key_var),
)

# Third-party loggers that are chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "aiosqlite", "alembic", "uvicorn.access")


def set_request_id(rid: str | None):
    request_id_var.set(rid)


def set_user_id(uid: str | None):
    user_id_var.set(uid)


def set_client_key(key: str | None):
    client_key_var.set(key)


def clear_request_context():
    for _, var in _CONTEXT_FIELDS:
        var.set(None)


class JSONFormatter(logging.Formatter):
    """One JSON object per line, UTC timestamps with milliseconds."""

    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S") + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field, var in _CONTEXT_FIELDS:
            value = var.get(None)
            if value:
                entry[field] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Attach a stdout handler to the "tutor" logger.

    fmt is "json" for log shippers or "text" for a terminal. Safe to call
    more than once; the handler is only added the first time.
    """
    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        if fmt == "json":
            handler.setFormatter(JSONFormatter())
        else:
            handler.setFormatter(logging.Formatter(
                "%(asctime)s %(levelname)-7s %(name)s: %(message)s", datefmt="%H:%M:%S",
            ))
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
