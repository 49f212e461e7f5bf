#  Voice Tutor - Enums
#
#  Type enumerations used across the system.
#
#  Depends on: (none)
#  Used by:    models/schemas.py, services/*, routes/*

from enum import Enum


class OperationClass(str, Enum):
    """Named category of action, each with its own rate-limit policy."""
    DEFAULT = "default"
    AUTH = "auth"                  # register / login
    CONVERSATION = "conversation"  # realtime session creation
    POINTS = "points"              # ending a conversation awards points


class AuthErrorKind(str, Enum):
    MISSING_CREDENTIAL = "missing_credential"
    INVALID_OR_EXPIRED_CREDENTIAL = "invalid_or_expired_credential"
    PRINCIPAL_NOT_FOUND = "principal_not_found"  # Token valid, user deleted


class SweepStrategy(str, Enum):
    RANDOM = "random"
    EVERY_N = "every_n"
    INTERVAL = "interval"  # Background task, admit never sweeps
