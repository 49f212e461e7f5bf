#  Voice Tutor - Custom Exceptions
#
#  Typed exception hierarchy so routes can map business errors to HTTP
#  status codes without pattern-matching on message strings.
#
#  Depends on: (none)
#  Used by:    services/auth.py, services/conversations.py, services/realtime.py, rate_limit.py, app.py

class TutorError(Exception):
    """Base exception for all tutor business logic errors."""


class NotFoundError(TutorError):
    """Resource (user, conversation) does not exist."""


class ForbiddenError(TutorError):
    """Resource exists but belongs to someone else."""


class InvalidStateError(TutorError):
    """Operation not allowed in the current resource state."""


class EmailInUseError(TutorError):
    """Registration for an email address that already has an account."""


class InvalidCredentialsError(TutorError):
    """Unknown email or wrong password at login."""


class UpstreamServiceError(TutorError):
    """The realtime voice API refused or failed to create a session."""


class DailyLimitExceededError(TutorError):
    """The learner has used up today's conversation allowance."""

    def __init__(self, limit: int, used: int, reset_at: float):
        super().__init__(f"Daily conversation limit reached ({limit} per day)")
        self.limit = limit
        self.used = used
        self.reset_at = reset_at


class RateLimitExceededError(TutorError):
    """Too many requests from one client for an operation class."""

    def __init__(self, operation_class: str, limit: int, retry_after: int):
        super().__init__("Too many requests. Please try again later.")
        self.operation_class = operation_class
        self.limit = limit
        self.retry_after = retry_after
