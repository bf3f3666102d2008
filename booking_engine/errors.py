"""Engine error tiers

Services raise these internally. Public operations convert them into result
objects carrying ``status`` and ``error_code`` so callers never need to
inspect exception types.
"""

from typing import Optional

INTERNAL_ERROR = "INTERNAL_ERROR"

# Spoken fallback used whenever the store fails unexpectedly
FALLBACK_MESSAGE = (
    "I'm having trouble completing that right now. "
    "Can I take your number and have a manager call you back?"
)


class EngineError(Exception):
    """Base class for expected engine failures"""

    status = "error"

    def __init__(self, code: str, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}


class ValidationFailed(EngineError):
    """Caller-correctable input problem"""


class NotFoundError(EngineError):
    """Referenced record does not exist or is inactive"""


class ConflictError(EngineError):
    """Transient contention on capacity; re-run availability and retry once"""

    status = "conflict"


class InvalidTransition(EngineError):
    """Requested lifecycle change is not allowed from the current state"""
