"""
Error taxonomy for the onboarding engine.

NotFound and ValidationError describe caller mistakes or absent
aggregates. StorageError wraps a failure of the storage port and names
the operation that failed.
"""

from typing import Any, Dict, Optional


class OnboardingError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class NotFound(OnboardingError):
    """A session, path, step or milestone does not exist."""


class ValidationError(OnboardingError):
    """Malformed input or a rejected business rule."""


class InvalidTransition(ValidationError):
    """A session status change or progress status regression was rejected."""

    def __init__(self, current: str, requested: str, entity: str = "session"):
        super().__init__(
            f"Invalid {entity} transition: {current} -> {requested}",
            {"current": current, "requested": requested, "entity": entity},
        )
        self.current = current
        self.requested = requested


class StorageError(OnboardingError):
    """The storage port failed after its bounded retry."""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.operation = operation
