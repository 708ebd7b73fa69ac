# app/core/errors.py
"""
Error taxonomy for the inspection core.

ValidationError / AuthorizationError / NotFoundError are raised before the
store is touched. PersistenceError wraps a failed store call. InvariantViolation
is not an exception: it travels on MutationResult.violation so a repeated
submission from the UI is a harmless no-op.
"""
from enum import Enum


class FleetError(Exception):
    """Base class for every error the core reports to the presentation layer."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(FleetError):
    pass


class AuthorizationError(FleetError):
    pass


class NotFoundError(FleetError):
    pass


class PersistenceError(FleetError):
    pass


class AuditCommitError(PersistenceError):
    """The state update reached the store but its audit entry did not."""

    def __init__(self, message: str, rolled_back: bool, entries_committed: int = 0):
        super().__init__(message)
        self.rolled_back = rolled_back
        self.entries_committed = entries_committed


class InvariantViolation(str, Enum):
    ALREADY_RESOLVED = "already_resolved"
    ITEM_NOT_FOUND = "item_not_found"
    STATUS_UNCHANGED = "status_unchanged"
