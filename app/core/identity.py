# app/core/identity.py
from enum import Enum
from typing import Dict, FrozenSet

from app.core.errors import AuthorizationError
from app.utiles.logger import get_logger

logger = get_logger(__name__)


class Role(str, Enum):
    ADMIN = "Admin"
    OPERATOR = "Operator"
    READER = "Reader"


class Operation(str, Enum):
    READ = "read"
    VERIFY = "verify"
    REPORT_ANOMALY = "report_anomaly"
    RESOLVE_ANOMALY = "resolve_anomaly"
    ADD_NOTE = "add_note"
    UPDATE_DETAILS = "update_details"
    ADD_EQUIPMENT = "add_equipment"
    REMOVE_EQUIPMENT = "remove_equipment"
    CHANGE_STATUS = "change_status"
    REGISTER_VEHICLE = "register_vehicle"
    DELETE_VEHICLE = "delete_vehicle"


_ALL = frozenset(Role)
_FIELD = frozenset({Role.ADMIN, Role.OPERATOR})
_ADMIN = frozenset({Role.ADMIN})

PERMISSIONS: Dict[Operation, FrozenSet[Role]] = {
    Operation.READ: _ALL,
    Operation.VERIFY: _FIELD,
    Operation.REPORT_ANOMALY: _FIELD,
    Operation.RESOLVE_ANOMALY: _FIELD,
    Operation.ADD_NOTE: _FIELD,
    Operation.UPDATE_DETAILS: _FIELD,
    Operation.ADD_EQUIPMENT: _ADMIN,
    Operation.REMOVE_EQUIPMENT: _ADMIN,
    Operation.CHANGE_STATUS: _ADMIN,
    Operation.REGISTER_VEHICLE: _ADMIN,
    Operation.DELETE_VEHICLE: _ADMIN,
}


class IdentityProvider:
    """Who is acting. Authentication itself happens upstream."""

    def current_actor_display_name(self) -> str:
        raise NotImplementedError

    def current_actor_role(self) -> Role:
        raise NotImplementedError


class StaticIdentityProvider(IdentityProvider):
    def __init__(self, display_name: str, role: Role):
        self.display_name = display_name
        self.role = Role(role)

    def current_actor_display_name(self) -> str:
        return self.display_name

    def current_actor_role(self) -> Role:
        return self.role


def require_permission(identity: IdentityProvider, operation: Operation) -> str:
    """Raise AuthorizationError unless the current actor may run `operation`.

    Returns the actor's display name so callers can stamp entries with it.
    """
    role = identity.current_actor_role()
    name = identity.current_actor_display_name()
    if role not in PERMISSIONS[operation]:
        logger.warning("Authorization denied → actor=%s, role=%s, operation=%s", name, role.value, operation.value)
        raise AuthorizationError(f"Role {role.value} is not allowed to {operation.value.replace('_', ' ')}")
    return name
