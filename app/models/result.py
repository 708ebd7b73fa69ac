# app/models/result.py
from typing import List, Optional

from pydantic import BaseModel, Field

from app.core.errors import InvariantViolation
from app.models.audit import AuditEntry
from app.models.equipment import EquipmentItem
from app.models.vehicle import VehicleStatus


class MutationResult(BaseModel):
    """What a mutating service call did.

    applied=False means nothing was written; `violation` says why.
    """

    applied: bool
    vehicle_id: Optional[str] = None
    violation: Optional[InvariantViolation] = None
    item: Optional[EquipmentItem] = None
    status: Optional[VehicleStatus] = None
    entries: List[AuditEntry] = Field(default_factory=list)
    completion: Optional[int] = None

    @classmethod
    def noop(cls, violation: InvariantViolation, **kwargs) -> "MutationResult":
        return cls(applied=False, violation=violation, **kwargs)
