# app/models/audit.py
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AuditCategory(str, Enum):
    STATUS_CHANGE = "StatusChange"
    MAINTENANCE = "Maintenance"
    NOTE = "Note"
    EQUIPMENT_EVENT = "EquipmentEvent"


class Severity(str, Enum):
    INFO = "Info"
    SUCCESS = "Success"
    WARNING = "Warning"
    DANGER = "Danger"


class AuditEntry(BaseModel):
    """One immutable line of a vehicle's history."""

    model_config = ConfigDict(frozen=True)

    id: str
    vehicle_id: str
    date: str = Field(..., description="YYYY-MM-DD")
    time: str = Field(..., description="HH:MM")
    category: AuditCategory
    severity: Severity = Severity.INFO
    description: str
    performed_by: str
    equipment_id: Optional[str] = None
    # orders entries that share a minute; larger is newer
    sequence: int = 0

    @field_validator("severity", mode="before")
    @classmethod
    def default_severity(cls, v):
        return Severity.INFO if v is None else v


class HistoryFilter(str, Enum):
    ALL = "all"
    ANOMALY = "anomaly"
    VERIFICATION = "verification"
    OTHER = "other"


class NoteCreate(BaseModel):
    text: str = Field(..., description="Free-text log entry, stored verbatim")
    equipment_id: Optional[str] = Field(None, description="Optional item the note refers to")

    model_config = ConfigDict(json_schema_extra={
        "example": {"text": "Pump pressure test done after refuel.", "equipment_id": None}
    })
