# app/models/equipment.py
"""
Equipment items carried by a vehicle, plus the anomaly record attached to them.
"""
from datetime import date
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class Condition(str, Enum):
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    NEEDS_REPLACEMENT = "NeedsReplacement"


# Conditions an operator may pick by hand; NeedsReplacement follows the anomaly.
MANUAL_CONDITIONS = (Condition.GOOD, Condition.FAIR, Condition.POOR)


class AnomalyTag(str, Enum):
    DIRTY = "Dirty"
    DAMAGED = "Damaged"
    MISSING = "Missing"
    UNAVAILABLE = "Unavailable"


def _dedupe_tags(tags) -> List[AnomalyTag]:
    seen = []
    for tag in tags or []:
        tag = AnomalyTag(tag)
        if tag not in seen:
            seen.append(tag)
    return seen


class EquipmentDocument(BaseModel):
    id: str = ""
    name: str
    url: str
    type: Literal["pdf", "doc", "link"] = "link"


class AnomalyRecord(BaseModel):
    description: str = ""
    tags: List[AnomalyTag] = Field(default_factory=list)
    missing_quantity: Optional[int] = None
    reported_by: str
    reported_on: date

    @field_validator("tags", mode="before")
    @classmethod
    def unique_tags(cls, v):
        return _dedupe_tags(v)

    @property
    def is_open(self) -> bool:
        return bool(self.description.strip()) or bool(self.tags)


class EquipmentItem(BaseModel):
    id: str
    vehicle_id: str
    name: str
    category: str
    location: str = ""
    quantity: int = Field(..., ge=0)
    condition: Condition = Condition.GOOD
    last_verified: Optional[date] = None
    notes: str = ""
    anomaly: Optional[AnomalyRecord] = None
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    documents: List[EquipmentDocument] = Field(default_factory=list)

    @property
    def has_open_anomaly(self) -> bool:
        return self.anomaly is not None and self.anomaly.is_open

    @computed_field
    @property
    def available_quantity(self) -> int:
        missing = 0
        if self.has_open_anomaly and self.anomaly.missing_quantity:
            missing = self.anomaly.missing_quantity
        return max(0, self.quantity - missing)

    def verified_on(self, day: date) -> bool:
        return self.last_verified == day


# -----------------------------
# Request Schemas
# -----------------------------
class AddEquipment(BaseModel):
    name: str = Field(..., description="Item name (required)")
    category: str = Field(..., description="Category (required, free-text)")
    location: str = Field("", description="Bin / compartment label, e.g. 'Rear locker'")
    quantity: int = Field(1, description="Units carried (>= 0)")
    condition: Condition = Condition.GOOD
    notes: str = ""
    thumbnail_url: Optional[str] = None
    video_url: Optional[str] = None
    documents: List[EquipmentDocument] = Field(default_factory=list)

    @field_validator("name", "category", "location", "notes")
    @classmethod
    def strip_strings(cls, v: str) -> str:
        return v.strip()

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Delivery hose 70mm",
            "category": "Hoses",
            "location": "Rear locker",
            "quantity": 4,
            "condition": "Good",
        }
    })


class AnomalyReport(BaseModel):
    tags: List[AnomalyTag] = Field(default_factory=list)
    description: str = ""
    missing_quantity: Optional[int] = Field(None, description="Units missing; only used with the Missing tag")

    @field_validator("tags", mode="before")
    @classmethod
    def unique_tags(cls, v):
        return _dedupe_tags(v)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: str) -> str:
        return v.strip()

    model_config = ConfigDict(json_schema_extra={
        "example": {"tags": ["Missing"], "missing_quantity": 2, "description": "torn strap"}
    })


class EquipmentDetailsUpdate(BaseModel):
    notes: Optional[str] = None
    condition: Optional[Condition] = None
