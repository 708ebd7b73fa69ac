# app/models/vehicle.py
from datetime import date
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.audit import AuditEntry
from app.models.equipment import EquipmentItem


class VehicleStatus(str, Enum):
    AVAILABLE = "Available"
    OUT_ON_CALL = "OutOnCall"
    MAINTENANCE = "Maintenance"
    OUT_OF_SERVICE = "OutOfService"


class VehicleBase(BaseModel):
    call_sign: str = Field(..., description="Radio call sign, e.g. 'Engine 42'")
    type: str = Field(..., description="Apparatus type, free text")
    mileage: int = Field(0, ge=0)
    location: str = Field("", description="Station / sector")
    last_service: Optional[date] = None
    crew_capacity: int = Field(1, ge=1)
    image_url: Optional[str] = None


class RegisterVehicle(VehicleBase):
    @field_validator("call_sign", "type", "location")
    @classmethod
    def strip_strings(cls, v: str) -> str:
        return v.strip()

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "call_sign": "Engine 42",
            "type": "Pumper",
            "mileage": 12500,
            "location": "Central Station",
            "last_service": "2024-10-15",
            "crew_capacity": 6,
        }
    })


class StatusUpdate(BaseModel):
    status: VehicleStatus


class Vehicle(VehicleBase):
    id: str
    status: VehicleStatus = VehicleStatus.AVAILABLE
    equipment: List[EquipmentItem] = Field(default_factory=list)
    history: List[AuditEntry] = Field(default_factory=list)

    def find_item(self, item_id: str) -> Optional[EquipmentItem]:
        for item in self.equipment:
            if item.id == item_id:
                return item
        return None


class FleetStats(BaseModel):
    total: int
    available: int
    out_on_call: int
    maintenance: int
    out_of_service: int
