"""
Esquemas Pydantic para Maquinaria
"""
from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from enum import Enum


class MachineStatus(str, Enum):
    DISPONIBLE = "DISPONIBLE"
    EN_OBRA = "EN_OBRA"
    MANTENIMIENTO = "MANTENIMIENTO"
    REPARACION = "REPARACION"
    BAJA = "BAJA"


class MachineCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50, description="Código del equipo")
    description: str = Field(..., min_length=1, max_length=200)
    brand: Optional[str] = Field(None, max_length=100)
    model: Optional[str] = Field(None, max_length=100)
    serial_number: Optional[str] = Field(None, max_length=100)
    year: Optional[int] = Field(None, ge=1950, le=2100)
    hourly_cost: Optional[Decimal] = Field(None, ge=0)
    daily_rent: Optional[Decimal] = Field(None, ge=0)
    hour_meter: Decimal = Field(Decimal("0"), ge=0, description="Lectura actual del horómetro")
    location: Optional[str] = Field(None, max_length=200)

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v):
        return v.strip().upper()


class MachineOut(MachineCreate):
    id: UUID
    status: MachineStatus
    created_at: datetime

    class Config:
        from_attributes = True


class MachineList(BaseModel):
    items: List[MachineOut]
    total: int
    limit: int
    offset: int


class MachineStatusUpdate(BaseModel):
    """Mantenimiento, reparación, baja o regreso a disponible (sin obra)"""
    status: MachineStatus


class AssignmentCreate(BaseModel):
    work_order_id: UUID
    start_date: date
    hour_meter_start: Optional[Decimal] = Field(None, ge=0, description="Por omisión, la lectura actual")
    notes: Optional[str] = None


class AssignmentFinish(BaseModel):
    end_date: date
    hour_meter_end: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None


class AssignmentOut(BaseModel):
    id: UUID
    machine_id: UUID
    work_order_id: UUID
    start_date: date
    end_date: Optional[date] = None
    hour_meter_start: Decimal
    hour_meter_end: Optional[Decimal] = None
    hours_used: Optional[Decimal] = None
    is_active: bool
    notes: Optional[str] = None

    class Config:
        from_attributes = True
