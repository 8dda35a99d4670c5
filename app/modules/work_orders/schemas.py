"""
Esquemas Pydantic para Obras
"""
from pydantic import BaseModel, Field, model_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from enum import Enum


class WorkOrderStatus(str, Enum):
    QUOTE = "quote"
    CONTRACTED = "contracted"
    IN_PROGRESS = "in_progress"
    SUSPENDED = "suspended"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class WorkOrderBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=50, description="Clave de la obra")
    name: str = Field(..., min_length=1, max_length=200, description="Nombre de la obra")
    description: Optional[str] = None
    client_name: Optional[str] = Field(None, max_length=200)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    contract_amount: Decimal = Field(Decimal("0"), ge=0, description="Monto del contrato")
    advance_pct: Decimal = Field(Decimal("0"), ge=0, le=100, description="Porcentaje de anticipo")
    retention_pct: Decimal = Field(Decimal("0"), ge=0, le=100, description="Porcentaje de retención")

    @model_validator(mode="after")
    def validate_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("La fecha de término no puede ser anterior a la de inicio")
        return self

    @model_validator(mode="after")
    def validate_deductions(self):
        # Anticipo y retención se descuentan del mismo importe bruto
        if self.advance_pct + self.retention_pct > 100:
            raise ValueError("La suma de anticipo y retención no puede exceder 100%")
        return self


class WorkOrderCreate(WorkOrderBase):
    status: WorkOrderStatus = WorkOrderStatus.IN_PROGRESS


class WorkOrderOut(WorkOrderBase):
    id: UUID
    status: WorkOrderStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class WorkOrderList(BaseModel):
    items: List[WorkOrderOut]
    total: int
    limit: int
    offset: int
