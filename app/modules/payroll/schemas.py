"""
Esquemas Pydantic para Nómina
"""
from pydantic import BaseModel, Field, model_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from enum import Enum


class PayrollPeriodType(str, Enum):
    SEMANAL = "SEMANAL"
    QUINCENAL = "QUINCENAL"
    MENSUAL = "MENSUAL"


class PayrollPeriodStatus(str, Enum):
    DRAFT = "DRAFT"
    CLOSED = "CLOSED"
    PAID = "PAID"


# ===== EMPLOYEE SCHEMAS =====

class EmployeeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Nombre del empleado")
    position: Optional[str] = Field(None, max_length=100, description="Puesto")
    daily_wage: Decimal = Field(..., ge=0, description="Salario diario")
    phone: Optional[str] = Field(None, max_length=50)


class EmployeeOut(EmployeeCreate):
    id: UUID
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


# ===== PERIOD SCHEMAS =====

class PayrollPeriodCreate(BaseModel):
    period_type: PayrollPeriodType
    year: int = Field(..., ge=2000, le=2100)
    week: Optional[int] = Field(None, ge=1, le=53)
    fortnight: Optional[int] = Field(None, ge=1, le=24)
    month: Optional[int] = Field(None, ge=1, le=12)
    start_date: date
    end_date: date
    work_order_id: Optional[UUID] = Field(None, description="Obra a la que se carga la nómina")

    @model_validator(mode="after")
    def validate_period(self):
        if self.end_date < self.start_date:
            raise ValueError("La fecha final no puede ser anterior a la inicial")
        required = {
            PayrollPeriodType.SEMANAL: ("week", self.week),
            PayrollPeriodType.QUINCENAL: ("fortnight", self.fortnight),
            PayrollPeriodType.MENSUAL: ("month", self.month),
        }[self.period_type]
        if required[1] is None:
            raise ValueError(f"El periodo {self.period_type.value} requiere el campo {required[0]}")
        return self


class PayrollLineInput(BaseModel):
    """Captura de un empleado; si ya tiene detalle en el periodo se actualiza"""
    employee_id: UUID
    days_worked: Decimal = Field(..., ge=0)
    daily_wage: Optional[Decimal] = Field(None, ge=0, description="Por omisión, el salario del empleado")
    extras: Decimal = Field(Decimal("0"), ge=0)
    deductions: Decimal = Field(Decimal("0"), ge=0)
    notes: Optional[str] = None


class PayrollLinesUpdate(BaseModel):
    lines: List[PayrollLineInput] = Field(..., min_length=1)


class PayrollLineOut(BaseModel):
    id: UUID
    employee_id: UUID
    employee_name: Optional[str] = None
    days_worked: Decimal
    daily_wage: Decimal
    base_amount: Decimal
    extras: Decimal
    deductions: Decimal
    total_pay: Decimal
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class PayrollPeriodOut(BaseModel):
    id: UUID
    period_type: PayrollPeriodType
    year: int
    week: Optional[int] = None
    fortnight: Optional[int] = None
    month: Optional[int] = None
    start_date: date
    end_date: date
    work_order_id: Optional[UUID] = None
    status: PayrollPeriodStatus
    total: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


class PayrollPeriodDetail(PayrollPeriodOut):
    lines: List[PayrollLineOut] = []


class PayrollPeriodList(BaseModel):
    items: List[PayrollPeriodOut]
    total: int
    limit: int
    offset: int
