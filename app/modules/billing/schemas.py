"""
Esquemas Pydantic para Estimaciones
"""
from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from enum import Enum


class BillingPeriodStatus(str, Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    INVOICED = "INVOICED"
    CANCELLED = "CANCELLED"


class BillingPeriodCreate(BaseModel):
    period: str = Field(..., min_length=1, max_length=100, description="Periodo, ej. '01-15 marzo 2025'")
    cutoff_date: date = Field(..., description="Fecha de corte")
    number: Optional[int] = Field(None, ge=1, description="Número de estimación; consecutivo si se omite")
    notes: Optional[str] = None


class BillingLineCreate(BaseModel):
    budget_line_id: UUID
    executed_quantity: Decimal = Field(..., description="Cantidad ejecutada en el periodo")


class BillingLineOut(BaseModel):
    id: UUID
    billing_period_id: UUID
    budget_line_id: UUID
    executed_quantity: Decimal
    cumulative_quantity: Decimal
    unit_price: Decimal
    amount: Decimal

    # Joined data
    key: Optional[str] = None
    description: Optional[str] = None
    unit: Optional[str] = None

    class Config:
        from_attributes = True


class BillingPeriodOut(BaseModel):
    id: UUID
    work_order_id: UUID
    budget_version_id: UUID
    number: int
    period: str
    cutoff_date: date
    status: BillingPeriodStatus
    notes: Optional[str] = None
    gross_amount: Decimal
    amortization: Decimal
    retention: Decimal
    net_amount: Decimal
    paid: Decimal
    outstanding: Decimal = Decimal("0")
    submitted_at: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    invoiced_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class BillingPeriodDetail(BillingPeriodOut):
    lines: List[BillingLineOut] = []


class BillingPeriodList(BaseModel):
    items: List[BillingPeriodOut]
    total: int
    limit: int
    offset: int
