"""
Esquemas Pydantic para Presupuestos
"""
from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime


class BudgetLineCreate(BaseModel):
    key: str = Field(..., min_length=1, max_length=50, description="Clave del concepto")
    description: str = Field(..., min_length=1)
    unit: str = Field(..., min_length=1, max_length=20)
    quantity: Decimal = Field(..., description="Cantidad presupuestada")
    unit_price: Decimal = Field(..., description="Precio unitario")

    @field_validator("key")
    @classmethod
    def normalize_key(cls, v):
        return v.strip().upper()


class BudgetLineOut(BaseModel):
    id: UUID
    budget_version_id: UUID
    key: str
    description: str
    unit: str
    quantity: Decimal
    unit_price: Decimal
    amount: Decimal

    class Config:
        from_attributes = True


class BudgetVersionCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    is_current: bool = Field(False, description="Marcar como presupuesto vigente al crearlo")
    lines: List[BudgetLineCreate] = []


class BudgetVersionOut(BaseModel):
    id: UUID
    work_order_id: UUID
    version: int
    name: str
    description: Optional[str] = None
    is_current: bool
    created_at: datetime

    class Config:
        from_attributes = True


class BudgetVersionDetail(BudgetVersionOut):
    lines: List[BudgetLineOut] = []
    total_amount: Decimal = Decimal("0")


# Avance físico-financiero
class BudgetLineProgress(BaseModel):
    budget_line_id: UUID
    key: str
    description: str
    unit: str
    unit_price: Decimal
    budgeted_quantity: Decimal
    budgeted_amount: Decimal
    executed_quantity: Decimal
    executed_amount: Decimal
    pending_quantity: Decimal
    pending_amount: Decimal
    progress_pct: Decimal


class BudgetProgress(BaseModel):
    budget_version_id: UUID
    work_order_id: UUID
    lines: List[BudgetLineProgress]
    budgeted_amount: Decimal
    executed_amount: Decimal
    pending_amount: Decimal
    progress_pct: Decimal
