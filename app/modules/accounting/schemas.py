"""
Esquemas Pydantic para Contabilidad
"""
from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from enum import Enum


class LedgerAccountType(str, Enum):
    ACTIVO = "ACTIVO"
    PASIVO = "PASIVO"
    CAPITAL = "CAPITAL"
    INGRESOS = "INGRESOS"
    EGRESOS = "EGRESOS"


class JournalEntryKind(str, Enum):
    DIARIO = "DIARIO"
    INGRESO = "INGRESO"
    EGRESO = "EGRESO"


class LedgerAccountCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=30, description="Código, ej. 102-01")
    name: str = Field(..., min_length=1, max_length=200)
    account_type: LedgerAccountType


class LedgerAccountOut(LedgerAccountCreate):
    id: UUID
    is_active: bool

    class Config:
        from_attributes = True


class JournalEntryLineCreate(BaseModel):
    ledger_account_id: UUID
    description: Optional[str] = Field(None, max_length=255)
    debit: Decimal = Field(Decimal("0"), description="Cargo")
    credit: Decimal = Field(Decimal("0"), description="Abono")


class JournalEntryLineOut(BaseModel):
    id: UUID
    ledger_account_id: UUID
    description: Optional[str] = None
    debit: Decimal
    credit: Decimal

    class Config:
        from_attributes = True


class JournalEntryCreate(BaseModel):
    kind: JournalEntryKind
    entry_date: date
    concept: str = Field(..., min_length=1, description="Concepto de la póliza")
    lines: List[JournalEntryLineCreate] = Field(..., description="Movimientos (al menos 2)")


class JournalEntryOut(BaseModel):
    id: UUID
    kind: JournalEntryKind
    folio: int
    entry_date: date
    concept: str
    total_debit: Decimal
    total_credit: Decimal
    created_at: datetime
    lines: List[JournalEntryLineOut] = []

    class Config:
        from_attributes = True


class JournalEntryList(BaseModel):
    items: List[JournalEntryOut]
    total: int
    limit: int
    offset: int
