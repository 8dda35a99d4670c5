"""
Esquemas Pydantic para Tesorería
"""
from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from enum import Enum


class TransactionKind(str, Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class BankAccountCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    bank: Optional[str] = Field(None, max_length=100)
    account_number: Optional[str] = Field(None, max_length=30)
    clabe: Optional[str] = Field(None, min_length=18, max_length=18, description="CLABE interbancaria")
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    opening_balance: Decimal = Field(Decimal("0"), description="Saldo inicial")


class BankAccountOut(BaseModel):
    id: UUID
    name: str
    bank: Optional[str] = None
    account_number: Optional[str] = None
    clabe: Optional[str] = None
    currency: str
    balance: Decimal
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CashTransactionCreate(BaseModel):
    kind: TransactionKind
    amount: Decimal = Field(..., description="Monto positivo")
    transaction_date: Optional[date] = None
    description: Optional[str] = Field(None, max_length=255)
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    purchase_order_id: Optional[UUID] = Field(None, description="Orden de compra a la que se aplica el egreso")
    billing_period_id: Optional[UUID] = Field(None, description="Estimación a la que se aplica el ingreso")


class CashTransactionOut(BaseModel):
    id: UUID
    account_id: UUID
    kind: TransactionKind
    amount: Decimal
    balance_after: Decimal
    transaction_date: date
    description: Optional[str] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    purchase_order_id: Optional[UUID] = None
    billing_period_id: Optional[UUID] = None
    created_by: Optional[UUID] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CashTransactionList(BaseModel):
    items: List[CashTransactionOut]
    total: int
    limit: int
    offset: int


class OutstandingBalanceOut(BaseModel):
    document_type: str
    document_id: UUID
    total: Decimal
    paid: Decimal
    outstanding: Decimal
