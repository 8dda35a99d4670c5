"""
Pydantic schemas for Reports module
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class DashboardSummary(BaseModel):
    """Resumen de la empresa"""
    bank_balance: Decimal = Field(..., description="Saldo total en cuentas activas")
    receivables: Decimal = Field(..., description="Saldo por cobrar de estimaciones facturadas")
    invoiced_periods: int
    to_invoice: Decimal = Field(..., description="Neto de estimaciones aprobadas sin facturar")
    approved_periods: int
    pending_approval_periods: int
    payables: Decimal = Field(..., description="Saldo por pagar de órdenes de compra")
    purchase_orders_by_status: Dict[str, int]
    active_work_orders: int
    total_work_orders: int
    low_stock_products: int


class ReceivableItem(BaseModel):
    billing_period_id: UUID
    work_order_code: str
    work_order_name: str
    client_name: Optional[str] = None
    number: int
    period: str
    net_amount: Decimal
    paid: Decimal
    outstanding: Decimal


class AccountsReceivableResponse(BaseModel):
    items: List[ReceivableItem]
    total_outstanding: Decimal


class PayableItem(BaseModel):
    purchase_order_id: UUID
    folio: int
    supplier_name: str
    status: str
    issue_date: date
    total: Decimal
    paid: Decimal
    outstanding: Decimal


class AccountsPayableResponse(BaseModel):
    items: List[PayableItem]
    total_outstanding: Decimal
