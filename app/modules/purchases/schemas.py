"""
Esquemas Pydantic para el módulo de Compras
"""
from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from enum import Enum


class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PARTIAL = "PARTIAL"
    COMPLETE = "COMPLETE"
    CANCELLED = "CANCELLED"


# ===== SUPPLIER SCHEMAS =====

class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200, description="Nombre del proveedor")
    rfc: Optional[str] = Field(None, min_length=12, max_length=13, description="RFC del proveedor")
    email: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        if v and v.strip():
            if "@" not in v or "." not in v:
                raise ValueError("Email debe tener formato válido")
        return v

    @field_validator("rfc")
    @classmethod
    def normalize_rfc(cls, v):
        return v.strip().upper() if v else v


class SupplierOut(SupplierCreate):
    id: UUID
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


# ===== PURCHASE ORDER SCHEMAS =====

class PurchaseOrderLineCreate(BaseModel):
    product_id: UUID = Field(..., description="ID del producto")
    quantity: Decimal = Field(..., gt=0, description="Cantidad a ordenar")
    unit_price: Decimal = Field(..., ge=0, description="Precio unitario")


class PurchaseOrderLineOut(BaseModel):
    id: UUID
    product_id: UUID
    description: str
    unit: str
    quantity_ordered: Decimal
    quantity_received: Decimal
    unit_price: Decimal
    amount: Decimal

    class Config:
        from_attributes = True


class PurchaseOrderCreate(BaseModel):
    supplier_id: UUID = Field(..., description="ID del proveedor")
    work_order_id: Optional[UUID] = Field(None, description="Obra a la que se destina el material")
    issue_date: Optional[date] = None
    expected_date: Optional[date] = None
    notes: Optional[str] = None
    lines: List[PurchaseOrderLineCreate] = Field(..., min_length=1, description="Partidas de la orden")


class PurchaseOrderOut(BaseModel):
    id: UUID
    folio: int
    supplier_id: UUID
    work_order_id: Optional[UUID] = None
    issue_date: date
    expected_date: Optional[date] = None
    status: PurchaseOrderStatus
    notes: Optional[str] = None
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    paid: Decimal
    outstanding: Decimal = Decimal("0")
    created_at: datetime

    class Config:
        from_attributes = True


class PurchaseOrderDetail(PurchaseOrderOut):
    lines: List[PurchaseOrderLineOut] = []
    supplier_name: Optional[str] = None


class PurchaseOrderList(BaseModel):
    items: List[PurchaseOrderOut]
    total: int
    limit: int
    offset: int


# ===== RECEIVING SCHEMAS =====

class ReceiveLine(BaseModel):
    line_id: UUID = Field(..., description="ID de la partida de la orden")
    quantity: Decimal = Field(..., description="Cantidad recibida en este evento")


class ReceiveRequest(BaseModel):
    lines: List[ReceiveLine] = Field(..., min_length=1)
    notes: Optional[str] = None
