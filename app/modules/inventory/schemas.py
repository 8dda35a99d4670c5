from pydantic import BaseModel, Field, model_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from enum import Enum


class MovementType(str, Enum):
    COMPRA = "COMPRA"
    ENTRADA = "ENTRADA"
    SALIDA_OBRA = "SALIDA_OBRA"
    DEVOLUCION_OBRA = "DEVOLUCION_OBRA"
    AJUSTE_POSITIVO = "AJUSTE_POSITIVO"
    AJUSTE_NEGATIVO = "AJUSTE_NEGATIVO"


# Product schemas
class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=200)
    unit: str = Field("PZA", max_length=20)
    min_stock: Decimal = Field(Decimal("0"), ge=0)


class ProductOut(BaseModel):
    id: UUID
    sku: str
    name: str
    unit: str
    stock: Decimal
    min_stock: Decimal
    last_purchase_price: Optional[Decimal] = None
    is_active: bool

    class Config:
        from_attributes = True


# Movement schemas
class InventoryMovementCreate(BaseModel):
    product_id: UUID
    movement_type: MovementType
    quantity: Decimal = Field(..., gt=0, description="Cantidad positiva; el sentido lo define el tipo")
    unit_cost: Optional[Decimal] = Field(None, ge=0)
    work_order_id: Optional[UUID] = None
    reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_type(self):
        if self.movement_type == MovementType.COMPRA:
            raise ValueError("Los movimientos de compra se generan al recibir órdenes de compra")
        if self.movement_type == MovementType.SALIDA_OBRA and not self.work_order_id:
            raise ValueError("Las salidas a obra requieren la obra destino")
        return self


class InventoryMovementOut(BaseModel):
    id: UUID
    product_id: UUID
    movement_type: MovementType
    quantity: Decimal
    stock_after: Decimal
    unit_cost: Optional[Decimal] = None
    work_order_id: Optional[UUID] = None
    reference: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[UUID] = None
    created_at: datetime

    # Joined data
    product_name: Optional[str] = None
    product_sku: Optional[str] = None

    class Config:
        from_attributes = True


class InventoryMovementList(BaseModel):
    items: List[InventoryMovementOut]
    total: int
    limit: int
    offset: int
