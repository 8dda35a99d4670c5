from app.database.database import Base
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Numeric, Enum, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin
import enum


class MovementType(str, enum.Enum):
    """Tipos de movimiento de inventario"""
    COMPRA = "COMPRA"                       # Recepción de orden de compra
    ENTRADA = "ENTRADA"
    SALIDA_OBRA = "SALIDA_OBRA"
    DEVOLUCION_OBRA = "DEVOLUCION_OBRA"
    AJUSTE_POSITIVO = "AJUSTE_POSITIVO"
    AJUSTE_NEGATIVO = "AJUSTE_NEGATIVO"


INWARD_MOVEMENTS = {
    MovementType.COMPRA,
    MovementType.ENTRADA,
    MovementType.DEVOLUCION_OBRA,
    MovementType.AJUSTE_POSITIVO,
}


class Product(Base, TenantMixin, TimestampMixin):
    """Material o insumo con existencia en almacén"""
    __tablename__ = "productos"

    id = Column(Uuid(as_uuid=True), primary_key=True, index=True, default=uuid4)
    sku = Column(String(50), nullable=False)
    name = Column(String(200), nullable=False)
    unit = Column(String(20), nullable=False, default="PZA")
    stock = Column(Numeric(14, 4), nullable=False, default=0)
    min_stock = Column(Numeric(14, 4), nullable=False, default=0)
    last_purchase_price = Column(Numeric(15, 2), nullable=True)
    is_active = Column(Boolean, default=True)

    movements = relationship("InventoryMovement", back_populates="product")

    __table_args__ = (
        UniqueConstraint("tenant_id", "sku", name="uq_producto_tenant_sku"),
    )


class InventoryMovement(Base, TenantMixin):
    """
    Movimiento de inventario. ``quantity`` siempre es positiva; el sentido lo
    da ``movement_type``. ``stock_after`` guarda la existencia resultante.
    """
    __tablename__ = "movimientos_inventario"

    id = Column(Uuid(as_uuid=True), primary_key=True, index=True, default=uuid4)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("productos.id"), nullable=False, index=True)
    movement_type = Column(Enum(MovementType), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False)
    stock_after = Column(Numeric(14, 4), nullable=False)
    unit_cost = Column(Numeric(15, 2), nullable=True)
    work_order_id = Column(Uuid(as_uuid=True), ForeignKey("obras.id"), nullable=True)
    reference = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    product = relationship("Product", back_populates="movements")
