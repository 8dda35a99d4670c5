"""
Modelos SQLAlchemy para el módulo de Compras
"""
from app.database.database import Base
from sqlalchemy import Column, String, Integer, Boolean, DateTime, ForeignKey, Numeric, Enum, Date, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import date
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin
import enum


# ===== ENUMS =====

class PurchaseOrderStatus(str, enum.Enum):
    """Estados de órdenes de compra"""
    DRAFT = "DRAFT"           # Borrador
    SENT = "SENT"             # Enviada al proveedor
    PARTIAL = "PARTIAL"       # Recibida parcialmente
    COMPLETE = "COMPLETE"     # Recibida completa
    CANCELLED = "CANCELLED"   # Cancelada


RECEIVABLE_STATUSES = {PurchaseOrderStatus.SENT, PurchaseOrderStatus.PARTIAL}


# ===== MODELOS =====

class Supplier(Base, TenantMixin, TimestampMixin):
    """Proveedores de materiales y servicios"""
    __tablename__ = "proveedores"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False)
    rfc = Column(String(13), nullable=True)
    email = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True)

    purchase_orders = relationship("PurchaseOrder", back_populates="supplier")


class PurchaseOrder(Base, TenantMixin, TimestampMixin):
    """
    Órdenes de compra a proveedores

    ``tax`` es el IVA sobre el subtotal; ``paid`` lo actualiza tesorería.
    """
    __tablename__ = "ordenes_compra"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    folio = Column(Integer, nullable=False)
    supplier_id = Column(Uuid(as_uuid=True), ForeignKey("proveedores.id"), nullable=False, index=True)
    work_order_id = Column(Uuid(as_uuid=True), ForeignKey("obras.id"), nullable=True, index=True)

    issue_date = Column(Date, nullable=False, default=date.today)
    expected_date = Column(Date, nullable=True)
    status = Column(Enum(PurchaseOrderStatus), nullable=False, default=PurchaseOrderStatus.DRAFT, index=True)
    notes = Column(Text, nullable=True)

    # Totales calculados
    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    tax = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)
    paid = Column(Numeric(15, 2), nullable=False, default=0)

    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    supplier = relationship("Supplier", back_populates="purchase_orders")
    lines = relationship(
        "PurchaseOrderLine",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLine.position"
    )
    receipts = relationship("PurchaseReceipt", back_populates="purchase_order", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("tenant_id", "folio", name="uq_orden_compra_folio"),
    )


class PurchaseOrderLine(Base, TenantMixin):
    """Partidas de una orden de compra"""
    __tablename__ = "detalles_orden_compra"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    purchase_order_id = Column(Uuid(as_uuid=True), ForeignKey("ordenes_compra.id"), nullable=False, index=True)
    product_id = Column(Uuid(as_uuid=True), ForeignKey("productos.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    # Snapshot del producto al momento de la orden
    description = Column(String(200), nullable=False)
    unit = Column(String(20), nullable=False)

    quantity_ordered = Column(Numeric(14, 4), nullable=False)
    quantity_received = Column(Numeric(14, 4), nullable=False, default=0)
    unit_price = Column(Numeric(15, 2), nullable=False)
    amount = Column(Numeric(20, 6), nullable=False)

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="lines")
    product = relationship("Product")


class PurchaseReceipt(Base, TenantMixin):
    """Evento de recepción de material (una o varias partidas)"""
    __tablename__ = "recepciones_compra"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    purchase_order_id = Column(Uuid(as_uuid=True), ForeignKey("ordenes_compra.id"), nullable=False, index=True)
    received_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    received_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    notes = Column(Text, nullable=True)

    purchase_order = relationship("PurchaseOrder", back_populates="receipts")
    lines = relationship("PurchaseReceiptLine", back_populates="receipt", cascade="all, delete-orphan")


class PurchaseReceiptLine(Base, TenantMixin):
    __tablename__ = "detalles_recepcion_compra"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    receipt_id = Column(Uuid(as_uuid=True), ForeignKey("recepciones_compra.id"), nullable=False, index=True)
    order_line_id = Column(Uuid(as_uuid=True), ForeignKey("detalles_orden_compra.id"), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False)

    receipt = relationship("PurchaseReceipt", back_populates="lines")
    order_line = relationship("PurchaseOrderLine")
