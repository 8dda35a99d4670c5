"""
Modelos SQLAlchemy para Estimaciones
"""
from app.database.database import Base
from sqlalchemy import Column, String, Integer, Numeric, Enum, Date, DateTime, Text, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin
import enum


class BillingPeriodStatus(str, enum.Enum):
    """Estados de una estimación"""
    DRAFT = "DRAFT"           # Borrador
    PENDING = "PENDING"       # Enviada a revisión
    APPROVED = "APPROVED"     # Autorizada por el cliente
    INVOICED = "INVOICED"     # Facturada
    CANCELLED = "CANCELLED"   # Cancelada


class BillingPeriod(Base, TenantMixin, TimestampMixin):
    """Estimación de avance de una obra"""
    __tablename__ = "estimaciones"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    work_order_id = Column(Uuid(as_uuid=True), ForeignKey("obras.id"), nullable=False, index=True)
    budget_version_id = Column(Uuid(as_uuid=True), ForeignKey("presupuestos.id"), nullable=False)
    number = Column(Integer, nullable=False)
    period = Column(String(100), nullable=False)
    cutoff_date = Column(Date, nullable=False)
    status = Column(Enum(BillingPeriodStatus), nullable=False, default=BillingPeriodStatus.DRAFT, index=True)
    notes = Column(Text, nullable=True)

    # Totales
    gross_amount = Column(Numeric(15, 2), nullable=False, default=0)
    amortization = Column(Numeric(15, 2), nullable=False, default=0)
    retention = Column(Numeric(15, 2), nullable=False, default=0)
    net_amount = Column(Numeric(15, 2), nullable=False, default=0)
    paid = Column(Numeric(15, 2), nullable=False, default=0)

    submitted_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    invoiced_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    work_order = relationship("WorkOrder", back_populates="billing_periods")
    budget_version = relationship("BudgetVersion")
    lines = relationship("BillingLine", back_populates="billing_period", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("work_order_id", "number", name="uq_estimacion_obra_numero"),
    )


class BillingLine(Base, TenantMixin, TimestampMixin):
    """
    Concepto estimado. ``cumulative_quantity`` guarda el acumulado del concepto
    (estimaciones anteriores no canceladas + esta) al momento de capturarlo.
    """
    __tablename__ = "conceptos_estimacion"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    billing_period_id = Column(Uuid(as_uuid=True), ForeignKey("estimaciones.id"), nullable=False, index=True)
    budget_line_id = Column(Uuid(as_uuid=True), ForeignKey("conceptos_presupuesto.id"), nullable=False, index=True)
    executed_quantity = Column(Numeric(14, 4), nullable=False)
    cumulative_quantity = Column(Numeric(14, 4), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    amount = Column(Numeric(20, 6), nullable=False)

    billing_period = relationship("BillingPeriod", back_populates="lines")
    budget_line = relationship("BudgetLine")

    __table_args__ = (
        UniqueConstraint("billing_period_id", "budget_line_id", name="uq_concepto_estimacion"),
    )
