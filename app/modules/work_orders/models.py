"""
Modelos SQLAlchemy para Obras
"""
from app.database.database import Base
from sqlalchemy import Column, String, Numeric, Enum, Date, Text, UniqueConstraint, CheckConstraint, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin
import enum


class WorkOrderStatus(str, enum.Enum):
    """Estados de una obra"""
    QUOTE = "quote"               # Cotización
    CONTRACTED = "contracted"     # Contratada
    IN_PROGRESS = "in_progress"   # En proceso
    SUSPENDED = "suspended"       # Suspendida
    FINISHED = "finished"         # Terminada
    CANCELLED = "cancelled"       # Cancelada


class WorkOrder(Base, TenantMixin, TimestampMixin):
    """
    Obra / contrato de construcción

    ``advance_pct`` es el anticipo que se amortiza en cada estimación y
    ``retention_pct`` el fondo de garantía retenido sobre el importe bruto.
    """
    __tablename__ = "obras"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    code = Column(String(50), nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    client_name = Column(String(200), nullable=True)
    status = Column(Enum(WorkOrderStatus), nullable=False, default=WorkOrderStatus.IN_PROGRESS, index=True)

    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)

    contract_amount = Column(Numeric(15, 2), nullable=False, default=0)
    advance_pct = Column(Numeric(5, 2), nullable=False, default=0)
    retention_pct = Column(Numeric(5, 2), nullable=False, default=0)

    # Relationships
    budget_versions = relationship("BudgetVersion", back_populates="work_order", cascade="all, delete-orphan")
    billing_periods = relationship("BillingPeriod", back_populates="work_order", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_obra_tenant_code"),
        CheckConstraint("advance_pct + retention_pct <= 100", name="ck_obra_deducciones"),
    )
