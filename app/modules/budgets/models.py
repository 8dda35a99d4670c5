"""
Modelos SQLAlchemy para Presupuestos
"""
from app.database.database import Base
from sqlalchemy import Column, String, Integer, Boolean, Numeric, Text, ForeignKey, UniqueConstraint, Index, Uuid, true
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin


class BudgetVersion(Base, TenantMixin, TimestampMixin):
    """Versión de presupuesto de una obra"""
    __tablename__ = "presupuestos"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    work_order_id = Column(Uuid(as_uuid=True), ForeignKey("obras.id"), nullable=False, index=True)
    version = Column(Integer, nullable=False)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    is_current = Column(Boolean, nullable=False, default=False)

    # Relationships
    work_order = relationship("WorkOrder", back_populates="budget_versions")
    lines = relationship(
        "BudgetLine",
        back_populates="budget_version",
        cascade="all, delete-orphan",
        order_by="BudgetLine.key"
    )

    __table_args__ = (
        UniqueConstraint("work_order_id", "version", name="uq_presupuesto_obra_version"),
        # A lo más un presupuesto vigente por obra
        Index(
            "uq_presupuesto_vigente",
            "work_order_id",
            unique=True,
            postgresql_where=is_current == true(),
            sqlite_where=is_current == true(),
        ),
    )


class BudgetLine(Base, TenantMixin, TimestampMixin):
    """Concepto de presupuesto. ``amount`` = cantidad × precio unitario, exacto."""
    __tablename__ = "conceptos_presupuesto"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    budget_version_id = Column(Uuid(as_uuid=True), ForeignKey("presupuestos.id"), nullable=False, index=True)
    key = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    unit = Column(String(20), nullable=False)
    quantity = Column(Numeric(14, 4), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    amount = Column(Numeric(20, 6), nullable=False)

    budget_version = relationship("BudgetVersion", back_populates="lines")

    __table_args__ = (
        UniqueConstraint("budget_version_id", "key", name="uq_concepto_presupuesto_clave"),
    )
