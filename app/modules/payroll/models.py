"""
Modelos SQLAlchemy para Nómina
"""
from app.database.database import Base
from sqlalchemy import (
    Column, String, Integer, Boolean, Numeric, Enum, Date, DateTime, Text, ForeignKey,
    UniqueConstraint, CheckConstraint, Uuid
)
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin
import enum


class PayrollPeriodType(str, enum.Enum):
    SEMANAL = "SEMANAL"
    QUINCENAL = "QUINCENAL"
    MENSUAL = "MENSUAL"


class PayrollPeriodStatus(str, enum.Enum):
    """Estados de un periodo de nómina"""
    DRAFT = "DRAFT"       # En captura
    CLOSED = "CLOSED"     # Cerrado, listo para pago
    PAID = "PAID"         # Pagado


class Employee(Base, TenantMixin, TimestampMixin):
    __tablename__ = "empleados"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(200), nullable=False)
    position = Column(String(100), nullable=True)
    daily_wage = Column(Numeric(15, 2), nullable=False)
    phone = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True)


class PayrollPeriod(Base, TenantMixin, TimestampMixin):
    """Periodo de nómina. ``total`` = Σ total_pay de sus detalles."""
    __tablename__ = "periodos_nomina"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    period_type = Column(Enum(PayrollPeriodType), nullable=False)
    year = Column(Integer, nullable=False)
    week = Column(Integer, nullable=True)
    fortnight = Column(Integer, nullable=True)
    month = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    work_order_id = Column(Uuid(as_uuid=True), ForeignKey("obras.id"), nullable=True, index=True)
    status = Column(Enum(PayrollPeriodStatus), nullable=False, default=PayrollPeriodStatus.DRAFT, index=True)
    total = Column(Numeric(15, 2), nullable=False, default=0)
    closed_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    work_order = relationship("WorkOrder")
    lines = relationship("PayrollLine", back_populates="period", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("end_date >= start_date", name="ck_periodo_nomina_fechas"),
    )


class PayrollLine(Base, TenantMixin, TimestampMixin):
    """
    Detalle de nómina por empleado.
    ``base_amount`` = días × salario diario; ``total_pay`` = base + extras − deducciones.
    """
    __tablename__ = "detalles_nomina"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    payroll_period_id = Column(Uuid(as_uuid=True), ForeignKey("periodos_nomina.id"), nullable=False, index=True)
    employee_id = Column(Uuid(as_uuid=True), ForeignKey("empleados.id"), nullable=False, index=True)
    days_worked = Column(Numeric(5, 2), nullable=False)
    daily_wage = Column(Numeric(15, 2), nullable=False)
    base_amount = Column(Numeric(15, 2), nullable=False)
    extras = Column(Numeric(15, 2), nullable=False, default=0)
    deductions = Column(Numeric(15, 2), nullable=False, default=0)
    total_pay = Column(Numeric(15, 2), nullable=False)
    notes = Column(Text, nullable=True)

    period = relationship("PayrollPeriod", back_populates="lines")
    employee = relationship("Employee")

    __table_args__ = (
        UniqueConstraint("payroll_period_id", "employee_id", name="uq_detalle_nomina_empleado"),
        CheckConstraint("total_pay >= 0", name="ck_detalle_nomina_total"),
    )
