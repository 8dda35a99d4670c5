"""
Modelos SQLAlchemy para Maquinaria
"""
from app.database.database import Base
from sqlalchemy import (
    Column, String, Integer, Boolean, Numeric, Enum, Date, Text, ForeignKey,
    UniqueConstraint, CheckConstraint, Index, Uuid, true
)
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin
import enum


class MachineStatus(str, enum.Enum):
    """Estados de un equipo"""
    DISPONIBLE = "DISPONIBLE"
    EN_OBRA = "EN_OBRA"
    MANTENIMIENTO = "MANTENIMIENTO"
    REPARACION = "REPARACION"
    BAJA = "BAJA"


class Machine(Base, TenantMixin, TimestampMixin):
    """Equipo o maquinaria. ``hour_meter`` es la última lectura del horómetro."""
    __tablename__ = "maquinaria"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    code = Column(String(50), nullable=False)
    description = Column(String(200), nullable=False)
    brand = Column(String(100), nullable=True)
    model = Column(String(100), nullable=True)
    serial_number = Column(String(100), nullable=True)
    year = Column(Integer, nullable=True)
    status = Column(Enum(MachineStatus), nullable=False, default=MachineStatus.DISPONIBLE, index=True)
    hourly_cost = Column(Numeric(15, 2), nullable=True)
    daily_rent = Column(Numeric(15, 2), nullable=True)
    hour_meter = Column(Numeric(12, 2), nullable=False, default=0)
    location = Column(String(200), nullable=True)

    assignments = relationship(
        "MachineAssignment",
        back_populates="machine",
        cascade="all, delete-orphan",
        order_by="MachineAssignment.start_date.desc()"
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_maquinaria_codigo"),
    )


class MachineAssignment(Base, TenantMixin, TimestampMixin):
    """Salida de un equipo a obra; ``is_active`` mientras no regresa."""
    __tablename__ = "asignaciones_maquinaria"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    machine_id = Column(Uuid(as_uuid=True), ForeignKey("maquinaria.id"), nullable=False, index=True)
    work_order_id = Column(Uuid(as_uuid=True), ForeignKey("obras.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    hour_meter_start = Column(Numeric(12, 2), nullable=False)
    hour_meter_end = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    notes = Column(Text, nullable=True)

    machine = relationship("Machine", back_populates="assignments")
    work_order = relationship("WorkOrder")

    @property
    def hours_used(self):
        if self.hour_meter_end is None:
            return None
        return self.hour_meter_end - self.hour_meter_start

    __table_args__ = (
        CheckConstraint(
            "hour_meter_end IS NULL OR hour_meter_end >= hour_meter_start",
            name="ck_asignacion_horometro"
        ),
        # A lo más una asignación activa por equipo
        Index(
            "uq_asignacion_activa",
            "machine_id",
            unique=True,
            postgresql_where=is_active == true(),
            sqlite_where=is_active == true(),
        ),
    )
