"""
Modelos SQLAlchemy para Contabilidad
"""
from app.database.database import Base
from sqlalchemy import Column, String, Integer, Boolean, Date, ForeignKey, Numeric, Enum, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin
import enum


class LedgerAccountType(str, enum.Enum):
    ACTIVO = "ACTIVO"
    PASIVO = "PASIVO"
    CAPITAL = "CAPITAL"
    INGRESOS = "INGRESOS"
    EGRESOS = "EGRESOS"


class JournalEntryKind(str, enum.Enum):
    DIARIO = "DIARIO"
    INGRESO = "INGRESO"
    EGRESO = "EGRESO"


class LedgerAccount(Base, TenantMixin, TimestampMixin):
    """Cuenta del catálogo contable"""
    __tablename__ = "cuentas_contables"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    code = Column(String(30), nullable=False)
    name = Column(String(200), nullable=False)
    account_type = Column(Enum(LedgerAccountType), nullable=False)
    is_active = Column(Boolean, default=True)

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_cuenta_contable_codigo"),
    )


class JournalEntry(Base, TenantMixin, TimestampMixin):
    """Póliza contable"""
    __tablename__ = "polizas"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    kind = Column(Enum(JournalEntryKind), nullable=False)
    folio = Column(Integer, nullable=False)
    entry_date = Column(Date, nullable=False)
    concept = Column(Text, nullable=False)
    total_debit = Column(Numeric(15, 2), nullable=False, default=0)
    total_credit = Column(Numeric(15, 2), nullable=False, default=0)
    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)

    lines = relationship(
        "JournalEntryLine",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalEntryLine.position"
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "kind", "folio", name="uq_poliza_tipo_folio"),
    )


class JournalEntryLine(Base, TenantMixin):
    """Movimiento de póliza: un cargo (debe) o un abono (haber)"""
    __tablename__ = "movimientos_poliza"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    entry_id = Column(Uuid(as_uuid=True), ForeignKey("polizas.id"), nullable=False, index=True)
    ledger_account_id = Column(Uuid(as_uuid=True), ForeignKey("cuentas_contables.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    description = Column(String(255), nullable=True)
    debit = Column(Numeric(15, 2), nullable=False, default=0)
    credit = Column(Numeric(15, 2), nullable=False, default=0)

    entry = relationship("JournalEntry", back_populates="lines")
    ledger_account = relationship("LedgerAccount")
