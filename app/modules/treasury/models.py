"""
Modelos SQLAlchemy para Tesorería
"""
from app.database.database import Base
from sqlalchemy import Column, String, Boolean, DateTime, Date, ForeignKey, Numeric, Enum, Text, CheckConstraint, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from datetime import date
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin
import enum


class TransactionKind(str, enum.Enum):
    INCOME = "INCOME"     # Ingreso / cobro
    EXPENSE = "EXPENSE"   # Egreso / pago


class BankAccount(Base, TenantMixin, TimestampMixin):
    """Cuenta bancaria o caja de la empresa"""
    __tablename__ = "cuentas_bancarias"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    name = Column(String(100), nullable=False)
    bank = Column(String(100), nullable=True)
    account_number = Column(String(30), nullable=True)
    clabe = Column(String(18), nullable=True)
    currency = Column(String(3), nullable=False, default="MXN")
    balance = Column(Numeric(15, 2), nullable=False, default=0)
    is_active = Column(Boolean, default=True)

    transactions = relationship("CashTransaction", back_populates="account")


class CashTransaction(Base, TenantMixin):
    """
    Movimiento de tesorería. Se aplica una sola vez y no se revierte;
    ``balance_after`` guarda el saldo de la cuenta tras aplicarlo.
    """
    __tablename__ = "transacciones"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    account_id = Column(Uuid(as_uuid=True), ForeignKey("cuentas_bancarias.id"), nullable=False, index=True)
    kind = Column(Enum(TransactionKind), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    balance_after = Column(Numeric(15, 2), nullable=False)
    transaction_date = Column(Date, nullable=False, default=date.today)
    description = Column(String(255), nullable=True)
    reference = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    purchase_order_id = Column(Uuid(as_uuid=True), ForeignKey("ordenes_compra.id"), nullable=True, index=True)
    billing_period_id = Column(Uuid(as_uuid=True), ForeignKey("estimaciones.id"), nullable=True, index=True)

    created_by = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    account = relationship("BankAccount", back_populates="transactions")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transaccion_monto_positivo"),
        CheckConstraint(
            "purchase_order_id IS NULL OR billing_period_id IS NULL",
            name="ck_transaccion_un_documento"
        ),
    )
