"""
Servicios de negocio para Tesorería

Cada transacción se aplica en una sola transacción de base de datos con la
cuenta y el documento destino bloqueados (SELECT ... FOR UPDATE): el saldo
de la cuenta, el ``paid`` del documento y el registro de la transacción se
confirman juntos o no se confirma nada.
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from decimal import Decimal
from typing import Optional
from uuid import UUID
from datetime import date
import logging

from app.core.config import settings
from app.database.database import get_tenant_object
from app.common.exceptions import (
    ERPError, ValidationError, NegativeAmountError, InvalidTransitionError,
    OverpaymentError, InsufficientFundsError
)
from app.common.money import to_decimal, quantize_money
from app.modules.purchases.models import PurchaseOrder, PurchaseOrderStatus
from app.modules.billing.models import BillingPeriod, BillingPeriodStatus
from app.modules.treasury.models import BankAccount, CashTransaction, TransactionKind
from app.modules.treasury.schemas import (
    BankAccountCreate, CashTransactionCreate, CashTransactionList, OutstandingBalanceOut
)

logger = logging.getLogger(__name__)

PAYABLE_ORDER_STATUSES = {
    PurchaseOrderStatus.SENT,
    PurchaseOrderStatus.PARTIAL,
    PurchaseOrderStatus.COMPLETE,
}


def _require_cents(amount: Decimal, field: str) -> Decimal:
    if amount != quantize_money(amount):
        raise ValidationError(f"El {field} no puede tener más de dos decimales", {field: str(amount)})
    return amount


class TreasuryService:
    """Servicio de cuentas bancarias y transacciones"""

    def __init__(self, db: Session):
        self.db = db

    # ===== CUENTAS =====

    def create_account(self, tenant_id: UUID, data: BankAccountCreate) -> BankAccount:
        try:
            opening = _require_cents(to_decimal(data.opening_balance), "saldo inicial")
            if opening < 0:
                raise NegativeAmountError("El saldo inicial no puede ser negativo")

            account = BankAccount(
                tenant_id=tenant_id,
                name=data.name,
                bank=data.bank,
                account_number=data.account_number,
                clabe=data.clabe,
                currency=data.currency or settings.CURRENCY,
                balance=opening,
            )
            self.db.add(account)
            self.db.commit()
            self.db.refresh(account)

            logger.info(f"Cuenta {account.name} creada con saldo inicial {opening} en empresa {tenant_id}")
            return account

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creando cuenta bancaria: {e}")
            raise

    def get_account(self, tenant_id: UUID, account_id: UUID, for_update: bool = False) -> BankAccount:
        return get_tenant_object(self.db, BankAccount, account_id, tenant_id, "Cuenta bancaria", for_update=for_update)

    def list_accounts(self, tenant_id: UUID):
        return self.db.query(BankAccount).filter(
            BankAccount.tenant_id == tenant_id
        ).order_by(BankAccount.name).all()

    # ===== TRANSACCIONES =====

    def apply_transaction(
        self,
        tenant_id: UUID,
        account_id: UUID,
        data: CashTransactionCreate,
        user_id: Optional[UUID] = None
    ) -> CashTransaction:
        """
        Aplicar un ingreso o egreso a una cuenta.

        - El monto debe ser positivo
        - INCOME abona a la cuenta; EXPENSE la carga
        - Con ``purchase_order_id`` (sólo EXPENSE) o ``billing_period_id``
          (sólo INCOME) se incrementa ``paid`` del documento; el monto no
          puede exceder su saldo pendiente
        """
        try:
            amount = to_decimal(data.amount)
            if amount <= 0:
                raise NegativeAmountError(
                    "El monto de la transacción debe ser mayor a cero", {"amount": str(amount)}
                )
            _require_cents(amount, "monto")

            if data.purchase_order_id and data.billing_period_id:
                raise ValidationError("La transacción sólo puede aplicarse a un documento")

            kind = TransactionKind(data.kind.value)
            account = self.get_account(tenant_id, account_id, for_update=True)
            if not account.is_active:
                raise ValidationError(f"La cuenta '{account.name}' está inactiva")

            target = None
            if data.purchase_order_id:
                target = self._lock_purchase_order(tenant_id, data.purchase_order_id, kind)
                outstanding = to_decimal(target.total) - to_decimal(target.paid)
            elif data.billing_period_id:
                target = self._lock_billing_period(tenant_id, data.billing_period_id, kind)
                outstanding = to_decimal(target.net_amount) - to_decimal(target.paid)

            if target is not None and amount > outstanding:
                logger.warning(
                    f"Sobrepago rechazado en {target.__tablename__} {target.id}: "
                    f"monto {amount}, saldo {outstanding}"
                )
                raise OverpaymentError(
                    "El monto excede el saldo pendiente del documento",
                    {"amount": str(amount), "outstanding": str(outstanding)}
                )

            balance = to_decimal(account.balance)
            if kind == TransactionKind.EXPENSE:
                if amount > balance and not settings.TREASURY_ALLOW_OVERDRAFT:
                    logger.warning(f"Fondos insuficientes en cuenta {account.name}: saldo {balance}, egreso {amount}")
                    raise InsufficientFundsError(
                        f"Fondos insuficientes en la cuenta '{account.name}'",
                        {"balance": str(balance), "amount": str(amount)}
                    )
                account.balance = balance - amount
            else:
                account.balance = balance + amount

            if target is not None:
                target.paid = to_decimal(target.paid) + amount

            transaction = CashTransaction(
                tenant_id=tenant_id,
                account_id=account.id,
                kind=kind,
                amount=amount,
                balance_after=account.balance,
                transaction_date=data.transaction_date or date.today(),
                description=data.description,
                reference=data.reference,
                notes=data.notes,
                purchase_order_id=data.purchase_order_id,
                billing_period_id=data.billing_period_id,
                created_by=user_id,
            )
            self.db.add(transaction)
            self.db.commit()
            self.db.refresh(transaction)

            logger.info(
                f"Transacción {kind.value} de {amount} en cuenta {account.name}; saldo {account.balance}"
                + (f"; aplicada a {target.__tablename__} {target.id}" if target is not None else "")
            )
            return transaction

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error aplicando transacción: {e}")
            raise

    def _lock_purchase_order(self, tenant_id: UUID, order_id: UUID, kind: TransactionKind) -> PurchaseOrder:
        if kind != TransactionKind.EXPENSE:
            raise ValidationError("A una orden de compra sólo se le pueden aplicar egresos")
        order = get_tenant_object(self.db, PurchaseOrder, order_id, tenant_id, "Orden de compra", for_update=True)
        if order.status not in PAYABLE_ORDER_STATUSES:
            raise InvalidTransitionError(
                "la orden de compra", order.status.value, "pago",
                f"No se pueden registrar pagos a una orden en estado {order.status.value}"
            )
        return order

    def _lock_billing_period(self, tenant_id: UUID, period_id: UUID, kind: TransactionKind) -> BillingPeriod:
        if kind != TransactionKind.INCOME:
            raise ValidationError("A una estimación sólo se le pueden aplicar ingresos")
        period = get_tenant_object(self.db, BillingPeriod, period_id, tenant_id, "Estimación", for_update=True)
        if period.status != BillingPeriodStatus.INVOICED:
            raise InvalidTransitionError(
                "la estimación", period.status.value, "cobro",
                f"Sólo se cobran estimaciones facturadas (estado actual: {period.status.value})"
            )
        return period

    def outstanding_balance(
        self,
        tenant_id: UUID,
        purchase_order_id: Optional[UUID] = None,
        billing_period_id: Optional[UUID] = None
    ) -> OutstandingBalanceOut:
        """Saldo pendiente de una orden de compra (total − pagado) o estimación (neto − cobrado)"""
        if bool(purchase_order_id) == bool(billing_period_id):
            raise ValidationError("Indique una orden de compra o una estimación")

        if purchase_order_id:
            order = get_tenant_object(self.db, PurchaseOrder, purchase_order_id, tenant_id, "Orden de compra")
            total, paid, document_type = to_decimal(order.total), to_decimal(order.paid), "purchase_order"
            document_id = order.id
        else:
            period = get_tenant_object(self.db, BillingPeriod, billing_period_id, tenant_id, "Estimación")
            total, paid, document_type = to_decimal(period.net_amount), to_decimal(period.paid), "billing_period"
            document_id = period.id

        return OutstandingBalanceOut(
            document_type=document_type,
            document_id=document_id,
            total=total,
            paid=paid,
            outstanding=total - paid,
        )

    def list_transactions(
        self,
        tenant_id: UUID,
        account_id: Optional[UUID] = None,
        kind: Optional[TransactionKind] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 100,
        offset: int = 0
    ) -> CashTransactionList:
        query = self.db.query(CashTransaction).filter(CashTransaction.tenant_id == tenant_id)
        if account_id:
            query = query.filter(CashTransaction.account_id == account_id)
        if kind:
            query = query.filter(CashTransaction.kind == kind)
        if date_from:
            query = query.filter(CashTransaction.transaction_date >= date_from)
        if date_to:
            query = query.filter(CashTransaction.transaction_date <= date_to)

        total = query.count()
        items = query.order_by(
            CashTransaction.transaction_date.desc(), CashTransaction.created_at.desc()
        ).offset(offset).limit(limit).all()
        return CashTransactionList(items=items, total=total, limit=limit, offset=offset)
