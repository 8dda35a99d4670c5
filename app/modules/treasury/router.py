"""
Routers FastAPI para Tesorería
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from datetime import date

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from app.modules.treasury.models import TransactionKind as TransactionKindModel
from app.modules.treasury.schemas import (
    BankAccountCreate, BankAccountOut, CashTransactionCreate, CashTransactionOut,
    CashTransactionList, OutstandingBalanceOut, TransactionKind
)
from app.modules.treasury.service import TreasuryService

treasury_router = APIRouter(prefix="/tesoreria", tags=["Tesorería"])

TREASURY_ROLES = ["CONTADOR"]


@treasury_router.post("/cuentas", response_model=BankAccountOut, status_code=status.HTTP_201_CREATED)
def create_bank_account(
    data: BankAccountCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(TREASURY_ROLES))
):
    return TreasuryService(db).create_account(auth_context.tenant_id, data)


@treasury_router.get("/cuentas", response_model=List[BankAccountOut])
def list_bank_accounts(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(TREASURY_ROLES))
):
    return TreasuryService(db).list_accounts(auth_context.tenant_id)


@treasury_router.get("/cuentas/{account_id}", response_model=BankAccountOut)
def get_bank_account(
    account_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(TREASURY_ROLES))
):
    return TreasuryService(db).get_account(auth_context.tenant_id, account_id)


@treasury_router.post(
    "/cuentas/{account_id}/transacciones",
    response_model=CashTransactionOut,
    status_code=status.HTTP_201_CREATED
)
def apply_transaction(
    account_id: UUID,
    data: CashTransactionCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(TREASURY_ROLES))
):
    """
    Registrar ingreso o egreso.
    Opcionalmente se aplica a una orden de compra (egreso) o a una
    estimación facturada (ingreso).
    """
    return TreasuryService(db).apply_transaction(
        auth_context.tenant_id, account_id, data, auth_context.user_id
    )


@treasury_router.get("/transacciones", response_model=CashTransactionList)
def list_transactions(
    account_id: Optional[UUID] = Query(None),
    kind: Optional[TransactionKind] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(TREASURY_ROLES))
):
    return TreasuryService(db).list_transactions(
        auth_context.tenant_id,
        account_id=account_id,
        kind=TransactionKindModel(kind.value) if kind else None,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset
    )


@treasury_router.get("/saldo-pendiente", response_model=OutstandingBalanceOut)
def get_outstanding_balance(
    purchase_order_id: Optional[UUID] = Query(None),
    billing_period_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return TreasuryService(db).outstanding_balance(
        auth_context.tenant_id,
        purchase_order_id=purchase_order_id,
        billing_period_id=billing_period_id
    )
