"""
Routers FastAPI para Contabilidad
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
from datetime import date

from app.core.config import settings
from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from app.modules.accounting.models import JournalEntryKind as JournalEntryKindModel
from app.modules.accounting.schemas import (
    LedgerAccountCreate, LedgerAccountOut, JournalEntryCreate, JournalEntryOut,
    JournalEntryList, JournalEntryKind
)
from app.modules.accounting.service import AccountingService

accounting_router = APIRouter(prefix="/contabilidad", tags=["Contabilidad"])

ACCOUNTING_ROLES = ["CONTADOR"]


@accounting_router.post("/cuentas", response_model=LedgerAccountOut, status_code=status.HTTP_201_CREATED)
def create_ledger_account(
    data: LedgerAccountCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ACCOUNTING_ROLES))
):
    return AccountingService(db).create_account(auth_context.tenant_id, data)


@accounting_router.get("/cuentas", response_model=List[LedgerAccountOut])
def list_ledger_accounts(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ACCOUNTING_ROLES))
):
    return AccountingService(db).list_accounts(auth_context.tenant_id)


@accounting_router.post("/polizas", response_model=JournalEntryOut, status_code=status.HTTP_201_CREATED)
def create_journal_entry(
    data: JournalEntryCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ACCOUNTING_ROLES))
):
    """Registrar póliza; el debe debe cuadrar con el haber."""
    return AccountingService(db).create_entry(auth_context.tenant_id, data, auth_context.user_id)


@accounting_router.get("/polizas", response_model=JournalEntryList)
def list_journal_entries(
    kind: Optional[JournalEntryKind] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ACCOUNTING_ROLES))
):
    return AccountingService(db).list_entries(
        auth_context.tenant_id,
        kind=JournalEntryKindModel(kind.value) if kind else None,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        offset=offset
    )


@accounting_router.get("/polizas/{entry_id}", response_model=JournalEntryOut)
def get_journal_entry(
    entry_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(ACCOUNTING_ROLES))
):
    return AccountingService(db).get_entry(auth_context.tenant_id, entry_id)
