"""
Financial Reports Router
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from ..services.financial import FinancialReportService
from ..utils import (
    create_csv_response,
    prepare_accounts_receivable_csv,
    prepare_accounts_payable_csv,
    CSV_HEADERS
)


router = APIRouter(prefix="/reportes", tags=["Reportes"])

FINANCIAL_ROLES = ["CONTADOR"]


@router.get("/cuentas-por-cobrar", response_model=None)
def get_accounts_receivable(
    work_order_id: Optional[UUID] = Query(None, description="Filtrar por obra"),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(FINANCIAL_ROLES)),
    db: Session = Depends(get_db)
):
    """Estimaciones facturadas con saldo por cobrar."""
    report = FinancialReportService(db, auth_context.tenant_id).get_accounts_receivable(work_order_id)

    if export == "csv":
        return create_csv_response(
            prepare_accounts_receivable_csv(report),
            "cuentas_por_cobrar.csv",
            CSV_HEADERS["accounts_receivable"]
        )
    return report


@router.get("/cuentas-por-pagar", response_model=None)
def get_accounts_payable(
    supplier_id: Optional[UUID] = Query(None, description="Filtrar por proveedor"),
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Export format: csv"),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(FINANCIAL_ROLES)),
    db: Session = Depends(get_db)
):
    """Órdenes de compra con saldo por pagar."""
    report = FinancialReportService(db, auth_context.tenant_id).get_accounts_payable(supplier_id)

    if export == "csv":
        return create_csv_response(
            prepare_accounts_payable_csv(report),
            "cuentas_por_pagar.csv",
            CSV_HEADERS["accounts_payable"]
        )
    return report
