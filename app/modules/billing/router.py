"""
Routers FastAPI para Estimaciones
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from app.modules.billing.models import BillingPeriodStatus as BillingPeriodStatusModel
from app.modules.billing.schemas import (
    BillingPeriodCreate, BillingPeriodOut, BillingPeriodDetail, BillingPeriodList,
    BillingLineCreate, BillingLineOut, BillingPeriodStatus
)
from app.modules.billing.service import BillingService

billing_router = APIRouter(prefix="/estimaciones", tags=["Estimaciones"])

CAPTURE_ROLES = ["OBRAS"]
APPROVAL_ROLES = ["OBRAS", "CONTADOR"]


@billing_router.post("/obra/{work_order_id}", response_model=BillingPeriodOut, status_code=status.HTTP_201_CREATED)
def create_billing_period(
    work_order_id: UUID,
    data: BillingPeriodCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(CAPTURE_ROLES))
):
    """Crear estimación en borrador contra el presupuesto vigente."""
    service = BillingService(db)
    return service.to_out(service.create_period(auth_context.tenant_id, work_order_id, data))


@billing_router.get("/", response_model=BillingPeriodList)
def list_billing_periods(
    work_order_id: Optional[UUID] = Query(None, description="Filtrar por obra"),
    status: Optional[BillingPeriodStatus] = Query(None, description="Filtrar por estado"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return BillingService(db).list_periods(
        auth_context.tenant_id,
        work_order_id=work_order_id,
        status=BillingPeriodStatusModel(status.value) if status else None,
        limit=limit,
        offset=offset
    )


@billing_router.get("/{period_id}", response_model=BillingPeriodDetail)
def get_billing_period(
    period_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return BillingService(db).get_period_detail(auth_context.tenant_id, period_id)


@billing_router.post("/{period_id}/conceptos", response_model=BillingLineOut, status_code=status.HTTP_201_CREATED)
def add_billing_line(
    period_id: UUID,
    data: BillingLineCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(CAPTURE_ROLES))
):
    return BillingService(db).add_billing_line(auth_context.tenant_id, period_id, data)


@billing_router.delete("/{period_id}/conceptos/{line_id}", response_model=BillingPeriodOut)
def remove_billing_line(
    period_id: UUID,
    line_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(CAPTURE_ROLES))
):
    service = BillingService(db)
    return service.to_out(service.remove_billing_line(auth_context.tenant_id, period_id, line_id))


@billing_router.post("/{period_id}/recalcular", response_model=BillingPeriodOut)
def recompute_billing_period(
    period_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(APPROVAL_ROLES))
):
    service = BillingService(db)
    return service.to_out(service.recompute_totals(auth_context.tenant_id, period_id))


@billing_router.post("/{period_id}/enviar", response_model=BillingPeriodOut)
def submit_billing_period(
    period_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(CAPTURE_ROLES))
):
    service = BillingService(db)
    return service.to_out(service.submit(auth_context.tenant_id, period_id))


@billing_router.post("/{period_id}/aprobar", response_model=BillingPeriodOut)
def approve_billing_period(
    period_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(APPROVAL_ROLES))
):
    service = BillingService(db)
    return service.to_out(service.approve(auth_context.tenant_id, period_id))


@billing_router.post("/{period_id}/facturar", response_model=BillingPeriodOut)
def invoice_billing_period(
    period_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["CONTADOR"]))
):
    service = BillingService(db)
    return service.to_out(service.invoice(auth_context.tenant_id, period_id))


@billing_router.post("/{period_id}/cancelar", response_model=BillingPeriodOut)
def cancel_billing_period(
    period_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(APPROVAL_ROLES))
):
    service = BillingService(db)
    return service.to_out(service.cancel(auth_context.tenant_id, period_id))


@billing_router.delete("/{period_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_billing_period(
    period_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(APPROVAL_ROLES))
):
    BillingService(db).delete_period(auth_context.tenant_id, period_id)
