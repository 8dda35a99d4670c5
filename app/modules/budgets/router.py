"""
Routers FastAPI para Presupuestos
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from app.database.database import get_db
from app.common.exceptions import NotFoundError
from app.common.money import quantize_money
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from app.modules.budgets.schemas import (
    BudgetVersionCreate, BudgetVersionOut, BudgetVersionDetail,
    BudgetLineCreate, BudgetLineOut, BudgetProgress
)
from app.modules.budgets.service import BudgetService

budgets_router = APIRouter(prefix="/presupuestos", tags=["Presupuestos"])

BUDGET_ROLES = ["OBRAS", "CONTADOR"]


@budgets_router.post("/obra/{work_order_id}", response_model=BudgetVersionOut, status_code=status.HTTP_201_CREATED)
def create_budget_version(
    work_order_id: UUID,
    data: BudgetVersionCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(BUDGET_ROLES))
):
    """Crear una nueva versión de presupuesto, opcionalmente con sus conceptos."""
    return BudgetService(db).create_version(auth_context.tenant_id, work_order_id, data)


@budgets_router.get("/obra/{work_order_id}", response_model=List[BudgetVersionOut])
def list_budget_versions(
    work_order_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return BudgetService(db).list_versions(auth_context.tenant_id, work_order_id)


@budgets_router.get("/obra/{work_order_id}/vigente", response_model=BudgetVersionOut)
def get_current_budget_version(
    work_order_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    budget = BudgetService(db).get_current_version(auth_context.tenant_id, work_order_id)
    if budget is None:
        raise NotFoundError("La obra no tiene presupuesto vigente", {"work_order_id": str(work_order_id)})
    return budget


@budgets_router.post("/obra/{work_order_id}/vigente/{budget_version_id}", response_model=BudgetVersionOut)
def mark_current_budget_version(
    work_order_id: UUID,
    budget_version_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(BUDGET_ROLES))
):
    return BudgetService(db).mark_current(auth_context.tenant_id, work_order_id, budget_version_id)


@budgets_router.get("/{budget_version_id}", response_model=BudgetVersionDetail)
def get_budget_version(
    budget_version_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return BudgetService(db).get_version_detail(auth_context.tenant_id, budget_version_id)


@budgets_router.post("/{budget_version_id}/conceptos", response_model=BudgetLineOut, status_code=status.HTTP_201_CREATED)
def add_budget_line(
    budget_version_id: UUID,
    data: BudgetLineCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(BUDGET_ROLES))
):
    return BudgetService(db).add_line(auth_context.tenant_id, budget_version_id, data)


@budgets_router.get("/{budget_version_id}/total")
def get_budget_total(
    budget_version_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    total = BudgetService(db).total_amount(auth_context.tenant_id, budget_version_id)
    return {"budget_version_id": budget_version_id, "total_amount": quantize_money(total)}


@budgets_router.get("/{budget_version_id}/avance", response_model=BudgetProgress)
def get_budget_progress(
    budget_version_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    """Avance físico-financiero por concepto."""
    return BudgetService(db).progress(auth_context.tenant_id, budget_version_id)


@budgets_router.delete("/{budget_version_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_budget_version(
    budget_version_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(BUDGET_ROLES))
):
    BudgetService(db).delete_version(auth_context.tenant_id, budget_version_id)
