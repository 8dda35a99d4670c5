"""
Routers FastAPI para Obras
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.work_orders.models import WorkOrderStatus as WorkOrderStatusModel
from app.modules.work_orders.schemas import WorkOrderCreate, WorkOrderOut, WorkOrderList, WorkOrderStatus
from app.modules.work_orders.service import WorkOrderService

work_orders_router = APIRouter(prefix="/obras", tags=["Obras"])


@work_orders_router.post("/", response_model=WorkOrderOut, status_code=status.HTTP_201_CREATED)
def create_work_order(
    data: WorkOrderCreate,
    db: Session = Depends(get_db),
    auth_context = Depends(AuthDependencies.require_role(["OBRAS"]))
):
    """Crear una obra. Sólo ADMIN y OBRAS."""
    return WorkOrderService(db).create_work_order(data, auth_context.tenant_id)


@work_orders_router.get("/", response_model=WorkOrderList)
def list_work_orders(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    status: Optional[WorkOrderStatus] = Query(None, description="Filtrar por estado"),
    db: Session = Depends(get_db),
    auth_context = Depends(AuthDependencies.require_any_role())
):
    return WorkOrderService(db).list_work_orders(
        tenant_id=auth_context.tenant_id,
        limit=limit,
        offset=offset,
        status=WorkOrderStatusModel(status.value) if status else None
    )


@work_orders_router.get("/{work_order_id}", response_model=WorkOrderOut)
def get_work_order(
    work_order_id: UUID,
    db: Session = Depends(get_db),
    auth_context = Depends(AuthDependencies.require_any_role())
):
    return WorkOrderService(db).get_work_order(work_order_id, auth_context.tenant_id)
