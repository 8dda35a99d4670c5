"""
Routers FastAPI para el módulo de Compras
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from app.modules.purchases.models import PurchaseOrderStatus as PurchaseOrderStatusModel
from app.modules.purchases.schemas import (
    SupplierCreate, SupplierOut,
    PurchaseOrderCreate, PurchaseOrderOut, PurchaseOrderDetail, PurchaseOrderList,
    ReceiveRequest, PurchaseOrderStatus
)
from app.modules.purchases.service import SupplierService, PurchaseOrderService

# Router para proveedores
suppliers_router = APIRouter(prefix="/proveedores", tags=["Proveedores"])

# Router para órdenes de compra
purchase_orders_router = APIRouter(prefix="/ordenes-compra", tags=["Órdenes de Compra"])


# ===== SUPPLIER ENDPOINTS =====

@suppliers_router.post("/", response_model=SupplierOut, status_code=status.HTTP_201_CREATED)
def create_supplier(
    data: SupplierCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["COMPRAS"]))
):
    return SupplierService(db).create_supplier(auth_context.tenant_id, data)


@suppliers_router.get("/", response_model=List[SupplierOut])
def list_suppliers(
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return SupplierService(db).list_suppliers(auth_context.tenant_id)


# ===== PURCHASE ORDER ENDPOINTS =====

@purchase_orders_router.post("/", response_model=PurchaseOrderDetail, status_code=status.HTTP_201_CREATED)
def create_purchase_order(
    data: PurchaseOrderCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["COMPRAS"]))
):
    """
    Crear orden de compra en borrador.
    Calcula subtotal, IVA y total a partir de las partidas.
    """
    service = PurchaseOrderService(db)
    order = service.create_order(auth_context.tenant_id, auth_context.user_id, data)
    return service.get_order_detail(auth_context.tenant_id, order.id)


@purchase_orders_router.get("/", response_model=PurchaseOrderList)
def list_purchase_orders(
    status: Optional[PurchaseOrderStatus] = Query(None, description="Filtrar por estado"),
    supplier_id: Optional[UUID] = Query(None, description="Filtrar por proveedor"),
    work_order_id: Optional[UUID] = Query(None, description="Filtrar por obra"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return PurchaseOrderService(db).list_orders(
        auth_context.tenant_id,
        status=PurchaseOrderStatusModel(status.value) if status else None,
        supplier_id=supplier_id,
        work_order_id=work_order_id,
        limit=limit,
        offset=offset
    )


@purchase_orders_router.get("/{order_id}", response_model=PurchaseOrderDetail)
def get_purchase_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return PurchaseOrderService(db).get_order_detail(auth_context.tenant_id, order_id)


@purchase_orders_router.post("/{order_id}/enviar", response_model=PurchaseOrderOut)
def send_purchase_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["COMPRAS"]))
):
    service = PurchaseOrderService(db)
    return service.to_out(service.send(auth_context.tenant_id, order_id))


@purchase_orders_router.post("/{order_id}/cancelar", response_model=PurchaseOrderOut)
def cancel_purchase_order(
    order_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["COMPRAS"]))
):
    service = PurchaseOrderService(db)
    return service.to_out(service.cancel(auth_context.tenant_id, order_id))


@purchase_orders_router.post("/{order_id}/recibir", response_model=PurchaseOrderDetail)
def receive_purchase_order(
    order_id: UUID,
    request: ReceiveRequest,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["ALMACEN", "COMPRAS"]))
):
    """
    Recibir material de una orden enviada o parcial.
    Incrementa el inventario y actualiza el estado de la orden.
    """
    service = PurchaseOrderService(db)
    service.receive(auth_context.tenant_id, order_id, request, auth_context.user_id)
    return service.get_order_detail(auth_context.tenant_id, order_id)
