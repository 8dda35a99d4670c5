from fastapi import APIRouter, Depends, status, Query
from typing import Optional
from uuid import UUID
from sqlalchemy.orm import Session

from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from app.dependencies.dbDependecies import get_db
from app.modules.inventory.models import MovementType as MovementTypeModel
from app.modules.inventory.service import InventoryService
from app.modules.inventory.schemas import (
    ProductCreate, ProductOut, InventoryMovementCreate, InventoryMovementOut,
    InventoryMovementList, MovementType
)

inventory_router = APIRouter(prefix="/inventario", tags=["Inventario"])


@inventory_router.post("/productos", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    data: ProductCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["ALMACEN", "COMPRAS"]))
):
    return InventoryService(db).create_product(auth_context.tenant_id, data)


@inventory_router.get("/productos/{product_id}", response_model=ProductOut)
def get_product(
    product_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return InventoryService(db).get_product(auth_context.tenant_id, product_id)


@inventory_router.post("/movimientos", response_model=InventoryMovementOut, status_code=status.HTTP_201_CREATED)
def create_movement(
    movement_data: InventoryMovementCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(["ALMACEN"]))
):
    """Registrar entrada, salida a obra, devolución o ajuste."""
    return InventoryService(db).register_movement(
        auth_context.tenant_id, movement_data, auth_context.user_id
    )


@inventory_router.get("/movimientos", response_model=InventoryMovementList)
def list_movements(
    product_id: Optional[UUID] = Query(None),
    movement_type: Optional[MovementType] = Query(None),
    work_order_id: Optional[UUID] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return InventoryService(db).list_movements(
        auth_context.tenant_id,
        product_id=product_id,
        movement_type=MovementTypeModel(movement_type.value) if movement_type else None,
        work_order_id=work_order_id,
        limit=limit,
        offset=offset
    )
