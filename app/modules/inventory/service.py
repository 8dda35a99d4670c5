from typing import Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import and_

from app.database.database import get_tenant_object
from app.common.exceptions import ERPError, ValidationError, InsufficientStockError
from app.common.money import to_decimal, quantize_money, require_quantity, ZERO
from app.modules.inventory.models import Product, InventoryMovement, MovementType, INWARD_MOVEMENTS
from app.modules.inventory.schemas import (
    ProductCreate, InventoryMovementCreate, InventoryMovementOut, InventoryMovementList
)

logger = logging.getLogger(__name__)


class InventoryService:
    """Service for inventory management operations."""

    def __init__(self, db: Session):
        self.db = db

    def create_product(self, tenant_id: UUID, data: ProductCreate) -> Product:
        try:
            sku = data.sku.strip().upper()
            existing = self.db.query(Product).filter(
                and_(Product.tenant_id == tenant_id, Product.sku == sku)
            ).first()
            if existing:
                raise ValidationError(f"Ya existe un producto con la clave {sku}")

            product = Product(
                tenant_id=tenant_id,
                sku=sku,
                name=data.name,
                unit=data.unit,
                min_stock=data.min_stock,
                stock=ZERO,
            )
            self.db.add(product)
            self.db.commit()
            self.db.refresh(product)
            return product
        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creando producto: {e}")
            raise

    def get_product(self, tenant_id: UUID, product_id: UUID, for_update: bool = False) -> Product:
        return get_tenant_object(self.db, Product, product_id, tenant_id, "Producto", for_update=for_update)

    def increase_stock(
        self,
        tenant_id: UUID,
        product_id: UUID,
        quantity,
        unit_cost=None,
        reference: Optional[str] = None,
        user_id: Optional[UUID] = None
    ) -> InventoryMovement:
        """
        Incrementa la existencia de un producto por una compra recibida.

        No hace commit: se ejecuta dentro de la transacción del llamador
        (recepción de orden de compra), que decide si confirma o revierte.
        """
        quantity = to_decimal(quantity)
        if quantity <= 0:
            raise ValidationError("La cantidad a ingresar debe ser mayor a cero")

        product = self.get_product(tenant_id, product_id, for_update=True)
        product.stock = to_decimal(product.stock) + quantity
        if unit_cost is not None:
            product.last_purchase_price = quantize_money(unit_cost)

        movement = InventoryMovement(
            tenant_id=tenant_id,
            product_id=product.id,
            movement_type=MovementType.COMPRA,
            quantity=quantity,
            stock_after=product.stock,
            unit_cost=quantize_money(unit_cost) if unit_cost is not None else None,
            reference=reference,
            created_by=user_id,
        )
        self.db.add(movement)
        self.db.flush()
        return movement

    def register_movement(
        self,
        tenant_id: UUID,
        movement_data: InventoryMovementCreate,
        user_id: Optional[UUID] = None
    ) -> InventoryMovementOut:
        """Create inventory movement and update stock."""
        try:
            movement_type = MovementType(movement_data.movement_type.value)
            if movement_type == MovementType.COMPRA:
                raise ValidationError("Los movimientos de compra se generan al recibir órdenes de compra")

            if movement_data.work_order_id:
                from app.modules.work_orders.models import WorkOrder
                get_tenant_object(self.db, WorkOrder, movement_data.work_order_id, tenant_id, "Obra")
            elif movement_type == MovementType.SALIDA_OBRA:
                raise ValidationError("Las salidas a obra requieren la obra destino")

            quantity = require_quantity(movement_data.quantity)
            if quantity <= 0:
                raise ValidationError("La cantidad debe ser mayor a cero")

            product = self.get_product(tenant_id, movement_data.product_id, for_update=True)
            if not product.is_active:
                raise ValidationError(f"El producto '{product.name}' está inactivo y no se pueden realizar movimientos")

            current = to_decimal(product.stock)
            if movement_type in INWARD_MOVEMENTS:
                new_stock = current + quantity
            else:
                new_stock = current - quantity
                if new_stock < 0:
                    logger.warning(
                        f"Stock insuficiente de {product.sku}: disponible {current}, solicitado {quantity}"
                    )
                    raise InsufficientStockError(
                        f"Stock insuficiente para '{product.name}'",
                        {"product_id": str(product.id), "available": str(current), "requested": str(quantity)}
                    )

            product.stock = new_stock
            movement = InventoryMovement(
                tenant_id=tenant_id,
                product_id=product.id,
                movement_type=movement_type,
                quantity=quantity,
                stock_after=new_stock,
                unit_cost=movement_data.unit_cost,
                work_order_id=movement_data.work_order_id,
                reference=movement_data.reference,
                notes=movement_data.notes,
                created_by=user_id,
            )
            self.db.add(movement)
            self.db.commit()
            self.db.refresh(movement)

            logger.info(
                f"Movimiento {movement_type.value} de {quantity} {product.unit} en {product.sku} "
                f"(existencia {new_stock}) empresa {tenant_id}"
            )
            return self._to_out(movement)

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error registrando movimiento de inventario: {e}")
            raise

    def list_movements(
        self,
        tenant_id: UUID,
        product_id: Optional[UUID] = None,
        movement_type: Optional[MovementType] = None,
        work_order_id: Optional[UUID] = None,
        limit: int = 100,
        offset: int = 0
    ) -> InventoryMovementList:
        """List inventory movements with filters."""
        query = self.db.query(InventoryMovement).options(
            selectinload(InventoryMovement.product)
        ).filter(InventoryMovement.tenant_id == tenant_id)

        if product_id:
            query = query.filter(InventoryMovement.product_id == product_id)
        if movement_type:
            query = query.filter(InventoryMovement.movement_type == movement_type)
        if work_order_id:
            query = query.filter(InventoryMovement.work_order_id == work_order_id)

        total = query.count()
        movements = query.order_by(InventoryMovement.created_at.desc()).offset(offset).limit(limit).all()

        return InventoryMovementList(
            items=[self._to_out(m) for m in movements],
            total=total,
            limit=limit,
            offset=offset
        )

    def _to_out(self, movement: InventoryMovement) -> InventoryMovementOut:
        return InventoryMovementOut(
            id=movement.id,
            product_id=movement.product_id,
            movement_type=movement.movement_type.value,
            quantity=movement.quantity,
            stock_after=movement.stock_after,
            unit_cost=movement.unit_cost,
            work_order_id=movement.work_order_id,
            reference=movement.reference,
            notes=movement.notes,
            created_by=movement.created_by,
            created_at=movement.created_at,
            product_name=movement.product.name if movement.product else None,
            product_sku=movement.product.sku if movement.product else None,
        )
