"""
Servicios de negocio para el módulo de Compras

Implementa:
- Alta de órdenes de compra con folio consecutivo e IVA
- Envío y cancelación con máquina de estados
- Recepción de material todo-o-nada con integración a inventario

Integración con otros módulos:
- Inventory: ``InventoryService.increase_stock`` por cada partida recibida
- Treasury: lee ``outstanding_balance`` al aplicar egresos
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import func
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID
from datetime import datetime, timezone, date
import logging

from app.database.database import get_tenant_object
from app.common.exceptions import (
    ERPError, ValidationError, InvalidTransitionError, OverReceiptError, NotFoundError
)
from app.common.money import (
    to_decimal, line_amount, sum_money, quantize_money, compute_tax, require_quantity, require_price, ZERO
)
from app.common.state_machine import StateMachine
from app.modules.company.models import Company
from app.modules.inventory.service import InventoryService
from app.modules.purchases.models import (
    Supplier, PurchaseOrder, PurchaseOrderLine, PurchaseReceipt, PurchaseReceiptLine,
    PurchaseOrderStatus, RECEIVABLE_STATUSES
)
from app.modules.purchases.schemas import (
    SupplierCreate, PurchaseOrderCreate, ReceiveRequest,
    PurchaseOrderOut, PurchaseOrderDetail, PurchaseOrderLineOut, PurchaseOrderList
)

logger = logging.getLogger(__name__)


purchase_order_machine = StateMachine("la orden de compra", {
    PurchaseOrderStatus.DRAFT: {PurchaseOrderStatus.SENT, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.SENT: {PurchaseOrderStatus.PARTIAL, PurchaseOrderStatus.COMPLETE},
    PurchaseOrderStatus.PARTIAL: {PurchaseOrderStatus.PARTIAL, PurchaseOrderStatus.COMPLETE},
    PurchaseOrderStatus.COMPLETE: set(),
    PurchaseOrderStatus.CANCELLED: set(),
})


class SupplierService:
    """Servicio para gestión de proveedores"""

    def __init__(self, db: Session):
        self.db = db

    def create_supplier(self, tenant_id: UUID, data: SupplierCreate) -> Supplier:
        try:
            supplier = Supplier(tenant_id=tenant_id, **data.model_dump())
            self.db.add(supplier)
            self.db.commit()
            self.db.refresh(supplier)
            return supplier
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creando proveedor: {e}")
            raise

    def list_suppliers(self, tenant_id: UUID) -> List[Supplier]:
        return self.db.query(Supplier).filter(
            Supplier.tenant_id == tenant_id,
            Supplier.is_active.is_(True)
        ).order_by(Supplier.name).all()


class PurchaseOrderService:
    """Servicio para gestión de órdenes de compra"""

    def __init__(self, db: Session):
        self.db = db

    def get_order(self, tenant_id: UUID, order_id: UUID, for_update: bool = False) -> PurchaseOrder:
        return get_tenant_object(self.db, PurchaseOrder, order_id, tenant_id, "Orden de compra", for_update=for_update)

    def create_order(self, tenant_id: UUID, user_id: Optional[UUID], data: PurchaseOrderCreate) -> PurchaseOrder:
        """Crear nueva orden de compra en borrador"""
        try:
            supplier = get_tenant_object(self.db, Supplier, data.supplier_id, tenant_id, "Proveedor")
            if not supplier.is_active:
                raise ValidationError(f"El proveedor '{supplier.name}' está inactivo")

            if data.work_order_id:
                from app.modules.work_orders.models import WorkOrder
                get_tenant_object(self.db, WorkOrder, data.work_order_id, tenant_id, "Obra")

            # El folio es consecutivo por empresa; la empresa se bloquea mientras se asigna
            company = self.db.query(Company).filter(Company.id == tenant_id).with_for_update().first()
            if company is None:
                raise NotFoundError("Empresa no encontrada", {"id": str(tenant_id)})
            last_folio = self.db.query(func.max(PurchaseOrder.folio)).filter(
                PurchaseOrder.tenant_id == tenant_id
            ).scalar() or 0

            order = PurchaseOrder(
                tenant_id=tenant_id,
                folio=last_folio + 1,
                supplier_id=supplier.id,
                work_order_id=data.work_order_id,
                issue_date=data.issue_date or date.today(),
                expected_date=data.expected_date,
                notes=data.notes,
                status=PurchaseOrderStatus.DRAFT,
                paid=ZERO,
                created_by=user_id,
            )
            self.db.add(order)
            self.db.flush()

            inventory = InventoryService(self.db)
            amounts = []
            for position, line_data in enumerate(data.lines, start=1):
                quantity = require_quantity(line_data.quantity)
                unit_price = require_price(line_data.unit_price)
                if quantity <= 0:
                    raise ValidationError("La cantidad ordenada debe ser mayor a cero", {"position": position})
                if unit_price < 0:
                    raise ValidationError("El precio unitario no puede ser negativo", {"position": position})

                product = inventory.get_product(tenant_id, line_data.product_id)
                amount = line_amount(quantity, unit_price)
                amounts.append(amount)

                self.db.add(PurchaseOrderLine(
                    tenant_id=tenant_id,
                    purchase_order_id=order.id,
                    product_id=product.id,
                    position=position,
                    description=product.name,
                    unit=product.unit,
                    quantity_ordered=quantity,
                    quantity_received=ZERO,
                    unit_price=unit_price,
                    amount=amount,
                ))

            subtotal = quantize_money(sum_money(amounts))
            tax = quantize_money(compute_tax(subtotal))
            order.subtotal = subtotal
            order.tax = tax
            order.total = subtotal + tax

            self.db.commit()
            self.db.refresh(order)

            logger.info(f"Orden de compra OC-{order.folio} creada: total {order.total} ({len(data.lines)} partidas)")
            return order

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creando orden de compra: {e}")
            raise

    def send(self, tenant_id: UUID, order_id: UUID) -> PurchaseOrder:
        """DRAFT → SENT"""
        try:
            order = self.get_order(tenant_id, order_id, for_update=True)
            purchase_order_machine.transition(order, PurchaseOrderStatus.SENT)
            order.sent_at = datetime.now(timezone.utc)

            self.db.commit()
            self.db.refresh(order)
            logger.info(f"Orden de compra OC-{order.folio} enviada al proveedor")
            return order

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error enviando orden de compra: {e}")
            raise

    def cancel(self, tenant_id: UUID, order_id: UUID) -> PurchaseOrder:
        """DRAFT → CANCELLED"""
        try:
            order = self.get_order(tenant_id, order_id, for_update=True)
            purchase_order_machine.transition(order, PurchaseOrderStatus.CANCELLED)

            self.db.commit()
            self.db.refresh(order)
            logger.info(f"Orden de compra OC-{order.folio} cancelada")
            return order

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error cancelando orden de compra: {e}")
            raise

    def receive(
        self,
        tenant_id: UUID,
        order_id: UUID,
        request: ReceiveRequest,
        user_id: Optional[UUID] = None
    ) -> PurchaseOrder:
        """
        Registrar recepción de material.

        Todas las partidas se validan antes de modificar cualquiera; si una
        excede lo ordenado no se aplica ninguna. La orden y sus partidas
        quedan bloqueadas hasta el commit, de modo que dos recepciones
        simultáneas sobre la misma orden se serializan.
        """
        try:
            order = self.get_order(tenant_id, order_id, for_update=True)
            # En una orden COMPLETE cualquier cantidad adicional es sobre-recepción
            if order.status not in RECEIVABLE_STATUSES and order.status != PurchaseOrderStatus.COMPLETE:
                raise InvalidTransitionError(
                    "la orden de compra", order.status.value, "recepción",
                    f"No se puede recibir material de una orden en estado {order.status.value}"
                )

            order_lines = self.db.query(PurchaseOrderLine).filter(
                PurchaseOrderLine.purchase_order_id == order.id
            ).with_for_update().all()
            lines_by_id = {line.id: line for line in order_lines}

            requested: Dict[UUID, Decimal] = {}
            for item in request.lines:
                quantity = require_quantity(item.quantity)
                if quantity <= 0:
                    raise ValidationError(
                        "La cantidad recibida debe ser mayor a cero", {"line_id": str(item.line_id)}
                    )
                if item.line_id not in lines_by_id:
                    raise ValidationError(
                        "La partida no pertenece a esta orden de compra", {"line_id": str(item.line_id)}
                    )
                requested[item.line_id] = requested.get(item.line_id, ZERO) + quantity

            for line_id, quantity in requested.items():
                line = lines_by_id[line_id]
                received = to_decimal(line.quantity_received)
                ordered = to_decimal(line.quantity_ordered)
                if received + quantity > ordered:
                    logger.warning(
                        f"OC-{order.folio}: recepción excedida en '{line.description}' "
                        f"({received} + {quantity} > {ordered})"
                    )
                    raise OverReceiptError(
                        f"La cantidad recibida de '{line.description}' excede la ordenada",
                        {
                            "line_id": str(line_id),
                            "quantity_ordered": str(ordered),
                            "quantity_received": str(received),
                            "requested_quantity": str(quantity),
                        }
                    )

            receipt = PurchaseReceipt(
                tenant_id=tenant_id,
                purchase_order_id=order.id,
                received_by=user_id,
                notes=request.notes,
            )
            self.db.add(receipt)
            self.db.flush()

            inventory = InventoryService(self.db)
            for line_id, quantity in requested.items():
                line = lines_by_id[line_id]
                line.quantity_received = to_decimal(line.quantity_received) + quantity
                inventory.increase_stock(
                    tenant_id,
                    line.product_id,
                    quantity,
                    unit_cost=line.unit_price,
                    reference=f"OC-{order.folio}",
                    user_id=user_id,
                )
                self.db.add(PurchaseReceiptLine(
                    tenant_id=tenant_id,
                    receipt_id=receipt.id,
                    order_line_id=line.id,
                    quantity=quantity,
                ))

            complete = all(
                to_decimal(line.quantity_received) == to_decimal(line.quantity_ordered)
                for line in order_lines
            )
            purchase_order_machine.transition(
                order, PurchaseOrderStatus.COMPLETE if complete else PurchaseOrderStatus.PARTIAL
            )

            self.db.commit()
            self.db.refresh(order)

            logger.info(
                f"Recepción {receipt.id} en OC-{order.folio}: {len(requested)} partidas, "
                f"estado {order.status.value}"
            )
            return order

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error recibiendo orden de compra: {e}")
            raise

    def outstanding_balance(self, order: PurchaseOrder) -> Decimal:
        """Saldo por pagar: total − pagado"""
        return to_decimal(order.total) - to_decimal(order.paid)

    def list_orders(
        self,
        tenant_id: UUID,
        status: Optional[PurchaseOrderStatus] = None,
        supplier_id: Optional[UUID] = None,
        work_order_id: Optional[UUID] = None,
        limit: int = 100,
        offset: int = 0
    ) -> PurchaseOrderList:
        query = self.db.query(PurchaseOrder).filter(PurchaseOrder.tenant_id == tenant_id)
        if status:
            query = query.filter(PurchaseOrder.status == status)
        if supplier_id:
            query = query.filter(PurchaseOrder.supplier_id == supplier_id)
        if work_order_id:
            query = query.filter(PurchaseOrder.work_order_id == work_order_id)

        total = query.count()
        orders = query.order_by(PurchaseOrder.folio.desc()).offset(offset).limit(limit).all()
        return PurchaseOrderList(
            items=[self.to_out(o) for o in orders],
            total=total,
            limit=limit,
            offset=offset
        )

    def get_order_detail(self, tenant_id: UUID, order_id: UUID) -> PurchaseOrderDetail:
        order = self.get_order(tenant_id, order_id)

        detail = PurchaseOrderDetail(**self.to_out(order).model_dump())
        detail.lines = [PurchaseOrderLineOut.model_validate(line) for line in order.lines]
        detail.supplier_name = order.supplier.name if order.supplier else None
        return detail

    def to_out(self, order: PurchaseOrder) -> PurchaseOrderOut:
        out = PurchaseOrderOut.model_validate(order)
        out.outstanding = self.outstanding_balance(order)
        return out
