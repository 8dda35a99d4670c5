"""
Servicios de negocio para Obras
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from uuid import UUID
import logging

from app.database.database import get_tenant_object
from app.common.exceptions import ERPError, ValidationError
from app.modules.work_orders.models import WorkOrder, WorkOrderStatus
from app.modules.work_orders.schemas import WorkOrderCreate, WorkOrderList

logger = logging.getLogger(__name__)


class WorkOrderService:
    """Servicio para gestión de obras"""

    def __init__(self, db: Session):
        self.db = db

    def create_work_order(self, data: WorkOrderCreate, tenant_id: UUID) -> WorkOrder:
        """Crear nueva obra"""
        try:
            existing = self.db.query(WorkOrder).filter(
                WorkOrder.tenant_id == tenant_id,
                WorkOrder.code == data.code
            ).first()
            if existing:
                raise ValidationError(f"Ya existe una obra con la clave {data.code}")

            work_order = WorkOrder(
                tenant_id=tenant_id,
                code=data.code,
                name=data.name,
                description=data.description,
                client_name=data.client_name,
                status=WorkOrderStatus(data.status.value),
                start_date=data.start_date,
                end_date=data.end_date,
                contract_amount=data.contract_amount,
                advance_pct=data.advance_pct,
                retention_pct=data.retention_pct,
            )
            self.db.add(work_order)
            self.db.commit()
            self.db.refresh(work_order)

            logger.info(f"Obra {work_order.code} creada en empresa {tenant_id}")
            return work_order

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creando obra: {e}")
            raise

    def get_work_order(self, work_order_id: UUID, tenant_id: UUID, for_update: bool = False) -> WorkOrder:
        """Obtener obra por ID"""
        return get_tenant_object(self.db, WorkOrder, work_order_id, tenant_id, "Obra", for_update=for_update)

    def list_work_orders(
        self,
        tenant_id: UUID,
        limit: int = 100,
        offset: int = 0,
        status: Optional[WorkOrderStatus] = None
    ) -> WorkOrderList:
        """Listar obras con filtros"""
        query = self.db.query(WorkOrder).filter(WorkOrder.tenant_id == tenant_id)
        if status:
            query = query.filter(WorkOrder.status == status)

        total = query.count()
        items = query.order_by(WorkOrder.code.asc()).offset(offset).limit(limit).all()
        return WorkOrderList(items=items, total=total, limit=limit, offset=offset)
