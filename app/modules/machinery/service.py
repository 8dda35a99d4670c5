"""
Servicios de negocio para Maquinaria

La salida a obra y el regreso se aplican en una sola transacción con el
equipo bloqueado: la asignación, el estado del equipo, su ubicación y su
horómetro cambian juntos.
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import or_
from decimal import Decimal
from typing import List, Optional
from uuid import UUID
import logging

from app.core.config import settings
from app.database.database import get_tenant_object
from app.common.exceptions import ERPError, ValidationError, InvalidTransitionError, NotFoundError
from app.common.money import to_decimal, require_price, require_scale
from app.common.state_machine import StateMachine
from app.modules.machinery.models import Machine, MachineAssignment, MachineStatus
from app.modules.machinery.schemas import (
    MachineCreate, MachineList, AssignmentCreate, AssignmentFinish
)
from app.modules.work_orders.models import WorkOrder, WorkOrderStatus

logger = logging.getLogger(__name__)


machine_status_machine = StateMachine("el equipo", {
    MachineStatus.DISPONIBLE: {
        MachineStatus.EN_OBRA, MachineStatus.MANTENIMIENTO, MachineStatus.REPARACION, MachineStatus.BAJA
    },
    MachineStatus.EN_OBRA: {MachineStatus.DISPONIBLE},
    MachineStatus.MANTENIMIENTO: {MachineStatus.DISPONIBLE, MachineStatus.REPARACION, MachineStatus.BAJA},
    MachineStatus.REPARACION: {MachineStatus.DISPONIBLE, MachineStatus.MANTENIMIENTO, MachineStatus.BAJA},
    MachineStatus.BAJA: set(),
})

CLOSED_WORK_ORDER_STATUSES = {WorkOrderStatus.FINISHED, WorkOrderStatus.CANCELLED}


def _hour_meter(value) -> Decimal:
    return require_scale(value, 2, "hour_meter")


class MachineryService:
    """Servicio para equipo y asignaciones a obra"""

    def __init__(self, db: Session):
        self.db = db

    def create_machine(self, tenant_id: UUID, data: MachineCreate) -> Machine:
        try:
            existing = self.db.query(Machine.id).filter(
                Machine.tenant_id == tenant_id,
                Machine.code == data.code
            ).first()
            if existing:
                raise ValidationError(f"Ya existe un equipo con el código {data.code}", {"code": data.code})

            machine = Machine(
                tenant_id=tenant_id,
                code=data.code,
                description=data.description,
                brand=data.brand,
                model=data.model,
                serial_number=data.serial_number,
                year=data.year,
                status=MachineStatus.DISPONIBLE,
                hourly_cost=require_price(data.hourly_cost, "hourly_cost") if data.hourly_cost is not None else None,
                daily_rent=require_price(data.daily_rent, "daily_rent") if data.daily_rent is not None else None,
                hour_meter=_hour_meter(data.hour_meter),
                location=data.location or settings.MACHINERY_YARD_LOCATION,
            )
            self.db.add(machine)
            self.db.commit()
            self.db.refresh(machine)

            logger.info(f"Equipo {machine.code} dado de alta en empresa {tenant_id}")
            return machine

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creando equipo: {e}")
            raise

    def get_machine(self, tenant_id: UUID, machine_id: UUID, for_update: bool = False) -> Machine:
        return get_tenant_object(self.db, Machine, machine_id, tenant_id, "Equipo", for_update=for_update)

    def list_machines(
        self,
        tenant_id: UUID,
        search: Optional[str] = None,
        status: Optional[MachineStatus] = None,
        limit: int = 20,
        offset: int = 0
    ) -> MachineList:
        query = self.db.query(Machine).filter(Machine.tenant_id == tenant_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                Machine.code.ilike(pattern),
                Machine.description.ilike(pattern),
                Machine.brand.ilike(pattern),
                Machine.model.ilike(pattern),
            ))
        if status:
            query = query.filter(Machine.status == status)

        total = query.count()
        items = query.order_by(Machine.code).offset(offset).limit(limit).all()
        return MachineList(items=items, total=total, limit=limit, offset=offset)

    def change_status(self, tenant_id: UUID, machine_id: UUID, to_status: MachineStatus) -> Machine:
        """
        Cambios de estado fuera de obra (mantenimiento, reparación, baja).
        La salida y el regreso de obra sólo ocurren con asignaciones.
        """
        try:
            machine = self.get_machine(tenant_id, machine_id, for_update=True)
            if MachineStatus.EN_OBRA in (machine.status, to_status):
                raise InvalidTransitionError(
                    "el equipo", machine.status.value, to_status.value,
                    "La salida y el regreso de obra se registran con asignaciones"
                )

            machine_status_machine.transition(machine, to_status)
            self.db.commit()
            self.db.refresh(machine)
            logger.info(f"Equipo {machine.code} en estado {machine.status.value}")
            return machine

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error cambiando estado de equipo: {e}")
            raise

    def assign(self, tenant_id: UUID, machine_id: UUID, data: AssignmentCreate) -> MachineAssignment:
        """Salida a obra: DISPONIBLE → EN_OBRA"""
        try:
            machine = self.get_machine(tenant_id, machine_id, for_update=True)
            machine_status_machine.ensure(machine.status, MachineStatus.EN_OBRA)

            work_order = get_tenant_object(self.db, WorkOrder, data.work_order_id, tenant_id, "Obra")
            if work_order.status in CLOSED_WORK_ORDER_STATUSES:
                raise ValidationError(
                    f"La obra {work_order.code} está {work_order.status.value}",
                    {"work_order_id": str(work_order.id)}
                )

            current = to_decimal(machine.hour_meter)
            start = _hour_meter(data.hour_meter_start) if data.hour_meter_start is not None else current
            if start < current:
                raise ValidationError(
                    "El horómetro inicial no puede ser menor a la última lectura del equipo",
                    {"hour_meter": str(current), "hour_meter_start": str(start)}
                )

            assignment = MachineAssignment(
                tenant_id=tenant_id,
                machine_id=machine.id,
                work_order_id=work_order.id,
                start_date=data.start_date,
                hour_meter_start=start,
                is_active=True,
                notes=data.notes,
            )
            self.db.add(assignment)

            machine_status_machine.transition(machine, MachineStatus.EN_OBRA)
            machine.location = work_order.name
            machine.hour_meter = start

            self.db.commit()
            self.db.refresh(assignment)
            logger.info(f"Equipo {machine.code} asignado a obra {work_order.code} (horómetro {start})")
            return assignment

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error asignando equipo: {e}")
            raise

    def finish_assignment(self, tenant_id: UUID, machine_id: UUID, data: AssignmentFinish) -> MachineAssignment:
        """Regreso de obra: cierra la asignación activa y EN_OBRA → DISPONIBLE"""
        try:
            machine = self.get_machine(tenant_id, machine_id, for_update=True)
            assignment = self.db.query(MachineAssignment).filter(
                MachineAssignment.machine_id == machine.id,
                MachineAssignment.is_active.is_(True)
            ).with_for_update().first()
            if assignment is None:
                raise NotFoundError(
                    f"El equipo {machine.code} no tiene asignación activa", {"machine_id": str(machine.id)}
                )

            if data.end_date < assignment.start_date:
                raise ValidationError(
                    "La fecha de regreso no puede ser anterior a la de salida",
                    {"start_date": str(assignment.start_date), "end_date": str(data.end_date)}
                )

            start = to_decimal(assignment.hour_meter_start)
            end = _hour_meter(data.hour_meter_end) if data.hour_meter_end is not None else to_decimal(machine.hour_meter)
            if end < start:
                raise ValidationError(
                    "El horómetro final no puede ser menor al inicial",
                    {"hour_meter_start": str(start), "hour_meter_end": str(end)}
                )

            assignment.is_active = False
            assignment.end_date = data.end_date
            assignment.hour_meter_end = end
            if data.notes:
                assignment.notes = f"{assignment.notes}\nCierre: {data.notes}" if assignment.notes else f"Cierre: {data.notes}"

            machine_status_machine.transition(machine, MachineStatus.DISPONIBLE)
            machine.location = settings.MACHINERY_YARD_LOCATION
            machine.hour_meter = max(end, to_decimal(machine.hour_meter))

            self.db.commit()
            self.db.refresh(assignment)
            logger.info(f"Equipo {machine.code} regresó de obra: {end - start} horas")
            return assignment

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error cerrando asignación: {e}")
            raise

    def list_assignments(self, tenant_id: UUID, machine_id: UUID) -> List[MachineAssignment]:
        machine = self.get_machine(tenant_id, machine_id)
        return self.db.query(MachineAssignment).filter(
            MachineAssignment.machine_id == machine.id
        ).order_by(MachineAssignment.start_date.desc()).all()
