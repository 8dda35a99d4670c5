"""
Servicios de negocio para Nómina

- Catálogo de empleados con salario diario
- Periodos de nómina DRAFT → CLOSED → PAID
- Captura de detalles: días × salario diario + extras − deducciones
- Total del periodo recalculado en la misma transacción que cada captura
"""
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError
from decimal import Decimal
from typing import List, Optional, Tuple
from uuid import UUID
from datetime import datetime, timezone
import logging

from app.database.database import get_tenant_object
from app.common.exceptions import ERPError, ValidationError, InvalidTransitionError
from app.common.money import to_decimal, quantize_money, sum_money, require_price, require_scale
from app.common.state_machine import StateMachine
from app.modules.payroll.models import (
    Employee, PayrollPeriod, PayrollLine, PayrollPeriodStatus, PayrollPeriodType
)
from app.modules.payroll.schemas import (
    EmployeeCreate, PayrollPeriodCreate, PayrollLinesUpdate,
    PayrollPeriodDetail, PayrollPeriodOut, PayrollLineOut, PayrollPeriodList
)

logger = logging.getLogger(__name__)


payroll_period_machine = StateMachine("el periodo de nómina", {
    PayrollPeriodStatus.DRAFT: {PayrollPeriodStatus.CLOSED},
    PayrollPeriodStatus.CLOSED: {PayrollPeriodStatus.PAID},
    PayrollPeriodStatus.PAID: set(),
})


def compute_payroll_line(days_worked, daily_wage, extras=0, deductions=0) -> Tuple[Decimal, Decimal]:
    """Regresa (importe base, total a pagar) de un detalle de nómina"""
    base_amount = quantize_money(to_decimal(days_worked) * to_decimal(daily_wage))
    total_pay = base_amount + to_decimal(extras) - to_decimal(deductions)
    return base_amount, total_pay


class PayrollService:
    """Servicio de empleados y periodos de nómina"""

    def __init__(self, db: Session):
        self.db = db

    # ===== EMPLEADOS =====

    def create_employee(self, tenant_id: UUID, data: EmployeeCreate) -> Employee:
        try:
            employee = Employee(
                tenant_id=tenant_id,
                name=data.name.strip(),
                position=data.position,
                daily_wage=require_price(data.daily_wage, "daily_wage"),
                phone=data.phone,
            )
            self.db.add(employee)
            self.db.commit()
            self.db.refresh(employee)
            logger.info(f"Empleado {employee.name} dado de alta con salario diario {employee.daily_wage}")
            return employee

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creando empleado: {e}")
            raise

    def list_employees(self, tenant_id: UUID, include_inactive: bool = False) -> List[Employee]:
        query = self.db.query(Employee).filter(Employee.tenant_id == tenant_id)
        if not include_inactive:
            query = query.filter(Employee.is_active.is_(True))
        return query.order_by(Employee.name).all()

    # ===== PERIODOS =====

    def get_period(self, tenant_id: UUID, period_id: UUID, for_update: bool = False) -> PayrollPeriod:
        return get_tenant_object(self.db, PayrollPeriod, period_id, tenant_id, "Periodo de nómina", for_update=for_update)

    def create_period(self, tenant_id: UUID, data: PayrollPeriodCreate) -> PayrollPeriod:
        try:
            if data.work_order_id:
                from app.modules.work_orders.models import WorkOrder
                get_tenant_object(self.db, WorkOrder, data.work_order_id, tenant_id, "Obra")

            period = PayrollPeriod(
                tenant_id=tenant_id,
                period_type=PayrollPeriodType(data.period_type.value),
                year=data.year,
                week=data.week,
                fortnight=data.fortnight,
                month=data.month,
                start_date=data.start_date,
                end_date=data.end_date,
                work_order_id=data.work_order_id,
                status=PayrollPeriodStatus.DRAFT,
                total=Decimal("0"),
            )
            self.db.add(period)
            self.db.commit()
            self.db.refresh(period)

            logger.info(f"Periodo de nómina {period.period_type.value} {period.year} creado ({period.start_date} a {period.end_date})")
            return period

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creando periodo de nómina: {e}")
            raise

    def save_lines(self, tenant_id: UUID, period_id: UUID, data: PayrollLinesUpdate) -> PayrollPeriod:
        """
        Captura o actualiza los detalles de varios empleados y recalcula el
        total. Si un detalle es inválido no se guarda ninguno.
        """
        try:
            period = self.get_period(tenant_id, period_id, for_update=True)
            self._ensure_editable(period)

            max_days = (period.end_date - period.start_date).days + 1
            existing = {
                line.employee_id: line
                for line in self.db.query(PayrollLine).filter(
                    PayrollLine.payroll_period_id == period.id
                ).with_for_update().all()
            }

            seen = set()
            for item in data.lines:
                if item.employee_id in seen:
                    raise ValidationError(
                        "El empleado aparece más de una vez en la captura", {"employee_id": str(item.employee_id)}
                    )
                seen.add(item.employee_id)

                employee = get_tenant_object(self.db, Employee, item.employee_id, tenant_id, "Empleado")
                if not employee.is_active:
                    raise ValidationError(f"El empleado {employee.name} está inactivo")

                days = require_scale(item.days_worked, 2, "days_worked")
                if days > max_days:
                    raise ValidationError(
                        f"Los días trabajados de {employee.name} exceden los {max_days} días del periodo",
                        {"employee_id": str(employee.id), "days_worked": str(days), "max_days": max_days}
                    )
                wage = require_price(item.daily_wage if item.daily_wage is not None else employee.daily_wage, "daily_wage")
                extras = require_price(item.extras, "extras")
                deductions = require_price(item.deductions, "deductions")

                base_amount, total_pay = compute_payroll_line(days, wage, extras, deductions)
                if total_pay < 0:
                    raise ValidationError(
                        f"Las deducciones de {employee.name} exceden lo percibido",
                        {"employee_id": str(employee.id), "total_pay": str(total_pay)}
                    )

                line = existing.get(employee.id)
                if line is None:
                    line = PayrollLine(tenant_id=tenant_id, payroll_period_id=period.id, employee_id=employee.id)
                    self.db.add(line)
                    existing[employee.id] = line
                line.days_worked = days
                line.daily_wage = wage
                line.base_amount = base_amount
                line.extras = extras
                line.deductions = deductions
                line.total_pay = total_pay
                line.notes = item.notes

            self.db.flush()
            period.total = sum_money(line.total_pay for line in existing.values())

            self.db.commit()
            self.db.refresh(period)
            logger.info(f"Nómina {period.id}: {len(data.lines)} detalles capturados, total {period.total}")
            return period

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error capturando nómina: {e}")
            raise

    def remove_line(self, tenant_id: UUID, period_id: UUID, line_id: UUID) -> PayrollPeriod:
        try:
            period = self.get_period(tenant_id, period_id, for_update=True)
            self._ensure_editable(period)

            line = get_tenant_object(self.db, PayrollLine, line_id, tenant_id, "Detalle de nómina")
            if line.payroll_period_id != period.id:
                raise ValidationError("El detalle no pertenece a este periodo", {"line_id": str(line_id)})

            self.db.delete(line)
            self.db.flush()
            amounts = self.db.query(PayrollLine.total_pay).filter(PayrollLine.payroll_period_id == period.id).all()
            period.total = sum_money(amount for (amount,) in amounts)

            self.db.commit()
            self.db.refresh(period)
            return period

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error eliminando detalle de nómina: {e}")
            raise

    def _ensure_editable(self, period: PayrollPeriod) -> None:
        if period.status != PayrollPeriodStatus.DRAFT:
            raise InvalidTransitionError(
                "el periodo de nómina", period.status.value, "edición",
                f"Sólo se pueden capturar periodos en borrador (estado actual: {period.status.value})"
            )

    # ===== CICLO DE VIDA =====

    def close(self, tenant_id: UUID, period_id: UUID) -> PayrollPeriod:
        """DRAFT → CLOSED. Requiere al menos un detalle."""
        return self._transition(tenant_id, period_id, PayrollPeriodStatus.CLOSED)

    def mark_paid(self, tenant_id: UUID, period_id: UUID) -> PayrollPeriod:
        """CLOSED → PAID"""
        return self._transition(tenant_id, period_id, PayrollPeriodStatus.PAID)

    def _transition(self, tenant_id: UUID, period_id: UUID, to_status: PayrollPeriodStatus) -> PayrollPeriod:
        try:
            period = self.get_period(tenant_id, period_id, for_update=True)
            payroll_period_machine.ensure(period.status, to_status)

            if to_status == PayrollPeriodStatus.CLOSED:
                has_lines = self.db.query(PayrollLine.id).filter(
                    PayrollLine.payroll_period_id == period.id
                ).first()
                if not has_lines:
                    raise ValidationError("No se puede cerrar un periodo de nómina sin detalles")
                period.closed_at = datetime.now(timezone.utc)
            elif to_status == PayrollPeriodStatus.PAID:
                period.paid_at = datetime.now(timezone.utc)

            payroll_period_machine.transition(period, to_status)
            self.db.commit()
            self.db.refresh(period)
            logger.info(f"Periodo de nómina {period.id} en estado {period.status.value}")
            return period

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error cambiando estado de nómina: {e}")
            raise

    # ===== CONSULTAS =====

    def get_period_detail(self, tenant_id: UUID, period_id: UUID) -> PayrollPeriodDetail:
        period = self.get_period(tenant_id, period_id)
        lines = self.db.query(PayrollLine).options(
            selectinload(PayrollLine.employee)
        ).filter(PayrollLine.payroll_period_id == period.id).all()

        detail = PayrollPeriodDetail(**PayrollPeriodOut.model_validate(period).model_dump())
        detail.lines = []
        for line in sorted(lines, key=lambda l: l.employee.name):
            out = PayrollLineOut.model_validate(line)
            out.employee_name = line.employee.name
            detail.lines.append(out)
        return detail

    def list_periods(
        self,
        tenant_id: UUID,
        year: Optional[int] = None,
        status: Optional[PayrollPeriodStatus] = None,
        work_order_id: Optional[UUID] = None,
        limit: int = 100,
        offset: int = 0
    ) -> PayrollPeriodList:
        query = self.db.query(PayrollPeriod).filter(PayrollPeriod.tenant_id == tenant_id)
        if year:
            query = query.filter(PayrollPeriod.year == year)
        if status:
            query = query.filter(PayrollPeriod.status == status)
        if work_order_id:
            query = query.filter(PayrollPeriod.work_order_id == work_order_id)

        total = query.count()
        periods = query.order_by(
            PayrollPeriod.year.desc(), PayrollPeriod.start_date.desc()
        ).offset(offset).limit(limit).all()
        return PayrollPeriodList(items=periods, total=total, limit=limit, offset=offset)
