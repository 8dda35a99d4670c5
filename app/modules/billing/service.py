"""
Servicios de negocio para Estimaciones

Implementa:
- Alta de estimaciones contra el presupuesto vigente
- Captura de conceptos con control de acumulado vs. presupuestado
- Recalculo de totales (bruto, amortización, retención, neto)
- Ciclo de vida con máquina de estados
"""
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import func
from decimal import Decimal
from typing import Optional
from uuid import UUID
from datetime import datetime, timezone
import logging

from app.database.database import get_tenant_object
from app.common.exceptions import (
    ERPError, ValidationError, InvalidTransitionError, DuplicateLineError, OverAllocationError
)
from app.common.money import to_decimal, line_amount, percentage, quantize_money, sum_money, require_quantity, ZERO
from app.common.state_machine import StateMachine
from app.modules.work_orders.models import WorkOrder
from app.modules.budgets.models import BudgetVersion, BudgetLine
from app.modules.billing.models import BillingPeriod, BillingLine, BillingPeriodStatus
from app.modules.billing.schemas import (
    BillingPeriodCreate, BillingLineCreate, BillingPeriodOut, BillingPeriodDetail,
    BillingLineOut, BillingPeriodList
)

logger = logging.getLogger(__name__)


billing_machine = StateMachine("la estimación", {
    BillingPeriodStatus.DRAFT: {BillingPeriodStatus.PENDING, BillingPeriodStatus.CANCELLED},
    BillingPeriodStatus.PENDING: {BillingPeriodStatus.APPROVED, BillingPeriodStatus.CANCELLED},
    BillingPeriodStatus.APPROVED: {BillingPeriodStatus.INVOICED, BillingPeriodStatus.CANCELLED},
    BillingPeriodStatus.INVOICED: set(),
    BillingPeriodStatus.CANCELLED: set(),
})

DELETABLE_STATUSES = {BillingPeriodStatus.DRAFT, BillingPeriodStatus.CANCELLED}


def compute_period_totals(line_amounts, advance_pct, retention_pct):
    """
    Regresa (bruto, amortización, retención, neto) redondeados a centavos.
    El bruto se suma a precisión completa y se redondea una sola vez; el
    neto se obtiene de los importes ya redondeados para que cuadre.
    """
    gross = sum_money(line_amounts)
    amortization = quantize_money(percentage(gross, advance_pct))
    retention = quantize_money(percentage(gross, retention_pct))
    gross = quantize_money(gross)
    return gross, amortization, retention, gross - amortization - retention


class BillingService:
    """Servicio para gestión de estimaciones"""

    def __init__(self, db: Session):
        self.db = db

    def get_period(self, tenant_id: UUID, period_id: UUID, for_update: bool = False) -> BillingPeriod:
        return get_tenant_object(self.db, BillingPeriod, period_id, tenant_id, "Estimación", for_update=for_update)

    def create_period(self, tenant_id: UUID, work_order_id: UUID, data: BillingPeriodCreate) -> BillingPeriod:
        """Crear estimación en borrador contra el presupuesto vigente de la obra"""
        try:
            work_order = get_tenant_object(self.db, WorkOrder, work_order_id, tenant_id, "Obra", for_update=True)

            budget = self.db.query(BudgetVersion).filter(
                BudgetVersion.work_order_id == work_order.id,
                BudgetVersion.is_current.is_(True)
            ).first()
            if not budget:
                raise ValidationError(
                    "La obra no tiene presupuesto vigente",
                    {"work_order_id": str(work_order.id)}
                )

            if data.number is not None:
                taken = self.db.query(BillingPeriod.id).filter(
                    BillingPeriod.work_order_id == work_order.id,
                    BillingPeriod.number == data.number
                ).first()
                if taken:
                    raise ValidationError(
                        f"Ya existe la estimación número {data.number} en esta obra",
                        {"number": data.number}
                    )
                number = data.number
            else:
                last_number = self.db.query(func.max(BillingPeriod.number)).filter(
                    BillingPeriod.work_order_id == work_order.id
                ).scalar() or 0
                number = last_number + 1

            period = BillingPeriod(
                tenant_id=tenant_id,
                work_order_id=work_order.id,
                budget_version_id=budget.id,
                number=number,
                period=data.period,
                cutoff_date=data.cutoff_date,
                notes=data.notes,
                status=BillingPeriodStatus.DRAFT,
                gross_amount=ZERO,
                amortization=ZERO,
                retention=ZERO,
                net_amount=ZERO,
                paid=ZERO,
            )
            self.db.add(period)
            self.db.commit()
            self.db.refresh(period)

            logger.info(f"Estimación #{period.number} creada en obra {work_order.code}")
            return period

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creando estimación: {e}")
            raise

    def prior_cumulative(self, tenant_id: UUID, budget_line_id: UUID, period: Optional[BillingPeriod] = None) -> Decimal:
        """
        Cantidad acumulada de un concepto en estimaciones anteriores no
        canceladas. Sin ``period`` se consideran todas las estimaciones.
        """
        budget_line = get_tenant_object(self.db, BudgetLine, budget_line_id, tenant_id, "Concepto")

        query = self.db.query(
            func.coalesce(func.sum(BillingLine.executed_quantity), 0)
        ).join(
            BillingPeriod, BillingLine.billing_period_id == BillingPeriod.id
        ).filter(
            BillingLine.budget_line_id == budget_line.id,
            BillingPeriod.status != BillingPeriodStatus.CANCELLED
        )
        if period is not None:
            query = query.filter(
                BillingPeriod.work_order_id == period.work_order_id,
                BillingPeriod.number < period.number,
                BillingPeriod.id != period.id
            )
        return to_decimal(query.scalar() or 0)

    def _allocated_elsewhere(self, budget_line_id: UUID, period: BillingPeriod) -> Decimal:
        """Cantidad del concepto en todas las demás estimaciones no canceladas"""
        total = self.db.query(
            func.coalesce(func.sum(BillingLine.executed_quantity), 0)
        ).join(
            BillingPeriod, BillingLine.billing_period_id == BillingPeriod.id
        ).filter(
            BillingLine.budget_line_id == budget_line_id,
            BillingPeriod.status != BillingPeriodStatus.CANCELLED,
            BillingPeriod.id != period.id
        ).scalar()
        return to_decimal(total or 0)

    def add_billing_line(self, tenant_id: UUID, period_id: UUID, data: BillingLineCreate) -> BillingLine:
        """
        Capturar la cantidad ejecutada de un concepto en la estimación.

        - Sólo en estimaciones en borrador
        - El concepto debe ser del presupuesto vigente y no estar ya capturado
        - El acumulado de todas las estimaciones no puede exceder lo presupuestado
        """
        try:
            period = self.get_period(tenant_id, period_id, for_update=True)
            self._ensure_editable(period)

            executed = require_quantity(data.executed_quantity, "executed_quantity")
            if executed <= 0:
                raise ValidationError("La cantidad ejecutada debe ser mayor a cero")

            budget_line = get_tenant_object(
                self.db, BudgetLine, data.budget_line_id, tenant_id, "Concepto", for_update=True
            )
            if budget_line.budget_version_id != period.budget_version_id:
                raise ValidationError(
                    "El concepto no pertenece al presupuesto de la estimación",
                    {"budget_line_id": str(budget_line.id)}
                )
            if not period.budget_version.is_current:
                raise ValidationError("El presupuesto de la estimación ya no es el vigente")

            duplicate = self.db.query(BillingLine.id).filter(
                BillingLine.billing_period_id == period.id,
                BillingLine.budget_line_id == budget_line.id
            ).first()
            if duplicate:
                raise DuplicateLineError(
                    f"El concepto {budget_line.key} ya está en esta estimación",
                    {"budget_line_id": str(budget_line.id)}
                )

            budgeted = to_decimal(budget_line.quantity)
            allocated = self._allocated_elsewhere(budget_line.id, period)
            if allocated + executed > budgeted:
                logger.warning(
                    f"Sobre-estimación de {budget_line.key}: acumulado {allocated} + {executed} > {budgeted}"
                )
                raise OverAllocationError(
                    f"La cantidad acumulada del concepto {budget_line.key} excede la presupuestada",
                    {
                        "budget_line_id": str(budget_line.id),
                        "budgeted_quantity": str(budgeted),
                        "cumulative_quantity": str(allocated),
                        "requested_quantity": str(executed),
                    }
                )

            prior = self.prior_cumulative(tenant_id, budget_line.id, period)
            unit_price = to_decimal(budget_line.unit_price)
            line = BillingLine(
                tenant_id=tenant_id,
                billing_period_id=period.id,
                budget_line_id=budget_line.id,
                executed_quantity=executed,
                cumulative_quantity=prior + executed,
                unit_price=unit_price,
                amount=line_amount(executed, unit_price),
            )
            self.db.add(line)
            self.db.flush()

            self._recompute(period)
            self.db.commit()
            self.db.refresh(line)

            logger.info(
                f"Estimación #{period.number}: concepto {budget_line.key} ejecutado {executed}, "
                f"acumulado {line.cumulative_quantity}"
            )
            return line

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error agregando concepto a estimación: {e}")
            raise

    def remove_billing_line(self, tenant_id: UUID, period_id: UUID, line_id: UUID) -> BillingPeriod:
        """Quitar un concepto de una estimación en borrador"""
        try:
            period = self.get_period(tenant_id, period_id, for_update=True)
            self._ensure_editable(period)

            line = get_tenant_object(self.db, BillingLine, line_id, tenant_id, "Concepto de estimación")
            if line.billing_period_id != period.id:
                raise ValidationError("El concepto no pertenece a esta estimación", {"line_id": str(line_id)})

            period.lines.remove(line)
            self.db.flush()

            self._recompute(period)
            self.db.commit()
            self.db.refresh(period)
            logger.info(f"Concepto {line_id} eliminado de estimación #{period.number}")
            return period

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error eliminando concepto de estimación: {e}")
            raise

    def recompute_totals(self, tenant_id: UUID, period_id: UUID) -> BillingPeriod:
        try:
            period = self.get_period(tenant_id, period_id, for_update=True)
            self._recompute(period)
            self.db.commit()
            self.db.refresh(period)
            return period
        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error recalculando estimación: {e}")
            raise

    def _recompute(self, period: BillingPeriod) -> None:
        work_order = period.work_order
        amounts = self.db.query(BillingLine.amount).filter(
            BillingLine.billing_period_id == period.id
        ).all()
        gross, amortization, retention, net = compute_period_totals(
            (amount for (amount,) in amounts),
            work_order.advance_pct,
            work_order.retention_pct,
        )
        period.gross_amount = gross
        period.amortization = amortization
        period.retention = retention
        period.net_amount = net

    def _ensure_editable(self, period: BillingPeriod) -> None:
        if period.status != BillingPeriodStatus.DRAFT:
            raise InvalidTransitionError(
                "la estimación", period.status.value, "edición",
                f"Sólo se pueden modificar conceptos de estimaciones en borrador (estado actual: {period.status.value})"
            )

    # ===== CICLO DE VIDA =====

    def submit(self, tenant_id: UUID, period_id: UUID) -> BillingPeriod:
        """DRAFT → PENDING. Requiere al menos un concepto."""
        return self._transition(tenant_id, period_id, BillingPeriodStatus.PENDING)

    def approve(self, tenant_id: UUID, period_id: UUID) -> BillingPeriod:
        return self._transition(tenant_id, period_id, BillingPeriodStatus.APPROVED)

    def invoice(self, tenant_id: UUID, period_id: UUID) -> BillingPeriod:
        return self._transition(tenant_id, period_id, BillingPeriodStatus.INVOICED)

    def cancel(self, tenant_id: UUID, period_id: UUID) -> BillingPeriod:
        return self._transition(tenant_id, period_id, BillingPeriodStatus.CANCELLED)

    def _transition(self, tenant_id: UUID, period_id: UUID, to_status: BillingPeriodStatus) -> BillingPeriod:
        try:
            period = self.get_period(tenant_id, period_id, for_update=True)
            billing_machine.ensure(period.status, to_status)

            if to_status == BillingPeriodStatus.PENDING and not period.lines:
                raise ValidationError("No se puede enviar una estimación sin conceptos")

            billing_machine.transition(period, to_status)
            now = datetime.now(timezone.utc)
            if to_status == BillingPeriodStatus.PENDING:
                period.submitted_at = now
            elif to_status == BillingPeriodStatus.APPROVED:
                period.approved_at = now
            elif to_status == BillingPeriodStatus.INVOICED:
                period.invoiced_at = now

            self.db.commit()
            self.db.refresh(period)
            logger.info(f"Estimación #{period.number} ({period.id}) pasa a {to_status.value}")
            return period

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error cambiando estado de estimación: {e}")
            raise

    def delete_period(self, tenant_id: UUID, period_id: UUID) -> None:
        """Eliminar estimación (sólo en borrador o cancelada)"""
        try:
            period = self.get_period(tenant_id, period_id, for_update=True)
            if period.status not in DELETABLE_STATUSES:
                raise InvalidTransitionError(
                    "la estimación", period.status.value, "eliminada",
                    f"No se puede eliminar una estimación en estado {period.status.value}"
                )

            self.db.delete(period)
            self.db.commit()
            logger.info(f"Estimación #{period.number} ({period_id}) eliminada")

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error eliminando estimación: {e}")
            raise

    # ===== CONSULTAS =====

    def outstanding_balance(self, period: BillingPeriod) -> Decimal:
        """Saldo por cobrar: neto − cobrado"""
        return to_decimal(period.net_amount) - to_decimal(period.paid)

    def get_period_detail(self, tenant_id: UUID, period_id: UUID) -> BillingPeriodDetail:
        period = self.get_period(tenant_id, period_id)
        lines = self.db.query(BillingLine).options(
            selectinload(BillingLine.budget_line)
        ).filter(BillingLine.billing_period_id == period.id).all()

        detail = BillingPeriodDetail(**self.to_out(period).model_dump())
        detail.lines = [
            BillingLineOut(
                id=line.id,
                billing_period_id=line.billing_period_id,
                budget_line_id=line.budget_line_id,
                executed_quantity=line.executed_quantity,
                cumulative_quantity=line.cumulative_quantity,
                unit_price=line.unit_price,
                amount=line.amount,
                key=line.budget_line.key if line.budget_line else None,
                description=line.budget_line.description if line.budget_line else None,
                unit=line.budget_line.unit if line.budget_line else None,
            )
            for line in sorted(lines, key=lambda l: l.budget_line.key if l.budget_line else "")
        ]
        return detail

    def list_periods(
        self,
        tenant_id: UUID,
        work_order_id: Optional[UUID] = None,
        status: Optional[BillingPeriodStatus] = None,
        limit: int = 100,
        offset: int = 0
    ) -> BillingPeriodList:
        query = self.db.query(BillingPeriod).filter(BillingPeriod.tenant_id == tenant_id)
        if work_order_id:
            query = query.filter(BillingPeriod.work_order_id == work_order_id)
        if status:
            query = query.filter(BillingPeriod.status == status)

        total = query.count()
        periods = query.order_by(
            BillingPeriod.work_order_id, BillingPeriod.number.desc()
        ).offset(offset).limit(limit).all()
        return BillingPeriodList(
            items=[self.to_out(p) for p in periods],
            total=total,
            limit=limit,
            offset=offset
        )

    def to_out(self, period: BillingPeriod) -> BillingPeriodOut:
        out = BillingPeriodOut.model_validate(period)
        out.outstanding = self.outstanding_balance(period)
        return out
