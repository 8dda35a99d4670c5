"""
Servicios de negocio para Presupuestos

- Versiones de presupuesto numeradas por obra
- Conceptos con importe exacto (cantidad × precio unitario)
- Cambio atómico del presupuesto vigente
- Avance físico-financiero contra estimaciones
"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import func
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID
import logging

from app.database.database import get_tenant_object
from app.common.exceptions import ERPError, ValidationError, InvalidTransitionError
from app.common.money import (
    to_decimal, line_amount, sum_money, quantize_money, require_quantity, require_price, ZERO
)
from app.modules.work_orders.models import WorkOrder
from app.modules.budgets.models import BudgetVersion, BudgetLine
from app.modules.budgets.schemas import (
    BudgetVersionCreate, BudgetLineCreate, BudgetVersionDetail, BudgetVersionOut,
    BudgetLineOut, BudgetProgress, BudgetLineProgress
)

logger = logging.getLogger(__name__)


class BudgetService:
    """Servicio para gestión de presupuestos"""

    def __init__(self, db: Session):
        self.db = db

    # ===== VERSIONES =====

    def create_version(self, tenant_id: UUID, work_order_id: UUID, data: BudgetVersionCreate) -> BudgetVersion:
        """
        Crear nueva versión de presupuesto.
        El número de versión es consecutivo por obra; la obra se bloquea
        mientras se asigna.
        """
        try:
            work_order = get_tenant_object(self.db, WorkOrder, work_order_id, tenant_id, "Obra", for_update=True)

            last_version = self.db.query(func.max(BudgetVersion.version)).filter(
                BudgetVersion.work_order_id == work_order.id
            ).scalar() or 0

            budget = BudgetVersion(
                tenant_id=tenant_id,
                work_order_id=work_order.id,
                version=last_version + 1,
                name=data.name,
                description=data.description,
                is_current=False,
            )
            self.db.add(budget)
            self.db.flush()

            seen_keys = set()
            for line_data in data.lines:
                if line_data.key in seen_keys:
                    raise ValidationError(
                        f"La clave {line_data.key} está repetida en el presupuesto",
                        {"key": line_data.key}
                    )
                seen_keys.add(line_data.key)
                self.db.add(self._build_line(tenant_id, budget.id, line_data))

            if data.is_current:
                self._set_current(work_order.id, budget)

            self.db.commit()
            self.db.refresh(budget)

            logger.info(
                f"Presupuesto v{budget.version} creado para obra {work_order.code} "
                f"con {len(data.lines)} conceptos"
            )
            return budget

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creando presupuesto: {e}")
            raise

    def get_version(self, tenant_id: UUID, budget_version_id: UUID, for_update: bool = False) -> BudgetVersion:
        return get_tenant_object(
            self.db, BudgetVersion, budget_version_id, tenant_id, "Presupuesto", for_update=for_update
        )

    def get_version_detail(self, tenant_id: UUID, budget_version_id: UUID) -> BudgetVersionDetail:
        budget = self.get_version(tenant_id, budget_version_id)
        return BudgetVersionDetail(
            id=budget.id,
            work_order_id=budget.work_order_id,
            version=budget.version,
            name=budget.name,
            description=budget.description,
            is_current=budget.is_current,
            created_at=budget.created_at,
            lines=[BudgetLineOut.model_validate(line) for line in budget.lines],
            total_amount=quantize_money(sum_money(line.amount for line in budget.lines)),
        )

    def list_versions(self, tenant_id: UUID, work_order_id: UUID) -> List[BudgetVersionOut]:
        work_order = get_tenant_object(self.db, WorkOrder, work_order_id, tenant_id, "Obra")
        versions = self.db.query(BudgetVersion).filter(
            BudgetVersion.work_order_id == work_order.id
        ).order_by(BudgetVersion.version.desc()).all()
        return [BudgetVersionOut.model_validate(v) for v in versions]

    def get_current_version(self, tenant_id: UUID, work_order_id: UUID) -> Optional[BudgetVersion]:
        """Presupuesto vigente de la obra, o None si no se ha marcado ninguno"""
        work_order = get_tenant_object(self.db, WorkOrder, work_order_id, tenant_id, "Obra")
        return self.db.query(BudgetVersion).filter(
            BudgetVersion.work_order_id == work_order.id,
            BudgetVersion.is_current.is_(True)
        ).first()

    def mark_current(self, tenant_id: UUID, work_order_id: UUID, budget_version_id: UUID) -> BudgetVersion:
        """
        Marca una versión como vigente y desmarca las demás de la misma obra.

        Todo ocurre en una sola transacción con la obra y sus versiones
        bloqueadas (SELECT ... FOR UPDATE); dos llamadas concurrentes sobre la
        misma obra se serializan y nunca quedan dos versiones vigentes.
        """
        try:
            work_order = get_tenant_object(self.db, WorkOrder, work_order_id, tenant_id, "Obra", for_update=True)
            budget = self.get_version(tenant_id, budget_version_id, for_update=True)

            if budget.work_order_id != work_order.id:
                raise ValidationError(
                    "El presupuesto no pertenece a la obra indicada",
                    {"budget_version_id": str(budget.id), "work_order_id": str(work_order.id)}
                )

            self._set_current(work_order.id, budget)
            self.db.commit()
            self.db.refresh(budget)

            logger.info(f"Presupuesto v{budget.version} marcado como vigente en obra {work_order.code}")
            return budget

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error marcando presupuesto vigente: {e}")
            raise

    def _set_current(self, work_order_id: UUID, budget: BudgetVersion) -> None:
        siblings = self.db.query(BudgetVersion).filter(
            BudgetVersion.work_order_id == work_order_id
        ).with_for_update().all()

        # Primero se desmarcan todas para no violar el índice único parcial
        for sibling in siblings:
            if sibling.id != budget.id and sibling.is_current:
                sibling.is_current = False
        self.db.flush()

        budget.is_current = True
        self.db.flush()

    def delete_version(self, tenant_id: UUID, budget_version_id: UUID) -> None:
        """
        Eliminar una versión de presupuesto.
        No se permite si es la vigente o si alguna estimación usa sus conceptos.
        """
        from app.modules.billing.models import BillingLine

        try:
            budget = self.get_version(tenant_id, budget_version_id, for_update=True)

            if budget.is_current:
                raise InvalidTransitionError(
                    "presupuesto", "vigente", "eliminado",
                    "No se puede eliminar el presupuesto vigente"
                )

            in_use = self.db.query(BillingLine.id).join(
                BudgetLine, BillingLine.budget_line_id == BudgetLine.id
            ).filter(BudgetLine.budget_version_id == budget.id).first()
            if in_use:
                raise InvalidTransitionError(
                    "presupuesto", "estimado", "eliminado",
                    "No se puede eliminar un presupuesto con estimaciones registradas"
                )

            self.db.delete(budget)
            self.db.commit()
            logger.info(f"Presupuesto {budget_version_id} eliminado")

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error eliminando presupuesto: {e}")
            raise

    # ===== CONCEPTOS =====

    def add_line(self, tenant_id: UUID, budget_version_id: UUID, data: BudgetLineCreate) -> BudgetLine:
        """Agregar concepto a una versión de presupuesto"""
        try:
            budget = self.get_version(tenant_id, budget_version_id, for_update=True)

            duplicate = self.db.query(BudgetLine.id).filter(
                BudgetLine.budget_version_id == budget.id,
                BudgetLine.key == data.key
            ).first()
            if duplicate:
                raise ValidationError(
                    f"Ya existe el concepto {data.key} en este presupuesto",
                    {"key": data.key}
                )

            line = self._build_line(tenant_id, budget.id, data)
            self.db.add(line)
            self.db.commit()
            self.db.refresh(line)

            logger.info(f"Concepto {line.key} agregado al presupuesto {budget.id}: importe {line.amount}")
            return line

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error agregando concepto: {e}")
            raise

    def _build_line(self, tenant_id: UUID, budget_version_id: UUID, data: BudgetLineCreate) -> BudgetLine:
        quantity = require_quantity(data.quantity)
        unit_price = require_price(data.unit_price)
        if quantity < 0:
            raise ValidationError("La cantidad no puede ser negativa", {"key": data.key})
        if unit_price < 0:
            raise ValidationError("El precio unitario no puede ser negativo", {"key": data.key})

        return BudgetLine(
            tenant_id=tenant_id,
            budget_version_id=budget_version_id,
            key=data.key.strip().upper(),
            description=data.description,
            unit=data.unit,
            quantity=quantity,
            unit_price=unit_price,
            amount=line_amount(quantity, unit_price),
        )

    def total_amount(self, tenant_id: UUID, budget_version_id: UUID) -> Decimal:
        """Suma exacta de los importes de los conceptos"""
        budget = self.get_version(tenant_id, budget_version_id)
        amounts = self.db.query(BudgetLine.amount).filter(
            BudgetLine.budget_version_id == budget.id
        ).all()
        return sum_money(amount for (amount,) in amounts)

    # ===== AVANCE =====

    def progress(self, tenant_id: UUID, budget_version_id: UUID) -> BudgetProgress:
        """
        Avance por concepto: cantidad ejecutada en estimaciones no canceladas
        contra la presupuestada.
        """
        from app.modules.billing.models import BillingLine, BillingPeriod, BillingPeriodStatus

        budget = self.get_version(tenant_id, budget_version_id)

        executed_rows = self.db.query(
            BillingLine.budget_line_id,
            func.coalesce(func.sum(BillingLine.executed_quantity), 0)
        ).join(
            BillingPeriod, BillingLine.billing_period_id == BillingPeriod.id
        ).join(
            BudgetLine, BillingLine.budget_line_id == BudgetLine.id
        ).filter(
            BudgetLine.budget_version_id == budget.id,
            BillingPeriod.status != BillingPeriodStatus.CANCELLED
        ).group_by(BillingLine.budget_line_id).all()
        executed: Dict[UUID, Decimal] = {row[0]: to_decimal(row[1]) for row in executed_rows}

        lines = []
        for line in budget.lines:
            quantity = to_decimal(line.quantity)
            unit_price = to_decimal(line.unit_price)
            done = executed.get(line.id, ZERO)
            budgeted_amount = to_decimal(line.amount)
            executed_amount = line_amount(done, unit_price)
            lines.append(BudgetLineProgress(
                budget_line_id=line.id,
                key=line.key,
                description=line.description,
                unit=line.unit,
                unit_price=unit_price,
                budgeted_quantity=quantity,
                budgeted_amount=quantize_money(budgeted_amount),
                executed_quantity=done,
                executed_amount=quantize_money(executed_amount),
                pending_quantity=quantity - done,
                pending_amount=quantize_money(budgeted_amount - executed_amount),
                progress_pct=_pct(done, quantity),
            ))

        budgeted_total = sum_money(line.amount for line in budget.lines)
        executed_total = sum_money(
            line_amount(executed.get(line.id, ZERO), line.unit_price) for line in budget.lines
        )
        return BudgetProgress(
            budget_version_id=budget.id,
            work_order_id=budget.work_order_id,
            lines=lines,
            budgeted_amount=quantize_money(budgeted_total),
            executed_amount=quantize_money(executed_total),
            pending_amount=quantize_money(budgeted_total - executed_total),
            progress_pct=_pct(executed_total, budgeted_total),
        )


def _pct(part: Decimal, whole: Decimal) -> Decimal:
    if not whole:
        return ZERO
    return quantize_money(to_decimal(part) * 100 / to_decimal(whole))
