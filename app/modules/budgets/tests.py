"""
Tests para el módulo de Presupuestos

Cubre versiones numeradas, importes exactos por concepto, el cambio de
presupuesto vigente y el avance contra estimaciones.
"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.common.exceptions import ValidationError, InvalidTransitionError, ForbiddenError
from app.modules.budgets.models import BudgetVersion
from app.modules.budgets.schemas import BudgetVersionCreate, BudgetLineCreate
from app.modules.budgets.service import BudgetService
from app.modules.billing.schemas import BillingPeriodCreate, BillingLineCreate
from app.modules.billing.service import BillingService
from app.modules.work_orders.models import WorkOrder


def _line(key="CIM-001", quantity="100", unit_price="50.00"):
    return BudgetLineCreate(
        key=key, description="Excavación a cielo abierto", unit="m3",
        quantity=Decimal(quantity), unit_price=Decimal(unit_price)
    )


@pytest.fixture
def budget(db_session: Session, sample_company, sample_work_order):
    return BudgetService(db_session).create_version(
        sample_company.id,
        sample_work_order.id,
        BudgetVersionCreate(name="Presupuesto base", is_current=True, lines=[_line()])
    )


class TestBudgetVersions:

    def test_line_amount_is_quantity_times_price(self, db_session: Session, sample_company, budget):
        line = budget.lines[0]
        assert Decimal(str(line.amount)) == Decimal("5000.00")
        assert BudgetService(db_session).total_amount(sample_company.id, budget.id) == Decimal("5000.00")

    def test_versions_are_consecutive(self, db_session: Session, sample_company, sample_work_order, budget):
        second = BudgetService(db_session).create_version(
            sample_company.id, sample_work_order.id, BudgetVersionCreate(name="Ajuste de alcance")
        )
        assert budget.version == 1
        assert second.version == 2
        assert second.is_current is False

    def test_key_is_normalized(self, db_session: Session, sample_company, budget):
        line = BudgetService(db_session).add_line(sample_company.id, budget.id, _line(key="  alb-010 "))
        assert line.key == "ALB-010"

    def test_duplicate_key_rejected(self, db_session: Session, sample_company, budget):
        with pytest.raises(ValidationError):
            BudgetService(db_session).add_line(sample_company.id, budget.id, _line(key="cim-001"))

    def test_repeated_key_in_new_version(self, db_session: Session, sample_company, sample_work_order):
        data = BudgetVersionCreate(name="Repetido", lines=[_line(), _line()])
        with pytest.raises(ValidationError):
            BudgetService(db_session).create_version(sample_company.id, sample_work_order.id, data)

        assert db_session.query(BudgetVersion).count() == 0

    def test_negative_values_rejected(self, db_session: Session, sample_company, budget):
        service = BudgetService(db_session)
        with pytest.raises(ValidationError):
            service.add_line(sample_company.id, budget.id, _line(key="N-1", quantity="-1"))
        with pytest.raises(ValidationError):
            service.add_line(sample_company.id, budget.id, _line(key="N-2", unit_price="-0.01"))

    def test_extra_decimals_rejected(self, db_session: Session, sample_company, budget):
        service = BudgetService(db_session)
        with pytest.raises(ValidationError):
            service.add_line(sample_company.id, budget.id, _line(key="D-1", quantity="3", unit_price="10.005"))
        with pytest.raises(ValidationError):
            service.add_line(sample_company.id, budget.id, _line(key="D-2", quantity="1.00001"))

        assert [line.key for line in service.get_version(sample_company.id, budget.id).lines] == ["CIM-001"]

    def test_stored_amount_matches_stored_values(self, db_session: Session, sample_company, budget):
        line = BudgetService(db_session).add_line(
            sample_company.id, budget.id, _line(key="ALB-020", quantity="3.125", unit_price="10.01")
        )
        db_session.expire_all()

        quantity = Decimal(str(line.quantity))
        unit_price = Decimal(str(line.unit_price))
        assert Decimal(str(line.amount)) == quantity * unit_price == Decimal("31.28125")

    def test_other_company_cannot_read(self, db_session: Session, other_company, budget):
        with pytest.raises(ForbiddenError):
            BudgetService(db_session).get_version(other_company.id, budget.id)


class TestCurrentVersion:

    def test_mark_current_leaves_exactly_one(self, db_session: Session, sample_company, sample_work_order, budget):
        service = BudgetService(db_session)
        second = service.create_version(sample_company.id, sample_work_order.id, BudgetVersionCreate(name="v2"))

        service.mark_current(sample_company.id, sample_work_order.id, second.id)

        current = db_session.query(BudgetVersion).filter(
            BudgetVersion.work_order_id == sample_work_order.id,
            BudgetVersion.is_current.is_(True)
        ).all()
        assert [v.id for v in current] == [second.id]
        assert service.get_current_version(sample_company.id, sample_work_order.id).id == second.id

    def test_consecutive_marks_leave_one_current(self, db_session: Session, sample_company, sample_work_order, budget):
        service = BudgetService(db_session)
        second = service.create_version(sample_company.id, sample_work_order.id, BudgetVersionCreate(name="v2"))
        third = service.create_version(sample_company.id, sample_work_order.id, BudgetVersionCreate(name="v3"))

        service.mark_current(sample_company.id, sample_work_order.id, second.id)
        service.mark_current(sample_company.id, sample_work_order.id, third.id)

        flags = {
            v.id: v.is_current
            for v in db_session.query(BudgetVersion).filter(BudgetVersion.work_order_id == sample_work_order.id)
        }
        assert flags == {budget.id: False, second.id: False, third.id: True}

    def test_database_rejects_second_current(self, db_session: Session, sample_company, sample_work_order, budget):
        db_session.add(BudgetVersion(
            tenant_id=sample_company.id,
            work_order_id=sample_work_order.id,
            version=2,
            name="Vigente duplicado",
            is_current=True,
        ))
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()

        current = db_session.query(BudgetVersion).filter(BudgetVersion.is_current.is_(True)).all()
        assert [v.id for v in current] == [budget.id]

    def test_mark_current_is_idempotent(self, db_session: Session, sample_company, sample_work_order, budget):
        service = BudgetService(db_session)
        service.mark_current(sample_company.id, sample_work_order.id, budget.id)
        assert service.get_current_version(sample_company.id, sample_work_order.id).id == budget.id

    def test_mark_current_wrong_work_order(self, db_session: Session, sample_company, budget):
        other_work_order = WorkOrder(tenant_id=sample_company.id, code="OBR-2025-009", name="Otra obra")
        db_session.add(other_work_order)
        db_session.commit()

        with pytest.raises(ValidationError):
            BudgetService(db_session).mark_current(sample_company.id, other_work_order.id, budget.id)

    def test_no_current_version(self, db_session: Session, sample_company, sample_work_order):
        assert BudgetService(db_session).get_current_version(sample_company.id, sample_work_order.id) is None


class TestDeleteVersion:

    def test_delete_current_refused(self, db_session: Session, sample_company, budget):
        with pytest.raises(InvalidTransitionError):
            BudgetService(db_session).delete_version(sample_company.id, budget.id)

    def test_delete_non_current(self, db_session: Session, sample_company, sample_work_order, budget):
        service = BudgetService(db_session)
        draft = service.create_version(sample_company.id, sample_work_order.id, BudgetVersionCreate(name="Borrador"))

        service.delete_version(sample_company.id, draft.id)
        assert db_session.query(BudgetVersion).count() == 1

    def test_delete_with_billing_refused(self, db_session: Session, sample_company, sample_work_order, budget):
        budget_line_id = budget.lines[0].id
        billing = BillingService(db_session)
        period = billing.create_period(
            sample_company.id, sample_work_order.id,
            BillingPeriodCreate(period="Marzo 2025", cutoff_date=date(2025, 3, 31))
        )
        billing.add_billing_line(
            sample_company.id, period.id,
            BillingLineCreate(budget_line_id=budget_line_id, executed_quantity=Decimal("10"))
        )

        service = BudgetService(db_session)
        v2 = service.create_version(sample_company.id, sample_work_order.id, BudgetVersionCreate(name="v2", is_current=True))
        assert v2.is_current

        with pytest.raises(InvalidTransitionError):
            service.delete_version(sample_company.id, budget.id)


class TestProgress:

    def test_progress_against_billing(self, db_session: Session, sample_company, sample_work_order, budget):
        billing = BillingService(db_session)
        period = billing.create_period(
            sample_company.id, sample_work_order.id,
            BillingPeriodCreate(period="Marzo 2025", cutoff_date=date(2025, 3, 31))
        )
        billing.add_billing_line(
            sample_company.id, period.id,
            BillingLineCreate(budget_line_id=budget.lines[0].id, executed_quantity=Decimal("25"))
        )

        progress = BudgetService(db_session).progress(sample_company.id, budget.id)

        assert progress.budgeted_amount == Decimal("5000.00")
        assert progress.executed_amount == Decimal("1250.00")
        assert progress.pending_amount == Decimal("3750.00")
        assert progress.progress_pct == Decimal("25.00")
        assert progress.lines[0].pending_quantity == Decimal("75")


class TestBudgetAPI:

    def test_create_and_read(self, client, sample_user, sample_company, sample_work_order, auth_headers):
        headers = auth_headers(sample_user, sample_company)
        payload = {
            "name": "Presupuesto contrato",
            "is_current": True,
            "lines": [
                {"key": "cim-001", "description": "Excavación", "unit": "m3", "quantity": "100", "unit_price": "50.00"},
                {"key": "cim-002", "description": "Plantilla", "unit": "m2", "quantity": "40", "unit_price": "12.50"},
            ],
        }
        response = client.post(f"/presupuestos/obra/{sample_work_order.id}", json=payload, headers=headers)
        assert response.status_code == 201
        version_id = response.json()["id"]

        response = client.get(f"/presupuestos/{version_id}", headers=headers)
        assert response.status_code == 200
        detail = response.json()
        assert [line["key"] for line in detail["lines"]] == ["CIM-001", "CIM-002"]
        assert Decimal(str(detail["total_amount"])) == Decimal("5500.00")

        response = client.get(f"/presupuestos/obra/{sample_work_order.id}/vigente", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == version_id

    def test_delete_current_returns_conflict(self, client, sample_user, sample_company, budget, auth_headers):
        response = client.delete(f"/presupuestos/{budget.id}", headers=auth_headers(sample_user, sample_company))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "invalid_transition"
