"""
Tests para el módulo de Estimaciones

- Acumulado por concepto y control de sobre-estimación
- Totales: bruto, amortización de anticipo, retención y neto
- Ciclo de vida DRAFT → PENDING → APPROVED → INVOICED
"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session

from app.common.exceptions import (
    ValidationError, InvalidTransitionError, DuplicateLineError, OverAllocationError
)
from app.modules.billing.models import BillingPeriod, BillingLine, BillingPeriodStatus
from app.modules.billing.schemas import BillingPeriodCreate, BillingLineCreate
from app.modules.billing.service import BillingService, compute_period_totals
from app.modules.budgets.schemas import BudgetVersionCreate, BudgetLineCreate
from app.modules.budgets.service import BudgetService


@pytest.fixture
def budget(db_session: Session, sample_company, sample_work_order):
    return BudgetService(db_session).create_version(
        sample_company.id,
        sample_work_order.id,
        BudgetVersionCreate(name="Presupuesto base", is_current=True, lines=[
            BudgetLineCreate(key="CIM-001", description="Excavación", unit="m3",
                             quantity=Decimal("100"), unit_price=Decimal("50.00")),
            BudgetLineCreate(key="EST-001", description="Acero de refuerzo", unit="kg",
                             quantity=Decimal("1000"), unit_price=Decimal("25.00")),
        ])
    )


@pytest.fixture
def excavation(budget):
    return next(line for line in budget.lines if line.key == "CIM-001")


@pytest.fixture
def service(db_session: Session):
    return BillingService(db_session)


@pytest.fixture
def new_period(service, sample_company, sample_work_order, budget):
    def _new_period(label="Marzo 2025"):
        return service.create_period(
            sample_company.id, sample_work_order.id,
            BillingPeriodCreate(period=label, cutoff_date=date(2025, 3, 31))
        )
    return _new_period


def _add(service, company, period, budget_line, quantity):
    return service.add_billing_line(
        company.id, period.id,
        BillingLineCreate(budget_line_id=budget_line.id, executed_quantity=Decimal(quantity))
    )


class TestPeriodTotals:

    def test_compute_period_totals(self):
        gross, amortization, retention, net = compute_period_totals([Decimal("2000")], 10, 5)
        assert (gross, amortization, retention, net) == (
            Decimal("2000.00"), Decimal("200.00"), Decimal("100.00"), Decimal("1700.00")
        )

    def test_net_adds_up_after_rounding(self):
        gross, amortization, retention, net = compute_period_totals(
            [Decimal("333.335"), Decimal("0.001")], Decimal("33.33"), Decimal("5")
        )
        assert gross == Decimal("333.34")
        assert net == gross - amortization - retention


class TestBillingLines:

    def test_cumulative_and_over_allocation(
        self, db_session: Session, service, new_period, sample_company, excavation
    ):
        first = new_period("Periodo 1")
        line = _add(service, sample_company, first, excavation, "40")

        assert Decimal(str(line.cumulative_quantity)) == Decimal("40")
        assert Decimal(str(line.amount)) == Decimal("2000")

        first = service.get_period(sample_company.id, first.id)
        assert Decimal(str(first.gross_amount)) == Decimal("2000.00")
        assert Decimal(str(first.amortization)) == Decimal("200.00")
        assert Decimal(str(first.retention)) == Decimal("100.00")
        assert Decimal(str(first.net_amount)) == Decimal("1700.00")

        second = new_period("Periodo 2")
        with pytest.raises(OverAllocationError) as exc_info:
            _add(service, sample_company, second, excavation, "70")

        assert Decimal(exc_info.value.details["cumulative_quantity"]) == Decimal("40")
        assert db_session.query(BillingLine).filter(BillingLine.billing_period_id == second.id).count() == 0
        second = service.get_period(sample_company.id, second.id)
        assert Decimal(str(second.gross_amount)) == Decimal("0")

    def test_second_period_accumulates(self, service, new_period, sample_company, excavation):
        _add(service, sample_company, new_period("Periodo 1"), excavation, "40")
        line = _add(service, sample_company, new_period("Periodo 2"), excavation, "60")

        assert Decimal(str(line.cumulative_quantity)) == Decimal("100")
        assert service.prior_cumulative(sample_company.id, excavation.id) == Decimal("100")

    def test_duplicate_line(self, service, new_period, sample_company, excavation):
        period = new_period()
        _add(service, sample_company, period, excavation, "10")

        with pytest.raises(DuplicateLineError):
            _add(service, sample_company, period, excavation, "5")

    def test_zero_quantity_rejected(self, service, new_period, sample_company, excavation):
        with pytest.raises(ValidationError):
            _add(service, sample_company, new_period(), excavation, "0")

    def test_quantity_beyond_four_decimals_rejected(self, db_session: Session, service, new_period, sample_company, excavation):
        period = new_period()
        with pytest.raises(ValidationError):
            _add(service, sample_company, period, excavation, "99.99999")

        assert db_session.query(BillingLine).count() == 0
        line = _add(service, sample_company, period, excavation, "99.9999")
        assert Decimal(str(line.amount)) == Decimal("4999.995")

    def test_cancelled_period_frees_quantity(self, service, new_period, sample_company, excavation):
        first = new_period("Periodo 1")
        _add(service, sample_company, first, excavation, "90")
        service.cancel(sample_company.id, first.id)

        line = _add(service, sample_company, new_period("Periodo 2"), excavation, "100")
        assert Decimal(str(line.cumulative_quantity)) == Decimal("100")

    def test_remove_line_recomputes(self, service, new_period, sample_company, budget, excavation):
        steel = next(line for line in budget.lines if line.key == "EST-001")
        period = new_period()
        _add(service, sample_company, period, excavation, "40")
        steel_line = _add(service, sample_company, period, steel, "100")

        period = service.get_period(sample_company.id, period.id)
        assert Decimal(str(period.gross_amount)) == Decimal("4500.00")

        period = service.remove_billing_line(sample_company.id, period.id, steel_line.id)
        assert Decimal(str(period.gross_amount)) == Decimal("2000.00")
        assert len(period.lines) == 1

    def test_line_from_old_budget_rejected(
        self, db_session: Session, service, new_period, sample_company, sample_work_order, excavation
    ):
        period = new_period()
        BudgetService(db_session).create_version(
            sample_company.id, sample_work_order.id, BudgetVersionCreate(name="v2", is_current=True)
        )

        with pytest.raises(ValidationError):
            _add(service, sample_company, period, excavation, "10")

    def test_create_period_without_current_budget(self, service, sample_company, sample_work_order):
        with pytest.raises(ValidationError):
            service.create_period(
                sample_company.id, sample_work_order.id,
                BillingPeriodCreate(period="Marzo 2025", cutoff_date=date(2025, 3, 31))
            )

    def test_period_numbers_are_consecutive(self, new_period):
        assert new_period().number == 1
        assert new_period().number == 2


class TestLifecycle:

    def test_full_lifecycle(self, service, new_period, sample_company, excavation):
        period = new_period()
        _add(service, sample_company, period, excavation, "40")

        period = service.submit(sample_company.id, period.id)
        assert period.status == BillingPeriodStatus.PENDING
        assert period.submitted_at is not None

        period = service.approve(sample_company.id, period.id)
        assert period.status == BillingPeriodStatus.APPROVED

        period = service.invoice(sample_company.id, period.id)
        assert period.status == BillingPeriodStatus.INVOICED
        assert period.invoiced_at is not None
        assert service.outstanding_balance(period) == Decimal("1700.00")

    def test_submit_empty_period(self, service, new_period, sample_company):
        with pytest.raises(ValidationError):
            service.submit(sample_company.id, new_period().id)

    def test_invalid_transitions(self, service, new_period, sample_company, excavation):
        period = new_period()
        with pytest.raises(InvalidTransitionError):
            service.approve(sample_company.id, period.id)

        _add(service, sample_company, period, excavation, "10")
        service.submit(sample_company.id, period.id)
        service.approve(sample_company.id, period.id)
        service.invoice(sample_company.id, period.id)

        with pytest.raises(InvalidTransitionError):
            service.cancel(sample_company.id, period.id)

    def test_cannot_edit_after_submit(self, service, new_period, sample_company, budget, excavation):
        steel = next(line for line in budget.lines if line.key == "EST-001")
        period = new_period()
        _add(service, sample_company, period, excavation, "10")
        service.submit(sample_company.id, period.id)

        with pytest.raises(InvalidTransitionError):
            _add(service, sample_company, period, steel, "10")

    def test_delete_rules(self, db_session: Session, service, new_period, sample_company, excavation):
        draft = new_period()
        service.delete_period(sample_company.id, draft.id)

        submitted = new_period()
        _add(service, sample_company, submitted, excavation, "10")
        service.submit(sample_company.id, submitted.id)
        with pytest.raises(InvalidTransitionError):
            service.delete_period(sample_company.id, submitted.id)

        service.cancel(sample_company.id, submitted.id)
        service.delete_period(sample_company.id, submitted.id)
        assert db_session.query(BillingPeriod).count() == 0
        assert db_session.query(BillingLine).count() == 0


class TestBillingAPI:

    def test_capture_flow(
        self, client, sample_user, sample_company, sample_work_order, excavation, auth_headers
    ):
        headers = auth_headers(sample_user, sample_company)
        response = client.post(
            f"/estimaciones/obra/{sample_work_order.id}",
            json={"period": "Marzo 2025", "cutoff_date": "2025-03-31"},
            headers=headers
        )
        assert response.status_code == 201
        period_id = response.json()["id"]

        response = client.post(
            f"/estimaciones/{period_id}/conceptos",
            json={"budget_line_id": str(excavation.id), "executed_quantity": "40"},
            headers=headers
        )
        assert response.status_code == 201

        response = client.post(
            f"/estimaciones/{period_id}/conceptos",
            json={"budget_line_id": str(excavation.id), "executed_quantity": "70"},
            headers=headers
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "duplicate_line"

        response = client.get(f"/estimaciones/{period_id}", headers=headers)
        detail = response.json()
        assert Decimal(str(detail["net_amount"])) == Decimal("1700.00")
        assert detail["lines"][0]["key"] == "CIM-001"

    def test_over_allocation_code(
        self, client, sample_user, sample_company, service, new_period, excavation, auth_headers
    ):
        _add(service, sample_company, new_period("Periodo 1"), excavation, "40")
        second = new_period("Periodo 2")

        response = client.post(
            f"/estimaciones/{second.id}/conceptos",
            json={"budget_line_id": str(excavation.id), "executed_quantity": "70"},
            headers=auth_headers(sample_user, sample_company)
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "over_allocation"
