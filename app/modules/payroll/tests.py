"""
Tests para el módulo de Nómina

- Detalle: días × salario diario + extras − deducciones
- Total del periodo como suma exacta de los detalles
- Ciclo DRAFT → CLOSED → PAID y captura sólo en borrador
- Empleados y periodos aislados por empresa
"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session

from app.common.exceptions import ValidationError, InvalidTransitionError, ForbiddenError
from app.modules.auth.models import UserRole
from app.modules.payroll.models import PayrollPeriodStatus
from app.modules.payroll.schemas import (
    EmployeeCreate, PayrollPeriodCreate, PayrollLineInput, PayrollLinesUpdate
)
from app.modules.payroll.service import PayrollService, compute_payroll_line


@pytest.fixture
def service(db_session: Session):
    return PayrollService(db_session)


@pytest.fixture
def bricklayer(service, sample_company):
    return service.create_employee(
        sample_company.id, EmployeeCreate(name="Juan Pérez", position="Albañil", daily_wage=Decimal("450.00"))
    )


@pytest.fixture
def helper(service, sample_company):
    return service.create_employee(
        sample_company.id, EmployeeCreate(name="Luis Gómez", position="Peón", daily_wage=Decimal("380.00"))
    )


@pytest.fixture
def week_period(service, sample_company, sample_work_order):
    return service.create_period(sample_company.id, PayrollPeriodCreate(
        period_type="SEMANAL",
        year=2025,
        week=10,
        start_date=date(2025, 3, 3),
        end_date=date(2025, 3, 9),
        work_order_id=sample_work_order.id,
    ))


def _lines(*items):
    return PayrollLinesUpdate(lines=[PayrollLineInput(**item) for item in items])


class TestPayrollLineAmounts:

    def test_days_times_wage_plus_extras_minus_deductions(self):
        base, total = compute_payroll_line(Decimal("6"), Decimal("450.00"), Decimal("300"), Decimal("150.50"))
        assert base == Decimal("2700.00")
        assert total == Decimal("2849.50")

    def test_half_days(self):
        base, total = compute_payroll_line(Decimal("5.5"), Decimal("380.00"))
        assert base == Decimal("2090.00")
        assert total == Decimal("2090.00")


class TestPayrollService:

    def test_period_requires_its_number(self):
        with pytest.raises(Exception):
            PayrollPeriodCreate(
                period_type="QUINCENAL", year=2025, start_date=date(2025, 3, 1), end_date=date(2025, 3, 15)
            )

    def test_save_lines_sums_total(self, service, sample_company, week_period, bricklayer, helper):
        period = service.save_lines(sample_company.id, week_period.id, _lines(
            {"employee_id": bricklayer.id, "days_worked": Decimal("6"), "extras": Decimal("300"), "deductions": Decimal("150.50")},
            {"employee_id": helper.id, "days_worked": Decimal("5.5")},
        ))

        assert period.total == Decimal("4939.50")
        detail = service.get_period_detail(sample_company.id, week_period.id)
        assert [line.employee_name for line in detail.lines] == ["Juan Pérez", "Luis Gómez"]
        assert detail.lines[0].total_pay == Decimal("2849.50")

    def test_recapture_updates_existing_line(self, service, sample_company, week_period, bricklayer, helper):
        service.save_lines(sample_company.id, week_period.id, _lines(
            {"employee_id": bricklayer.id, "days_worked": Decimal("6")},
            {"employee_id": helper.id, "days_worked": Decimal("6")},
        ))
        period = service.save_lines(sample_company.id, week_period.id, _lines(
            {"employee_id": bricklayer.id, "days_worked": Decimal("4"), "daily_wage": Decimal("500.00")},
        ))

        # 4 × 500 + 6 × 380
        assert period.total == Decimal("4280.00")
        assert len(service.get_period_detail(sample_company.id, week_period.id).lines) == 2

    def test_remove_line_recomputes_total(self, service, sample_company, week_period, bricklayer, helper):
        service.save_lines(sample_company.id, week_period.id, _lines(
            {"employee_id": bricklayer.id, "days_worked": Decimal("6")},
            {"employee_id": helper.id, "days_worked": Decimal("6")},
        ))
        detail = service.get_period_detail(sample_company.id, week_period.id)
        line = next(l for l in detail.lines if l.employee_id == helper.id)

        period = service.remove_line(sample_company.id, week_period.id, line.id)
        assert period.total == Decimal("2700.00")

    def test_days_cannot_exceed_period(self, service, sample_company, week_period, bricklayer):
        with pytest.raises(ValidationError):
            service.save_lines(sample_company.id, week_period.id, _lines(
                {"employee_id": bricklayer.id, "days_worked": Decimal("8")}
            ))

    def test_deductions_cannot_exceed_earnings(self, service, sample_company, week_period, bricklayer):
        with pytest.raises(ValidationError):
            service.save_lines(sample_company.id, week_period.id, _lines(
                {"employee_id": bricklayer.id, "days_worked": Decimal("1"), "deductions": Decimal("450.01")}
            ))

    def test_invalid_line_saves_nothing(self, service, sample_company, week_period, bricklayer, helper):
        with pytest.raises(ValidationError):
            service.save_lines(sample_company.id, week_period.id, _lines(
                {"employee_id": bricklayer.id, "days_worked": Decimal("6")},
                {"employee_id": helper.id, "days_worked": Decimal("2.125")},
            ))

        detail = service.get_period_detail(sample_company.id, week_period.id)
        assert detail.lines == []
        assert detail.total == Decimal("0")

    def test_duplicate_employee_in_capture(self, service, sample_company, week_period, bricklayer):
        with pytest.raises(ValidationError):
            service.save_lines(sample_company.id, week_period.id, _lines(
                {"employee_id": bricklayer.id, "days_worked": Decimal("3")},
                {"employee_id": bricklayer.id, "days_worked": Decimal("2")},
            ))

    def test_employee_from_other_company(self, service, sample_company, other_company, week_period):
        outsider = service.create_employee(
            other_company.id, EmployeeCreate(name="Pedro Ruiz", daily_wage=Decimal("400.00"))
        )
        with pytest.raises(ForbiddenError):
            service.save_lines(sample_company.id, week_period.id, _lines(
                {"employee_id": outsider.id, "days_worked": Decimal("5")}
            ))

    def test_lifecycle(self, service, sample_company, week_period, bricklayer):
        with pytest.raises(ValidationError):
            service.close(sample_company.id, week_period.id)

        service.save_lines(sample_company.id, week_period.id, _lines(
            {"employee_id": bricklayer.id, "days_worked": Decimal("6")}
        ))
        with pytest.raises(InvalidTransitionError):
            service.mark_paid(sample_company.id, week_period.id)

        closed = service.close(sample_company.id, week_period.id)
        assert closed.status == PayrollPeriodStatus.CLOSED
        assert closed.closed_at is not None

        with pytest.raises(InvalidTransitionError):
            service.save_lines(sample_company.id, week_period.id, _lines(
                {"employee_id": bricklayer.id, "days_worked": Decimal("5")}
            ))

        paid = service.mark_paid(sample_company.id, week_period.id)
        assert paid.status == PayrollPeriodStatus.PAID
        assert paid.total == Decimal("2700.00")

    def test_list_periods_by_company(self, service, sample_company, other_company, week_period):
        assert service.list_periods(sample_company.id, year=2025).total == 1
        assert service.list_periods(other_company.id).total == 0


class TestPayrollAPI:

    def test_capture_and_close(self, client, sample_user, sample_company, auth_headers, bricklayer):
        headers = auth_headers(sample_user, sample_company)
        response = client.post("/nomina/periodos", json={
            "period_type": "SEMANAL", "year": 2025, "week": 11,
            "start_date": "2025-03-10", "end_date": "2025-03-16",
        }, headers=headers)
        assert response.status_code == 201
        period_id = response.json()["id"]

        response = client.put(f"/nomina/periodos/{period_id}/detalles", json={
            "lines": [{"employee_id": str(bricklayer.id), "days_worked": "5.5", "extras": "120.00"}]
        }, headers=headers)
        assert response.status_code == 200
        body = response.json()
        assert Decimal(str(body["total"])) == Decimal("2595.00")
        assert body["lines"][0]["employee_name"] == "Juan Pérez"

        response = client.post(f"/nomina/periodos/{period_id}/cerrar", headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "CLOSED"

        response = client.post(f"/nomina/periodos/{period_id}/cerrar", headers=headers)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "invalid_transition"

    def test_buyer_cannot_see_payroll(self, client, make_user, sample_company, auth_headers):
        buyer = make_user(sample_company, UserRole.COMPRAS.value)
        response = client.get("/nomina/periodos", headers=auth_headers(buyer, sample_company))

        assert response.status_code == 403

    def test_other_company_period(self, client, make_user, other_company, week_period, auth_headers):
        outsider = make_user(other_company, UserRole.CONTADOR.value)
        response = client.get(f"/nomina/periodos/{week_period.id}", headers=auth_headers(outsider, other_company))

        assert response.status_code == 403
