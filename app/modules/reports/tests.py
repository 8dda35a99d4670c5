"""
Tests para el módulo de Reportes

Dashboard y cuentas por cobrar / por pagar, incluyendo exportación CSV.
"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session

from app.modules.billing.models import BillingPeriod, BillingPeriodStatus
from app.modules.budgets.models import BudgetVersion
from app.modules.inventory.models import Product
from app.modules.purchases.models import Supplier, PurchaseOrder, PurchaseOrderStatus
from app.modules.reports.services import DashboardReportService, FinancialReportService
from app.modules.treasury.models import BankAccount


@pytest.fixture
def company_data(db_session: Session, sample_company, sample_work_order):
    """Estimación facturada con cobro parcial, orden enviada y cuenta con saldo"""
    budget = BudgetVersion(
        tenant_id=sample_company.id, work_order_id=sample_work_order.id, version=1, name="Base", is_current=True
    )
    supplier = Supplier(tenant_id=sample_company.id, name="Block y Tabique SA")
    db_session.add_all([budget, supplier])
    db_session.flush()

    db_session.add_all([
        BillingPeriod(
            tenant_id=sample_company.id, work_order_id=sample_work_order.id, budget_version_id=budget.id,
            number=1, period="Marzo 2025", cutoff_date=date(2025, 3, 31),
            status=BillingPeriodStatus.INVOICED,
            gross_amount=Decimal("2000.00"), amortization=Decimal("200.00"), retention=Decimal("100.00"),
            net_amount=Decimal("1700.00"), paid=Decimal("700.00"),
        ),
        BillingPeriod(
            tenant_id=sample_company.id, work_order_id=sample_work_order.id, budget_version_id=budget.id,
            number=2, period="Abril 2025", cutoff_date=date(2025, 4, 30),
            status=BillingPeriodStatus.APPROVED,
            gross_amount=Decimal("1000.00"), amortization=Decimal("100.00"), retention=Decimal("50.00"),
            net_amount=Decimal("850.00"), paid=Decimal("0"),
        ),
        PurchaseOrder(
            tenant_id=sample_company.id, folio=1, supplier_id=supplier.id, issue_date=date(2025, 3, 10),
            status=PurchaseOrderStatus.SENT, subtotal=Decimal("3000.00"), tax=Decimal("480.00"),
            total=Decimal("3480.00"), paid=Decimal("480.00"),
        ),
        PurchaseOrder(
            tenant_id=sample_company.id, folio=2, supplier_id=supplier.id, issue_date=date(2025, 3, 11),
            status=PurchaseOrderStatus.DRAFT, subtotal=Decimal("100.00"), tax=Decimal("16.00"),
            total=Decimal("116.00"), paid=Decimal("0"),
        ),
        BankAccount(tenant_id=sample_company.id, name="BBVA", currency="MXN", balance=Decimal("25000.50")),
        Product(tenant_id=sample_company.id, sku="CEM", name="Cemento", unit="BULTO",
                stock=Decimal("2"), min_stock=Decimal("10")),
    ])
    db_session.commit()
    return supplier


class TestReportServices:

    def test_dashboard_summary(self, db_session: Session, sample_company, company_data):
        summary = DashboardReportService(db_session, sample_company.id).dashboard_summary()

        assert summary.bank_balance == Decimal("25000.50")
        assert summary.receivables == Decimal("1000.00")
        assert summary.invoiced_periods == 1
        assert summary.to_invoice == Decimal("850.00")
        assert summary.approved_periods == 1
        assert summary.payables == Decimal("3000.00")
        assert summary.purchase_orders_by_status["SENT"] == 1
        assert summary.purchase_orders_by_status["DRAFT"] == 1
        assert summary.active_work_orders == 1
        assert summary.low_stock_products == 1

    def test_dashboard_is_tenant_scoped(self, db_session: Session, other_company, company_data):
        summary = DashboardReportService(db_session, other_company.id).dashboard_summary()

        assert summary.bank_balance == Decimal("0")
        assert summary.total_work_orders == 0

    def test_accounts_receivable(self, db_session: Session, sample_company, company_data):
        report = FinancialReportService(db_session, sample_company.id).get_accounts_receivable()

        assert len(report.items) == 1
        assert report.items[0].work_order_code == "OBR-2025-001"
        assert report.total_outstanding == Decimal("1000.00")

    def test_accounts_payable(self, db_session: Session, sample_company, company_data):
        report = FinancialReportService(db_session, sample_company.id).get_accounts_payable(company_data.id)

        assert [item.folio for item in report.items] == [1]
        assert report.total_outstanding == Decimal("3000.00")


class TestReportsAPI:

    def test_dashboard(self, client, sample_user, sample_company, company_data, auth_headers):
        response = client.get("/api/v1/reportes/dashboard", headers=auth_headers(sample_user, sample_company))

        assert response.status_code == 200
        assert Decimal(str(response.json()["payables"])) == Decimal("3000.00")

    def test_receivable_csv(self, client, sample_user, sample_company, company_data, auth_headers):
        response = client.get(
            "/api/v1/reportes/cuentas-por-cobrar", params={"export": "csv"},
            headers=auth_headers(sample_user, sample_company)
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().split("\n")
        assert lines[0].startswith("Obra,Nombre de la obra,Cliente")
        assert "OBR-2025-001" in lines[1]
        assert len(lines) == 2

    def test_payable_json(self, client, sample_user, sample_company, company_data, auth_headers):
        response = client.get("/api/v1/reportes/cuentas-por-pagar", headers=auth_headers(sample_user, sample_company))

        assert response.status_code == 200
        body = response.json()
        assert body["items"][0]["supplier_name"] == "Block y Tabique SA"
        assert Decimal(str(body["total_outstanding"])) == Decimal("3000.00")

    def test_financial_reports_require_accountant(self, client, make_user, sample_company, auth_headers):
        user = make_user(sample_company, "OBRAS")
        response = client.get("/api/v1/reportes/cuentas-por-pagar", headers=auth_headers(user, sample_company))

        assert response.status_code == 403
