"""
Tests para el módulo de Tesorería

- Saldos de cuentas con ingresos y egresos
- Pagos aplicados a órdenes de compra y cobros a estimaciones
- Sobrepagos, fondos insuficientes y sobregiro configurable
"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session

from app.core.config import settings
from app.common.exceptions import (
    ValidationError, NegativeAmountError, OverpaymentError, InsufficientFundsError,
    InvalidTransitionError, ForbiddenError
)
from app.modules.billing.models import BillingPeriod, BillingPeriodStatus
from app.modules.budgets.models import BudgetVersion
from app.modules.purchases.models import Supplier, PurchaseOrder, PurchaseOrderStatus
from app.modules.treasury.models import BankAccount, CashTransaction
from app.modules.treasury.schemas import BankAccountCreate, CashTransactionCreate, TransactionKind
from app.modules.treasury.service import TreasuryService


@pytest.fixture
def service(db_session: Session):
    return TreasuryService(db_session)


@pytest.fixture
def account(service, sample_company):
    return service.create_account(
        sample_company.id, BankAccountCreate(name="BBVA Operación", opening_balance=Decimal("10000.00"))
    )


@pytest.fixture
def make_order(db_session: Session, sample_company):
    supplier = Supplier(tenant_id=sample_company.id, name="Concretos Premezclados")
    db_session.add(supplier)
    db_session.flush()

    def _make_order(total="3000.00", status=PurchaseOrderStatus.SENT, folio=1):
        order = PurchaseOrder(
            tenant_id=sample_company.id,
            folio=folio,
            supplier_id=supplier.id,
            issue_date=date(2025, 3, 1),
            status=status,
            subtotal=Decimal(total),
            tax=Decimal("0"),
            total=Decimal(total),
            paid=Decimal("0"),
        )
        db_session.add(order)
        db_session.commit()
        return order
    return _make_order


@pytest.fixture
def make_period(db_session: Session, sample_company, sample_work_order):
    budget = BudgetVersion(
        tenant_id=sample_company.id, work_order_id=sample_work_order.id, version=1,
        name="Base", is_current=True
    )
    db_session.add(budget)
    db_session.flush()

    def _make_period(net="1700.00", status=BillingPeriodStatus.INVOICED, number=1):
        period = BillingPeriod(
            tenant_id=sample_company.id,
            work_order_id=sample_work_order.id,
            budget_version_id=budget.id,
            number=number,
            period="Marzo 2025",
            cutoff_date=date(2025, 3, 31),
            status=status,
            gross_amount=Decimal(net),
            amortization=Decimal("0"),
            retention=Decimal("0"),
            net_amount=Decimal(net),
            paid=Decimal("0"),
        )
        db_session.add(period)
        db_session.commit()
        return period
    return _make_period


def _tx(kind, amount, **kwargs):
    return CashTransactionCreate(kind=kind, amount=Decimal(amount), **kwargs)


class TestAccounts:

    def test_opening_balance(self, account):
        assert Decimal(str(account.balance)) == Decimal("10000.00")
        assert account.currency == "MXN"

    def test_negative_opening_balance(self, service, sample_company):
        with pytest.raises(NegativeAmountError):
            service.create_account(sample_company.id, BankAccountCreate(name="X", opening_balance=Decimal("-1")))

    def test_other_company_account(self, service, other_company, account):
        with pytest.raises(ForbiddenError):
            service.apply_transaction(other_company.id, account.id, _tx(TransactionKind.INCOME, "10"))


class TestTransactions:

    def test_income_and_expense(self, service, sample_company, account):
        income = service.apply_transaction(sample_company.id, account.id, _tx(TransactionKind.INCOME, "500.50"))
        assert Decimal(str(income.balance_after)) == Decimal("10500.50")

        expense = service.apply_transaction(sample_company.id, account.id, _tx(TransactionKind.EXPENSE, "0.50"))
        assert Decimal(str(expense.balance_after)) == Decimal("10500.00")

        result = service.list_transactions(sample_company.id, account_id=account.id)
        assert result.total == 2

    @pytest.mark.parametrize("amount", ["0", "-100"])
    def test_non_positive_amount(self, db_session: Session, service, sample_company, account, amount):
        with pytest.raises(NegativeAmountError):
            service.apply_transaction(sample_company.id, account.id, _tx(TransactionKind.INCOME, amount))
        assert db_session.query(CashTransaction).count() == 0

    def test_more_than_two_decimals(self, service, sample_company, account):
        with pytest.raises(ValidationError):
            service.apply_transaction(sample_company.id, account.id, _tx(TransactionKind.INCOME, "1.005"))

    def test_insufficient_funds(self, db_session: Session, service, sample_company, account):
        with pytest.raises(InsufficientFundsError):
            service.apply_transaction(sample_company.id, account.id, _tx(TransactionKind.EXPENSE, "10000.01"))
        assert Decimal(str(db_session.get(BankAccount, account.id).balance)) == Decimal("10000.00")

    def test_overdraft_allowed(self, monkeypatch, service, sample_company, account):
        monkeypatch.setattr(settings, "TREASURY_ALLOW_OVERDRAFT", True)
        tx = service.apply_transaction(sample_company.id, account.id, _tx(TransactionKind.EXPENSE, "12000.00"))
        assert Decimal(str(tx.balance_after)) == Decimal("-2000.00")


class TestPurchaseOrderPayments:

    def test_payment_settles_order(self, db_session: Session, service, sample_company, account, make_order):
        order = make_order()
        service.apply_transaction(
            sample_company.id, account.id,
            _tx(TransactionKind.EXPENSE, "3000.00", purchase_order_id=order.id)
        )

        assert Decimal(str(db_session.get(BankAccount, account.id).balance)) == Decimal("7000.00")
        assert Decimal(str(db_session.get(PurchaseOrder, order.id).paid)) == Decimal("3000.00")

        balance = service.outstanding_balance(sample_company.id, purchase_order_id=order.id)
        assert balance.outstanding == Decimal("0")

    def test_overpayment_changes_nothing(self, db_session: Session, service, sample_company, account, make_order):
        order = make_order()
        service.apply_transaction(
            sample_company.id, account.id,
            _tx(TransactionKind.EXPENSE, "2000.00", purchase_order_id=order.id)
        )

        with pytest.raises(OverpaymentError):
            service.apply_transaction(
                sample_company.id, account.id,
                _tx(TransactionKind.EXPENSE, "1000.01", purchase_order_id=order.id)
            )

        assert Decimal(str(db_session.get(BankAccount, account.id).balance)) == Decimal("8000.00")
        assert Decimal(str(db_session.get(PurchaseOrder, order.id).paid)) == Decimal("2000.00")
        assert db_session.query(CashTransaction).count() == 1

    def test_income_against_order_rejected(self, service, sample_company, account, make_order):
        order = make_order()
        with pytest.raises(ValidationError):
            service.apply_transaction(
                sample_company.id, account.id,
                _tx(TransactionKind.INCOME, "10.00", purchase_order_id=order.id)
            )

    def test_draft_order_cannot_be_paid(self, service, sample_company, account, make_order):
        order = make_order(status=PurchaseOrderStatus.DRAFT)
        with pytest.raises(InvalidTransitionError):
            service.apply_transaction(
                sample_company.id, account.id,
                _tx(TransactionKind.EXPENSE, "10.00", purchase_order_id=order.id)
            )

    def test_two_targets_rejected(self, service, sample_company, account, make_order, make_period):
        order = make_order()
        period = make_period()
        with pytest.raises(ValidationError):
            service.apply_transaction(
                sample_company.id, account.id,
                _tx(TransactionKind.EXPENSE, "10.00", purchase_order_id=order.id, billing_period_id=period.id)
            )


class TestBillingCollections:

    def test_collect_invoiced_period(self, db_session: Session, service, sample_company, account, make_period):
        period = make_period()
        tx = service.apply_transaction(
            sample_company.id, account.id,
            _tx(TransactionKind.INCOME, "1700.00", billing_period_id=period.id)
        )

        assert Decimal(str(tx.balance_after)) == Decimal("11700.00")
        balance = service.outstanding_balance(sample_company.id, billing_period_id=period.id)
        assert balance.document_type == "billing_period"
        assert balance.outstanding == Decimal("0")

    def test_approved_period_cannot_be_collected(self, service, sample_company, account, make_period):
        period = make_period(status=BillingPeriodStatus.APPROVED)
        with pytest.raises(InvalidTransitionError):
            service.apply_transaction(
                sample_company.id, account.id,
                _tx(TransactionKind.INCOME, "100.00", billing_period_id=period.id)
            )

    def test_outstanding_requires_one_document(self, service, sample_company):
        with pytest.raises(ValidationError):
            service.outstanding_balance(sample_company.id)


class TestTreasuryAPI:

    def test_transaction_flow(self, client, sample_user, sample_company, make_order, auth_headers):
        headers = auth_headers(sample_user, sample_company)
        order = make_order()

        response = client.post("/tesoreria/cuentas", json={
            "name": "Banorte Obra", "opening_balance": "5000.00"
        }, headers=headers)
        assert response.status_code == 201
        account_id = response.json()["id"]

        response = client.post(f"/tesoreria/cuentas/{account_id}/transacciones", json={
            "kind": "EXPENSE", "amount": "3500.00", "purchase_order_id": str(order.id)
        }, headers=headers)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "overpayment"

        response = client.post(f"/tesoreria/cuentas/{account_id}/transacciones", json={
            "kind": "EXPENSE", "amount": "3000.00", "purchase_order_id": str(order.id)
        }, headers=headers)
        assert response.status_code == 201
        assert Decimal(str(response.json()["balance_after"])) == Decimal("2000.00")

        response = client.get(
            "/tesoreria/saldo-pendiente", params={"purchase_order_id": str(order.id)}, headers=headers
        )
        assert response.status_code == 200
        assert Decimal(str(response.json()["outstanding"])) == Decimal("0")

    def test_negative_amount_code(self, client, sample_user, sample_company, auth_headers):
        headers = auth_headers(sample_user, sample_company)
        account_id = client.post("/tesoreria/cuentas", json={"name": "Caja chica"}, headers=headers).json()["id"]

        response = client.post(f"/tesoreria/cuentas/{account_id}/transacciones", json={
            "kind": "INCOME", "amount": "-5"
        }, headers=headers)
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "negative_amount"
