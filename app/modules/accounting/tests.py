"""
Tests para el módulo de Contabilidad (pólizas)
"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session

from app.common.exceptions import (
    ValidationError, NegativeAmountError, UnbalancedEntryError, ForbiddenError
)
from app.modules.accounting.models import JournalEntry
from app.modules.accounting.schemas import (
    LedgerAccountCreate, LedgerAccountType, JournalEntryCreate, JournalEntryLineCreate, JournalEntryKind
)
from app.modules.accounting.service import AccountingService


@pytest.fixture
def service(db_session: Session):
    return AccountingService(db_session)


@pytest.fixture
def bank(service, sample_company):
    return service.create_account(
        sample_company.id, LedgerAccountCreate(code="102-01", name="Bancos", account_type=LedgerAccountType.ACTIVO)
    )


@pytest.fixture
def revenue(service, sample_company):
    return service.create_account(
        sample_company.id, LedgerAccountCreate(code="401-01", name="Ingresos por obra", account_type=LedgerAccountType.INGRESOS)
    )


def _entry(lines, kind=JournalEntryKind.INGRESO):
    return JournalEntryCreate(kind=kind, entry_date=date(2025, 3, 31), concept="Cobro estimación 1", lines=lines)


def _line(account, debit="0", credit="0"):
    return JournalEntryLineCreate(ledger_account_id=account.id, debit=Decimal(debit), credit=Decimal(credit))


class TestJournalEntries:

    def test_balanced_entry(self, service, sample_company, bank, revenue):
        entry = service.create_entry(sample_company.id, _entry([
            _line(bank, debit="1700.00"),
            _line(revenue, credit="1700.00"),
        ]))

        assert entry.folio == 1
        assert Decimal(str(entry.total_debit)) == Decimal("1700.00")
        assert Decimal(str(entry.total_credit)) == Decimal("1700.00")
        assert len(entry.lines) == 2

    def test_folio_per_kind(self, service, sample_company, bank, revenue):
        lines = [_line(bank, debit="10.00"), _line(revenue, credit="10.00")]
        first = service.create_entry(sample_company.id, _entry(lines))
        second = service.create_entry(sample_company.id, _entry(lines))
        journal = service.create_entry(sample_company.id, _entry(lines, kind=JournalEntryKind.DIARIO))

        assert (first.folio, second.folio, journal.folio) == (1, 2, 1)

    def test_unbalanced_entry(self, db_session: Session, service, sample_company, bank, revenue):
        with pytest.raises(UnbalancedEntryError) as exc_info:
            service.create_entry(sample_company.id, _entry([
                _line(bank, debit="1700.00"),
                _line(revenue, credit="1699.99"),
            ]))

        assert Decimal(exc_info.value.details["difference"]) == Decimal("0.01")
        assert db_session.query(JournalEntry).count() == 0

    def test_single_line_rejected(self, service, sample_company, bank):
        with pytest.raises(ValidationError):
            service.create_entry(sample_company.id, _entry([_line(bank, debit="0.00")]))

    def test_line_with_debit_and_credit(self, service, sample_company, bank, revenue):
        with pytest.raises(ValidationError):
            service.create_entry(sample_company.id, _entry([
                _line(bank, debit="5.00", credit="5.00"),
                _line(revenue, credit="0.00", debit="0.00"),
            ]))

    def test_negative_amount(self, service, sample_company, bank, revenue):
        with pytest.raises(NegativeAmountError):
            service.create_entry(sample_company.id, _entry([
                _line(bank, debit="-5.00"),
                _line(revenue, credit="-5.00"),
            ]))

    def test_account_from_other_company(self, service, sample_company, other_company, bank):
        foreign = service.create_account(
            other_company.id, LedgerAccountCreate(code="401-01", name="Ajena", account_type=LedgerAccountType.INGRESOS)
        )
        with pytest.raises(ForbiddenError):
            service.create_entry(sample_company.id, _entry([
                _line(bank, debit="10.00"),
                _line(foreign, credit="10.00"),
            ]))


class TestAccountingAPI:

    def test_create_and_get_entry(self, client, sample_user, sample_company, bank, revenue, auth_headers):
        headers = auth_headers(sample_user, sample_company)
        response = client.post("/contabilidad/polizas", json={
            "kind": "DIARIO",
            "entry_date": "2025-03-31",
            "concept": "Provisión de retenciones",
            "lines": [
                {"ledger_account_id": str(bank.id), "debit": "100.00"},
                {"ledger_account_id": str(revenue.id), "credit": "100.00"},
            ],
        }, headers=headers)
        assert response.status_code == 201
        entry_id = response.json()["id"]

        response = client.get(f"/contabilidad/polizas/{entry_id}", headers=headers)
        assert response.status_code == 200
        assert len(response.json()["lines"]) == 2

    def test_unbalanced_returns_conflict(self, client, sample_user, sample_company, bank, revenue, auth_headers):
        response = client.post("/contabilidad/polizas", json={
            "kind": "DIARIO",
            "entry_date": "2025-03-31",
            "concept": "Descuadrada",
            "lines": [
                {"ledger_account_id": str(bank.id), "debit": "100.00"},
                {"ledger_account_id": str(revenue.id), "credit": "90.00"},
            ],
        }, headers=auth_headers(sample_user, sample_company))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "unbalanced_entry"
