"""
Servicios de negocio para Contabilidad
"""
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import func
from typing import Optional, List
from uuid import UUID
from datetime import date
import logging

from app.database.database import get_tenant_object
from app.common.exceptions import ERPError, ValidationError, NegativeAmountError, UnbalancedEntryError
from app.common.money import to_decimal, quantize_money, sum_money
from app.modules.company.models import Company
from app.modules.accounting.models import (
    LedgerAccount, LedgerAccountType, JournalEntry, JournalEntryLine, JournalEntryKind
)
from app.modules.accounting.schemas import LedgerAccountCreate, JournalEntryCreate, JournalEntryList

logger = logging.getLogger(__name__)

MIN_ENTRY_LINES = 2


class AccountingService:
    """Servicio de catálogo de cuentas y pólizas"""

    def __init__(self, db: Session):
        self.db = db

    def create_account(self, tenant_id: UUID, data: LedgerAccountCreate) -> LedgerAccount:
        try:
            code = data.code.strip()
            existing = self.db.query(LedgerAccount.id).filter(
                LedgerAccount.tenant_id == tenant_id,
                LedgerAccount.code == code
            ).first()
            if existing:
                raise ValidationError(f"Ya existe la cuenta contable {code}")

            account = LedgerAccount(
                tenant_id=tenant_id,
                code=code,
                name=data.name,
                account_type=LedgerAccountType(data.account_type.value),
            )
            self.db.add(account)
            self.db.commit()
            self.db.refresh(account)
            return account

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creando cuenta contable: {e}")
            raise

    def list_accounts(self, tenant_id: UUID) -> List[LedgerAccount]:
        return self.db.query(LedgerAccount).filter(
            LedgerAccount.tenant_id == tenant_id
        ).order_by(LedgerAccount.code).all()

    def create_entry(self, tenant_id: UUID, data: JournalEntryCreate, user_id: Optional[UUID] = None) -> JournalEntry:
        """
        Crear póliza.

        - Al menos dos movimientos
        - Cada movimiento es cargo o abono (uno mayor a cero, el otro cero)
        - Σ debe == Σ haber exactamente
        """
        try:
            if len(data.lines) < MIN_ENTRY_LINES:
                raise ValidationError(f"La póliza debe tener al menos {MIN_ENTRY_LINES} movimientos")

            debits, credits = [], []
            for position, line in enumerate(data.lines, start=1):
                debit = to_decimal(line.debit)
                credit = to_decimal(line.credit)
                if debit < 0 or credit < 0:
                    raise NegativeAmountError(
                        "Cargos y abonos no pueden ser negativos", {"position": position}
                    )
                if (debit > 0) == (credit > 0):
                    raise ValidationError(
                        "Cada movimiento debe tener un cargo o un abono, no ambos ni ninguno",
                        {"position": position}
                    )
                if debit != quantize_money(debit) or credit != quantize_money(credit):
                    raise ValidationError("Los importes no pueden tener más de dos decimales", {"position": position})
                debits.append(debit)
                credits.append(credit)

            total_debit = sum_money(debits)
            total_credit = sum_money(credits)
            if total_debit != total_credit:
                logger.warning(f"Póliza descuadrada: debe {total_debit}, haber {total_credit}")
                raise UnbalancedEntryError(
                    f"La póliza no cuadra. Debe: {total_debit}, Haber: {total_credit}",
                    {
                        "total_debit": str(total_debit),
                        "total_credit": str(total_credit),
                        "difference": str(total_debit - total_credit),
                    }
                )

            for line in data.lines:
                account = get_tenant_object(
                    self.db, LedgerAccount, line.ledger_account_id, tenant_id, "Cuenta contable"
                )
                if not account.is_active:
                    raise ValidationError(f"La cuenta {account.code} está inactiva")

            kind = JournalEntryKind(data.kind.value)
            self.db.query(Company).filter(Company.id == tenant_id).with_for_update().first()
            last_folio = self.db.query(func.max(JournalEntry.folio)).filter(
                JournalEntry.tenant_id == tenant_id,
                JournalEntry.kind == kind
            ).scalar() or 0

            entry = JournalEntry(
                tenant_id=tenant_id,
                kind=kind,
                folio=last_folio + 1,
                entry_date=data.entry_date,
                concept=data.concept,
                total_debit=total_debit,
                total_credit=total_credit,
                created_by=user_id,
            )
            for position, line in enumerate(data.lines, start=1):
                entry.lines.append(JournalEntryLine(
                    tenant_id=tenant_id,
                    ledger_account_id=line.ledger_account_id,
                    position=position,
                    description=line.description,
                    debit=to_decimal(line.debit),
                    credit=to_decimal(line.credit),
                ))

            self.db.add(entry)
            self.db.commit()
            self.db.refresh(entry)

            logger.info(f"Póliza {kind.value} #{entry.folio} registrada por {total_debit}")
            return entry

        except ERPError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error creando póliza: {e}")
            raise

    def get_entry(self, tenant_id: UUID, entry_id: UUID) -> JournalEntry:
        return get_tenant_object(self.db, JournalEntry, entry_id, tenant_id, "Póliza")

    def list_entries(
        self,
        tenant_id: UUID,
        kind: Optional[JournalEntryKind] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        limit: int = 20,
        offset: int = 0
    ) -> JournalEntryList:
        query = self.db.query(JournalEntry).options(
            selectinload(JournalEntry.lines)
        ).filter(JournalEntry.tenant_id == tenant_id)
        if kind:
            query = query.filter(JournalEntry.kind == kind)
        if date_from:
            query = query.filter(JournalEntry.entry_date >= date_from)
        if date_to:
            query = query.filter(JournalEntry.entry_date <= date_to)

        total = query.count()
        entries = query.order_by(
            JournalEntry.entry_date.desc(), JournalEntry.folio.desc()
        ).offset(offset).limit(limit).all()
        return JournalEntryList(items=entries, total=total, limit=limit, offset=offset)
