"""
Seed script: Populate a demo construction company with realistic data.

What it creates:
- Company (tenant) + admin user linked to the identity provider subject.
- Work orders (obras) with a current budget each.
- Billing periods (estimaciones) at different lifecycle stages.
- Suppliers, products and purchase orders, some of them received.
- A bank account with payments applied to orders and invoiced periods.
- A basic chart of accounts.

Run inside the API container to use 'postgres' host and project PYTHONPATH:
    docker compose exec api python scripts/seed_construction_data.py \
        --company-name "Constructora Demo" \
        --email admin@constructorademo.mx \
        --auth-id "idp|demo-admin" \
        --work-orders 3

Note: This is intended for development environments only.
"""

# Add project root (/code) to sys.path so `app.*` imports work even if CWD changes
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import argparse
import random
from datetime import date, timedelta
from decimal import Decimal

from app.common.exceptions import ERPError
from app.database.database import SessionLocal
from app.modules.auth.models import User, UserCompany, UserRole
from app.modules.company.models import Company
from app.modules.work_orders.models import WorkOrder, WorkOrderStatus
from app.modules.budgets.schemas import BudgetVersionCreate, BudgetLineCreate
from app.modules.budgets.service import BudgetService
from app.modules.billing.schemas import BillingPeriodCreate, BillingLineCreate
from app.modules.billing.service import BillingService
from app.modules.inventory.models import Product
from app.modules.inventory.schemas import ProductCreate
from app.modules.inventory.service import InventoryService
from app.modules.purchases.models import Supplier
from app.modules.purchases.schemas import (
    SupplierCreate, PurchaseOrderCreate, PurchaseOrderLineCreate, ReceiveRequest, ReceiveLine
)
from app.modules.purchases.service import SupplierService, PurchaseOrderService
from app.modules.treasury.models import BankAccount
from app.modules.treasury.schemas import BankAccountCreate, CashTransactionCreate, TransactionKind
from app.modules.treasury.service import TreasuryService
from app.modules.accounting.models import LedgerAccount
from app.modules.accounting.schemas import LedgerAccountCreate, LedgerAccountType
from app.modules.accounting.service import AccountingService


CONCEPTS = [
    ("PRE-001", "Limpieza y trazo del terreno", "m2", 1200, "18.50"),
    ("CIM-001", "Excavación a cielo abierto", "m3", 450, "95.00"),
    ("CIM-002", "Plantilla de concreto f'c=100", "m2", 380, "145.00"),
    ("EST-001", "Acero de refuerzo fy=4200", "kg", 18000, "28.40"),
    ("EST-002", "Concreto premezclado f'c=250", "m3", 320, "2350.00"),
    ("ALB-001", "Muro de block 15x20x40", "m2", 900, "385.00"),
    ("ACA-001", "Aplanado de mortero", "m2", 1800, "165.00"),
]

MATERIALS = [
    ("CEM-GRIS", "Cemento gris 50 kg", "BULTO", "245.00"),
    ("VAR-38", "Varilla corrugada 3/8", "PZA", "128.50"),
    ("BLK-15", "Block 15x20x40", "PZA", "14.20"),
    ("ARE-RIO", "Arena de río", "M3", "420.00"),
    ("GRA-34", "Grava 3/4", "M3", "460.00"),
]

SUPPLIERS = [
    ("Aceros del Bajío SA de CV", "ABA010101AA1"),
    ("Concretos y Agregados del Centro", "CAC020202BB2"),
    ("Materiales La Paz", "MLP030303CC3"),
]

CHART_OF_ACCOUNTS = [
    ("102-01", "Bancos", LedgerAccountType.ACTIVO),
    ("105-01", "Clientes", LedgerAccountType.ACTIVO),
    ("201-01", "Proveedores", LedgerAccountType.PASIVO),
    ("206-01", "Anticipo de clientes", LedgerAccountType.PASIVO),
    ("401-01", "Ingresos por obra", LedgerAccountType.INGRESOS),
    ("501-01", "Costo de materiales", LedgerAccountType.EGRESOS),
]


def pick(seq):
    return random.choice(seq)


def create_company(db, name: str):
    existing = db.query(Company).filter(Company.name == name).first()
    if existing:
        return existing
    company = Company(name=name, social_reason=name, address="Av. Constituyentes 100, Querétaro", is_active=True)
    db.add(company)
    db.commit()
    db.refresh(company)
    return company


def create_admin_user(db, email: str, auth_id: str):
    user = db.query(User).filter(User.auth_id == auth_id).first()
    if user:
        return user
    user = User(auth_id=auth_id, email=email, full_name="Administrador Demo", is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def link_user_company(db, user_id, company_id, role=UserRole.ADMIN.value):
    rel = db.query(UserCompany).filter(
        UserCompany.user_id == user_id,
        UserCompany.company_id == company_id,
    ).first()
    if rel:
        return rel
    rel = UserCompany(user_id=user_id, company_id=company_id, role=role, is_active=True)
    db.add(rel)
    db.commit()
    return rel


def create_work_orders(db, tenant_id, count: int):
    work_orders = []
    for i in range(1, count + 1):
        code = f"OBR-{date.today().year}-{i:03d}"
        existing = db.query(WorkOrder).filter(WorkOrder.tenant_id == tenant_id, WorkOrder.code == code).first()
        if existing:
            work_orders.append(existing)
            continue
        work_order = WorkOrder(
            tenant_id=tenant_id,
            code=code,
            name=pick(["Nave industrial", "Edificio de oficinas", "Conjunto habitacional", "Bodega logística"]) + f" {i}",
            client_name=pick(["Desarrollos QRO SA", "Inmobiliaria del Centro", "Parque Industrial Norte"]),
            status=WorkOrderStatus.IN_PROGRESS,
            start_date=date.today() - timedelta(days=120),
            contract_amount=Decimal("8500000.00"),
            advance_pct=Decimal(pick(["10", "20", "30"])),
            retention_pct=Decimal("5"),
        )
        db.add(work_order)
        db.flush()
        work_orders.append(work_order)
    db.commit()
    return work_orders


def create_budget(db, tenant_id, work_order):
    service = BudgetService(db)
    current = service.get_current_version(tenant_id, work_order.id)
    if current:
        return current
    lines = [
        BudgetLineCreate(key=key, description=desc, unit=unit, quantity=Decimal(qty), unit_price=Decimal(price))
        for key, desc, unit, qty, price in CONCEPTS
    ]
    return service.create_version(
        tenant_id, work_order.id, BudgetVersionCreate(name="Presupuesto contrato", is_current=True, lines=lines)
    )


def create_billing_periods(db, tenant_id, work_order, budget, periods: int):
    """Estimaciones quincenales; las primeras quedan facturadas, la última en borrador"""
    service = BillingService(db)
    created = []
    for n in range(periods):
        cutoff = date.today() - timedelta(days=15 * (periods - n))
        period = service.create_period(
            tenant_id, work_order.id,
            BillingPeriodCreate(period=f"Quincena al {cutoff.isoformat()}", cutoff_date=cutoff)
        )
        for line in random.sample(list(budget.lines), k=3):
            quantity = (Decimal(line.quantity) * Decimal(random.randint(5, 15)) / Decimal(100)).quantize(Decimal("1"))
            try:
                service.add_billing_line(
                    tenant_id, period.id, BillingLineCreate(budget_line_id=line.id, executed_quantity=quantity)
                )
            except ERPError as e:
                print(f"  Concepto {line.key} omitido: {e.message}")

        if n < periods - 1 and period.lines:
            service.submit(tenant_id, period.id)
            service.approve(tenant_id, period.id)
            if n < periods - 2:
                service.invoice(tenant_id, period.id)
        created.append(service.get_period(tenant_id, period.id))
    return created


def create_catalogs(db, tenant_id):
    suppliers = []
    supplier_service = SupplierService(db)
    for name, rfc in SUPPLIERS:
        existing = db.query(Supplier).filter(Supplier.tenant_id == tenant_id, Supplier.name == name).first()
        suppliers.append(existing or supplier_service.create_supplier(tenant_id, SupplierCreate(name=name, rfc=rfc)))

    products = []
    inventory = InventoryService(db)
    for sku, name, unit, _ in MATERIALS:
        existing = db.query(Product).filter(Product.tenant_id == tenant_id, Product.sku == sku).first()
        products.append(existing or inventory.create_product(
            tenant_id, ProductCreate(sku=sku, name=name, unit=unit, min_stock=Decimal("10"))
        ))
    return suppliers, products


def create_purchase_orders(db, tenant_id, user_id, work_orders, suppliers, products, count: int):
    service = PurchaseOrderService(db)
    prices = {sku: Decimal(price) for sku, _, _, price in MATERIALS}
    orders = []
    for i in range(count):
        lines = [
            PurchaseOrderLineCreate(
                product_id=product.id,
                quantity=Decimal(random.randint(10, 200)),
                unit_price=prices[product.sku],
            )
            for product in random.sample(products, k=random.randint(1, 3))
        ]
        order = service.create_order(tenant_id, user_id, PurchaseOrderCreate(
            supplier_id=pick(suppliers).id,
            work_order_id=pick(work_orders).id,
            issue_date=date.today() - timedelta(days=random.randint(0, 60)),
            lines=lines,
        ))
        if random.random() < 0.8:
            order = service.send(tenant_id, order.id)
            if random.random() < 0.7:
                # Recepción completa o parcial de la primera partida
                first = order.lines[0]
                quantity = Decimal(first.quantity_ordered)
                if random.random() < 0.4:
                    quantity = (quantity / 2).quantize(Decimal("1"))
                order = service.receive(
                    tenant_id, order.id,
                    ReceiveRequest(lines=[ReceiveLine(line_id=first.id, quantity=quantity)]),
                    user_id=user_id,
                )
        orders.append(order)
    return orders


def create_treasury(db, tenant_id, user_id, orders, periods):
    service = TreasuryService(db)
    account = db.query(BankAccount).filter(BankAccount.tenant_id == tenant_id).first()
    if not account:
        account = service.create_account(tenant_id, BankAccountCreate(
            name="BBVA Operación", bank="BBVA", opening_balance=Decimal("750000.00")
        ))

    payments = 0
    for order in orders:
        outstanding = Decimal(order.total) - Decimal(order.paid)
        if order.status.value in ("SENT", "PARTIAL", "COMPLETE") and outstanding > 0 and random.random() < 0.5:
            try:
                service.apply_transaction(tenant_id, account.id, CashTransactionCreate(
                    kind=TransactionKind.EXPENSE,
                    amount=outstanding,
                    description=f"Pago OC-{order.folio}",
                    purchase_order_id=order.id,
                ), user_id)
                payments += 1
            except ERPError as e:
                print(f"  Pago de OC-{order.folio} omitido: {e.message}")

    for period in periods:
        outstanding = Decimal(period.net_amount) - Decimal(period.paid)
        if period.status.value == "INVOICED" and outstanding > 0:
            service.apply_transaction(tenant_id, account.id, CashTransactionCreate(
                kind=TransactionKind.INCOME,
                amount=outstanding,
                description=f"Cobro estimación {period.number}",
                billing_period_id=period.id,
            ), user_id)
            payments += 1
    return account, payments


def create_chart_of_accounts(db, tenant_id):
    service = AccountingService(db)
    for code, name, account_type in CHART_OF_ACCOUNTS:
        exists = db.query(LedgerAccount).filter(LedgerAccount.tenant_id == tenant_id, LedgerAccount.code == code).first()
        if not exists:
            service.create_account(tenant_id, LedgerAccountCreate(code=code, name=name, account_type=account_type))


def main():
    parser = argparse.ArgumentParser(description="Seed construction company demo data")
    parser.add_argument("--company-name", default="Constructora Demo")
    parser.add_argument("--email", default="admin@constructorademo.mx")
    parser.add_argument("--auth-id", default="idp|demo-admin", help="Claim 'sub' del proveedor de identidad")
    parser.add_argument("--work-orders", type=int, default=3)
    parser.add_argument("--periods", type=int, default=4, help="Estimaciones por obra")
    parser.add_argument("--purchase-orders", type=int, default=25)
    parser.add_argument("--seed", type=int, default=None, help="Semilla aleatoria para resultados reproducibles")
    args = parser.parse_args()

    if args.seed is not None:
        random.seed(args.seed)

    db = SessionLocal()
    try:
        company = create_company(db, args.company_name)
        user = create_admin_user(db, args.email, args.auth_id)
        link_user_company(db, user.id, company.id)

        print("Creating work orders and budgets...")
        work_orders = create_work_orders(db, company.id, args.work_orders)
        periods = []
        for work_order in work_orders:
            budget = create_budget(db, company.id, work_order)
            periods.extend(create_billing_periods(db, company.id, work_order, budget, args.periods))
        print(f"Work orders: {len(work_orders)}, billing periods: {len(periods)}")

        print("Creating suppliers, products and purchase orders...")
        suppliers, products = create_catalogs(db, company.id)
        orders = create_purchase_orders(db, company.id, user.id, work_orders, suppliers, products, args.purchase_orders)
        print(f"Purchase orders created: {len(orders)}")

        print("Applying payments...")
        account, payments = create_treasury(db, company.id, user.id, orders, periods)
        print(f"Transactions applied: {payments}; balance {account.balance}")

        create_chart_of_accounts(db, company.id)

        print("\nSeed completed.")
        print("Identity provider subject:")
        print(f"  sub: {args.auth_id}")
        print("Company:")
        print(f"  Name:     {company.name}")
        print(f"  Company ID (tenant_id): {company.id}")
        print("Headers for API requests:")
        print(f"  X-Company-ID: {company.id}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
