"""
Base service class for Reports module

Provides tenant-scoped base queries shared by all report services.
"""
from uuid import UUID

from sqlalchemy.orm import Session

from app.modules.work_orders.models import WorkOrder
from app.modules.billing.models import BillingPeriod
from app.modules.purchases.models import PurchaseOrder
from app.modules.treasury.models import BankAccount
from app.modules.inventory.models import Product


class BaseReportService:
    """Base service class for all report services"""

    def __init__(self, db: Session, tenant_id: UUID):
        self.db = db
        self.tenant_id = tenant_id

    def _get_base_work_order_query(self):
        return self.db.query(WorkOrder).filter(WorkOrder.tenant_id == self.tenant_id)

    def _get_base_billing_period_query(self):
        return self.db.query(BillingPeriod).filter(BillingPeriod.tenant_id == self.tenant_id)

    def _get_base_purchase_order_query(self):
        return self.db.query(PurchaseOrder).filter(PurchaseOrder.tenant_id == self.tenant_id)

    def _get_base_bank_account_query(self):
        return self.db.query(BankAccount).filter(BankAccount.tenant_id == self.tenant_id)

    def _get_base_product_query(self):
        return self.db.query(Product).filter(Product.tenant_id == self.tenant_id)
