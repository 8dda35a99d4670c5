"""
Dashboard Report Service

Resumen ejecutivo de la empresa: bancos, cuentas por cobrar y por pagar,
estimaciones por facturar, órdenes por estado y alertas de stock.
"""
from decimal import Decimal

from sqlalchemy import func

from .base import BaseReportService
from app.common.money import to_decimal, ZERO
from app.modules.work_orders.models import WorkOrder, WorkOrderStatus
from app.modules.billing.models import BillingPeriod, BillingPeriodStatus
from app.modules.purchases.models import PurchaseOrder, PurchaseOrderStatus
from app.modules.treasury.models import BankAccount
from app.modules.inventory.models import Product
from ..schemas import DashboardSummary

PAYABLE_STATUSES = [PurchaseOrderStatus.SENT, PurchaseOrderStatus.PARTIAL, PurchaseOrderStatus.COMPLETE]


def _dec(value) -> Decimal:
    return to_decimal(value) if value is not None else ZERO


class DashboardReportService(BaseReportService):
    """Service for the company dashboard"""

    def dashboard_summary(self) -> DashboardSummary:
        bank_balance = self._get_base_bank_account_query().filter(
            BankAccount.is_active.is_(True)
        ).with_entities(func.sum(BankAccount.balance)).scalar()

        receivables = self._get_base_billing_period_query().filter(
            BillingPeriod.status == BillingPeriodStatus.INVOICED
        ).with_entities(
            func.count(BillingPeriod.id),
            func.sum(BillingPeriod.net_amount),
            func.sum(BillingPeriod.paid)
        ).first()

        to_invoice = self._get_base_billing_period_query().filter(
            BillingPeriod.status == BillingPeriodStatus.APPROVED
        ).with_entities(
            func.count(BillingPeriod.id),
            func.sum(BillingPeriod.net_amount)
        ).first()

        pending_approval = self._get_base_billing_period_query().filter(
            BillingPeriod.status == BillingPeriodStatus.PENDING
        ).count()

        payables = self._get_base_purchase_order_query().filter(
            PurchaseOrder.status.in_(PAYABLE_STATUSES)
        ).with_entities(
            func.sum(PurchaseOrder.total),
            func.sum(PurchaseOrder.paid)
        ).first()

        orders_by_status = {status.value: 0 for status in PurchaseOrderStatus}
        rows = self._get_base_purchase_order_query().with_entities(
            PurchaseOrder.status, func.count(PurchaseOrder.id)
        ).group_by(PurchaseOrder.status).all()
        for status, count in rows:
            orders_by_status[status.value] = count

        active_work_orders = self._get_base_work_order_query().filter(
            WorkOrder.status == WorkOrderStatus.IN_PROGRESS
        ).count()
        total_work_orders = self._get_base_work_order_query().count()

        low_stock_products = self._get_base_product_query().filter(
            Product.is_active.is_(True),
            Product.stock <= Product.min_stock,
            Product.min_stock > 0
        ).count()

        return DashboardSummary(
            bank_balance=_dec(bank_balance),
            receivables=_dec(receivables[1]) - _dec(receivables[2]),
            invoiced_periods=receivables[0] or 0,
            to_invoice=_dec(to_invoice[1]),
            approved_periods=to_invoice[0] or 0,
            pending_approval_periods=pending_approval,
            payables=_dec(payables[0]) - _dec(payables[1]),
            purchase_orders_by_status=orders_by_status,
            active_work_orders=active_work_orders,
            total_work_orders=total_work_orders,
            low_stock_products=low_stock_products,
        )
