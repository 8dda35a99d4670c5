"""
Financial Reports Service

Cuentas por cobrar (estimaciones facturadas con saldo) y cuentas por pagar
(órdenes de compra con saldo).
"""
from typing import Optional
from uuid import UUID

from .base import BaseReportService
from app.common.money import to_decimal, sum_money
from app.modules.billing.models import BillingPeriod, BillingPeriodStatus
from app.modules.purchases.models import PurchaseOrder, PurchaseOrderStatus
from ..schemas import (
    AccountsReceivableResponse, ReceivableItem, AccountsPayableResponse, PayableItem
)

PAYABLE_STATUSES = [PurchaseOrderStatus.SENT, PurchaseOrderStatus.PARTIAL, PurchaseOrderStatus.COMPLETE]


class FinancialReportService(BaseReportService):
    """Service for generating financial reports"""

    def get_accounts_receivable(self, work_order_id: Optional[UUID] = None) -> AccountsReceivableResponse:
        query = self._get_base_billing_period_query().filter(
            BillingPeriod.status == BillingPeriodStatus.INVOICED,
            BillingPeriod.net_amount > BillingPeriod.paid
        )
        if work_order_id:
            query = query.filter(BillingPeriod.work_order_id == work_order_id)

        items = []
        for period in query.order_by(BillingPeriod.invoiced_at).all():
            items.append(ReceivableItem(
                billing_period_id=period.id,
                work_order_code=period.work_order.code,
                work_order_name=period.work_order.name,
                client_name=period.work_order.client_name,
                number=period.number,
                period=period.period,
                net_amount=period.net_amount,
                paid=period.paid,
                outstanding=to_decimal(period.net_amount) - to_decimal(period.paid),
            ))

        return AccountsReceivableResponse(
            items=items,
            total_outstanding=sum_money(item.outstanding for item in items),
        )

    def get_accounts_payable(self, supplier_id: Optional[UUID] = None) -> AccountsPayableResponse:
        query = self._get_base_purchase_order_query().filter(
            PurchaseOrder.status.in_(PAYABLE_STATUSES),
            PurchaseOrder.total > PurchaseOrder.paid
        )
        if supplier_id:
            query = query.filter(PurchaseOrder.supplier_id == supplier_id)

        items = []
        for order in query.order_by(PurchaseOrder.folio).all():
            items.append(PayableItem(
                purchase_order_id=order.id,
                folio=order.folio,
                supplier_name=order.supplier.name if order.supplier else "",
                status=order.status.value,
                issue_date=order.issue_date,
                total=order.total,
                paid=order.paid,
                outstanding=to_decimal(order.total) - to_decimal(order.paid),
            ))

        return AccountsPayableResponse(
            items=items,
            total_outstanding=sum_money(item.outstanding for item in items),
        )
