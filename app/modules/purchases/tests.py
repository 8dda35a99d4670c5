"""
Tests para el módulo de Compras

- Totales con IVA y folio consecutivo por empresa
- Recepción parcial / completa y sobre-recepción
- Recepción todo-o-nada con varias partidas
- Entrada a almacén y último precio de compra
"""

import pytest
from decimal import Decimal
from uuid import uuid4
from sqlalchemy.orm import Session

from app.common.exceptions import (
    ValidationError, InvalidTransitionError, OverReceiptError, ForbiddenError
)
from app.modules.inventory.models import InventoryMovement, MovementType, Product
from app.modules.inventory.schemas import ProductCreate
from app.modules.inventory.service import InventoryService
from app.modules.purchases.models import PurchaseOrderStatus, PurchaseReceipt
from app.modules.purchases.schemas import (
    SupplierCreate, PurchaseOrderCreate, PurchaseOrderLineCreate, ReceiveRequest, ReceiveLine
)
from app.modules.purchases.service import SupplierService, PurchaseOrderService


@pytest.fixture
def supplier(db_session: Session, sample_company):
    return SupplierService(db_session).create_supplier(
        sample_company.id,
        SupplierCreate(name="Aceros del Bajío", rfc="abc010101xy9", email="ventas@acerosbajio.mx")
    )


@pytest.fixture
def cement(db_session: Session, sample_company):
    return InventoryService(db_session).create_product(
        sample_company.id, ProductCreate(sku="cem-50", name="Cemento gris 50 kg", unit="BULTO")
    )


@pytest.fixture
def rebar(db_session: Session, sample_company):
    return InventoryService(db_session).create_product(
        sample_company.id, ProductCreate(sku="var-38", name="Varilla 3/8", unit="PZA")
    )


@pytest.fixture
def service(db_session: Session):
    return PurchaseOrderService(db_session)


@pytest.fixture
def sent_order(service, sample_company, sample_user, supplier, cement):
    order = service.create_order(sample_company.id, sample_user.id, PurchaseOrderCreate(
        supplier_id=supplier.id,
        lines=[PurchaseOrderLineCreate(product_id=cement.id, quantity=Decimal("20"), unit_price=Decimal("150.00"))]
    ))
    return service.send(sample_company.id, order.id)


def _receive(service, company, order, quantities):
    return service.receive(company.id, order.id, ReceiveRequest(
        lines=[ReceiveLine(line_id=line_id, quantity=Decimal(q)) for line_id, q in quantities]
    ))


class TestSuppliers:

    def test_rfc_is_normalized(self, supplier):
        assert supplier.rfc == "ABC010101XY9"

    def test_invalid_email(self):
        with pytest.raises(Exception):
            SupplierCreate(name="Sin correo", email="no-es-correo")


class TestPurchaseOrders:

    def test_totals_with_tax(self, service, sample_company, sample_user, supplier, cement):
        order = service.create_order(sample_company.id, sample_user.id, PurchaseOrderCreate(
            supplier_id=supplier.id,
            lines=[PurchaseOrderLineCreate(product_id=cement.id, quantity=Decimal("20"), unit_price=Decimal("150.00"))]
        ))

        assert order.status == PurchaseOrderStatus.DRAFT
        assert Decimal(str(order.subtotal)) == Decimal("3000.00")
        assert Decimal(str(order.tax)) == Decimal("480.00")
        assert Decimal(str(order.total)) == Decimal("3480.00")
        assert service.outstanding_balance(order) == Decimal("3480.00")

    def test_folio_is_consecutive(self, service, sample_company, sample_user, supplier, cement):
        data = PurchaseOrderCreate(
            supplier_id=supplier.id,
            lines=[PurchaseOrderLineCreate(product_id=cement.id, quantity=Decimal("1"), unit_price=Decimal("10"))]
        )
        first = service.create_order(sample_company.id, sample_user.id, data)
        second = service.create_order(sample_company.id, sample_user.id, data)

        assert second.folio == first.folio + 1

    def test_product_from_other_company(self, db_session: Session, service, sample_company, other_company, sample_user, supplier):
        foreign = InventoryService(db_session).create_product(
            other_company.id, ProductCreate(sku="AJENO", name="Producto ajeno")
        )
        with pytest.raises(ForbiddenError):
            service.create_order(sample_company.id, sample_user.id, PurchaseOrderCreate(
                supplier_id=supplier.id,
                lines=[PurchaseOrderLineCreate(product_id=foreign.id, quantity=Decimal("1"), unit_price=Decimal("1"))]
            ))

    def test_order_without_lines(self, supplier):
        with pytest.raises(Exception):
            PurchaseOrderCreate(supplier_id=supplier.id, lines=[])

    def test_draft_cannot_receive(self, service, sample_company, sample_user, supplier, cement):
        order = service.create_order(sample_company.id, sample_user.id, PurchaseOrderCreate(
            supplier_id=supplier.id,
            lines=[PurchaseOrderLineCreate(product_id=cement.id, quantity=Decimal("5"), unit_price=Decimal("150"))]
        ))
        with pytest.raises(InvalidTransitionError):
            _receive(service, sample_company, order, [(order.lines[0].id, "1")])

    def test_sent_order_cannot_be_cancelled_or_resent(self, service, sample_company, sent_order):
        with pytest.raises(InvalidTransitionError):
            service.cancel(sample_company.id, sent_order.id)
        with pytest.raises(InvalidTransitionError):
            service.send(sample_company.id, sent_order.id)

    def test_cancelled_order_cannot_receive(self, service, sample_company, sample_user, supplier, cement):
        order = service.create_order(sample_company.id, sample_user.id, PurchaseOrderCreate(
            supplier_id=supplier.id,
            lines=[PurchaseOrderLineCreate(product_id=cement.id, quantity=Decimal("5"), unit_price=Decimal("150"))]
        ))
        order = service.cancel(sample_company.id, order.id)
        assert order.status == PurchaseOrderStatus.CANCELLED

        with pytest.raises(InvalidTransitionError):
            _receive(service, sample_company, order, [(order.lines[0].id, "1")])


class TestReceiving:

    def test_partial_then_complete_then_over_receipt(self, db_session: Session, service, sample_company, sent_order, cement):
        line_id = sent_order.lines[0].id

        order = _receive(service, sample_company, sent_order, [(line_id, "15")])
        assert order.status == PurchaseOrderStatus.PARTIAL

        order = _receive(service, sample_company, order, [(line_id, "5")])
        assert order.status == PurchaseOrderStatus.COMPLETE

        with pytest.raises(OverReceiptError):
            _receive(service, sample_company, order, [(line_id, "1")])

        product = db_session.get(Product, cement.id)
        assert Decimal(str(product.stock)) == Decimal("20")
        assert Decimal(str(product.last_purchase_price)) == Decimal("150.00")

        movements = db_session.query(InventoryMovement).filter(
            InventoryMovement.product_id == cement.id
        ).all()
        assert len(movements) == 2
        assert all(m.movement_type == MovementType.COMPRA for m in movements)
        assert {m.reference for m in movements} == {f"OC-{order.folio}"}

    def test_all_or_nothing(self, db_session: Session, service, sample_company, sample_user, supplier, cement, rebar):
        order = service.create_order(sample_company.id, sample_user.id, PurchaseOrderCreate(
            supplier_id=supplier.id,
            lines=[
                PurchaseOrderLineCreate(product_id=cement.id, quantity=Decimal("10"), unit_price=Decimal("150")),
                PurchaseOrderLineCreate(product_id=rebar.id, quantity=Decimal("100"), unit_price=Decimal("85.50")),
            ]
        ))
        order = service.send(sample_company.id, order.id)
        cement_line = next(line for line in order.lines if line.product_id == cement.id)
        rebar_line = next(line for line in order.lines if line.product_id == rebar.id)

        with pytest.raises(OverReceiptError):
            _receive(service, sample_company, order, [(cement_line.id, "10"), (rebar_line.id, "101")])

        order = service.get_order(sample_company.id, order.id)
        assert order.status == PurchaseOrderStatus.SENT
        assert all(Decimal(str(line.quantity_received)) == Decimal("0") for line in order.lines)
        assert Decimal(str(db_session.get(Product, cement.id).stock)) == Decimal("0")
        assert db_session.query(PurchaseReceipt).count() == 0
        assert db_session.query(InventoryMovement).count() == 0

    def test_repeated_line_is_summed(self, service, sample_company, sent_order):
        line_id = sent_order.lines[0].id
        with pytest.raises(OverReceiptError):
            _receive(service, sample_company, sent_order, [(line_id, "15"), (line_id, "6")])

    def test_fractional_receipts_complete_the_order(self, service, sample_company, sample_user, supplier, cement):
        order = service.create_order(sample_company.id, sample_user.id, PurchaseOrderCreate(
            supplier_id=supplier.id,
            lines=[PurchaseOrderLineCreate(product_id=cement.id, quantity=Decimal("1"), unit_price=Decimal("150"))]
        ))
        order = service.send(sample_company.id, order.id)
        line_id = order.lines[0].id

        with pytest.raises(ValidationError):
            _receive(service, sample_company, order, [(line_id, "0.99999")])

        order = _receive(service, sample_company, order, [(line_id, "0.9999")])
        assert order.status == PurchaseOrderStatus.PARTIAL

        order = _receive(service, sample_company, order, [(line_id, "0.0001")])
        assert order.status == PurchaseOrderStatus.COMPLETE
        assert Decimal(str(order.lines[0].quantity_received)) == Decimal("1")

    def test_extra_decimals_in_order_lines(self, db_session: Session, service, sample_company, sample_user, supplier, cement):
        with pytest.raises(ValidationError):
            service.create_order(sample_company.id, sample_user.id, PurchaseOrderCreate(
                supplier_id=supplier.id,
                lines=[PurchaseOrderLineCreate(product_id=cement.id, quantity=Decimal("3"), unit_price=Decimal("10.005"))]
            ))
        with pytest.raises(ValidationError):
            service.create_order(sample_company.id, sample_user.id, PurchaseOrderCreate(
                supplier_id=supplier.id,
                lines=[PurchaseOrderLineCreate(product_id=cement.id, quantity=Decimal("0.00001"), unit_price=Decimal("10"))]
            ))

        assert service.list_orders(sample_company.id).total == 0

    def test_line_from_other_order(self, service, sample_company, sent_order):
        with pytest.raises(ValidationError):
            _receive(service, sample_company, sent_order, [(uuid4(), "1")])

    def test_zero_quantity(self, service, sample_company, sent_order):
        with pytest.raises(ValidationError):
            _receive(service, sample_company, sent_order, [(sent_order.lines[0].id, "0")])


class TestPurchaseAPI:

    def test_create_send_receive(self, client, sample_user, sample_company, supplier, cement, auth_headers):
        headers = auth_headers(sample_user, sample_company)
        response = client.post("/ordenes-compra/", json={
            "supplier_id": str(supplier.id),
            "lines": [{"product_id": str(cement.id), "quantity": "20", "unit_price": "150.00"}],
        }, headers=headers)
        assert response.status_code == 201
        order = response.json()
        assert Decimal(str(order["total"])) == Decimal("3480.00")
        assert order["supplier_name"] == "Aceros del Bajío"

        response = client.post(f"/ordenes-compra/{order['id']}/enviar", headers=headers)
        assert response.json()["status"] == "SENT"

        response = client.post(f"/ordenes-compra/{order['id']}/recibir", json={
            "lines": [{"line_id": order["lines"][0]["id"], "quantity": "25"}]
        }, headers=headers)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "over_receipt"

        response = client.post(f"/ordenes-compra/{order['id']}/recibir", json={
            "lines": [{"line_id": order["lines"][0]["id"], "quantity": "20"}]
        }, headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "COMPLETE"

    def test_warehouse_cannot_create_orders(self, client, make_user, sample_company, supplier, cement, auth_headers):
        user = make_user(sample_company, "ALMACEN")
        response = client.post("/ordenes-compra/", json={
            "supplier_id": str(supplier.id),
            "lines": [{"product_id": str(cement.id), "quantity": "1", "unit_price": "1"}],
        }, headers=auth_headers(user, sample_company))

        assert response.status_code == 403
