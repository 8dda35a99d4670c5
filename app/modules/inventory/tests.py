"""
Tests para el módulo de Inventario (almacén de obra)
"""

import pytest
from decimal import Decimal
from sqlalchemy.orm import Session

from app.common.exceptions import InsufficientStockError, ValidationError
from app.modules.inventory.models import Product, MovementType as MovementTypeModel
from app.modules.inventory.schemas import ProductCreate, InventoryMovementCreate, MovementType
from app.modules.inventory.service import InventoryService


@pytest.fixture
def product(db_session: Session, sample_company):
    return InventoryService(db_session).create_product(
        sample_company.id, ProductCreate(sku="arena", name="Arena de río", unit="M3")
    )


class TestInventoryService:

    def test_create_product_normalizes_sku(self, product):
        assert product.sku == "ARENA"
        assert Decimal(str(product.stock)) == Decimal("0")

    def test_duplicate_sku(self, db_session: Session, sample_company, product):
        with pytest.raises(ValidationError):
            InventoryService(db_session).create_product(
                sample_company.id, ProductCreate(sku="Arena", name="Otra arena")
            )

    def test_entry_and_site_issue(self, db_session: Session, sample_company, sample_work_order, product):
        service = InventoryService(db_session)
        service.register_movement(sample_company.id, InventoryMovementCreate(
            product_id=product.id, movement_type=MovementType.ENTRADA, quantity=Decimal("12")
        ))
        issue = service.register_movement(sample_company.id, InventoryMovementCreate(
            product_id=product.id, movement_type=MovementType.SALIDA_OBRA,
            quantity=Decimal("4.5"), work_order_id=sample_work_order.id
        ))

        assert issue.stock_after == Decimal("7.5")
        assert issue.product_sku == "ARENA"
        assert Decimal(str(db_session.get(Product, product.id).stock)) == Decimal("7.5")

    def test_insufficient_stock(self, db_session: Session, sample_company, sample_work_order, product):
        with pytest.raises(InsufficientStockError):
            InventoryService(db_session).register_movement(sample_company.id, InventoryMovementCreate(
                product_id=product.id, movement_type=MovementType.SALIDA_OBRA,
                quantity=Decimal("1"), work_order_id=sample_work_order.id
            ))
        assert Decimal(str(db_session.get(Product, product.id).stock)) == Decimal("0")

    def test_increase_stock_does_not_commit(self, db_session: Session, sample_company, product):
        movement = InventoryService(db_session).increase_stock(
            sample_company.id, product.id, Decimal("3"), unit_cost=Decimal("420.555"), reference="OC-7"
        )
        assert movement.movement_type == MovementTypeModel.COMPRA
        assert Decimal(str(movement.unit_cost)) == Decimal("420.56")

        db_session.rollback()
        assert Decimal(str(db_session.get(Product, product.id).stock)) == Decimal("0")

    def test_purchase_movements_are_not_manual(self, product):
        with pytest.raises(Exception):
            InventoryMovementCreate(product_id=product.id, movement_type=MovementType.COMPRA, quantity=Decimal("1"))

    def test_list_movements_by_type(self, db_session: Session, sample_company, product):
        service = InventoryService(db_session)
        service.register_movement(sample_company.id, InventoryMovementCreate(
            product_id=product.id, movement_type=MovementType.AJUSTE_POSITIVO, quantity=Decimal("2")
        ))
        service.register_movement(sample_company.id, InventoryMovementCreate(
            product_id=product.id, movement_type=MovementType.AJUSTE_NEGATIVO, quantity=Decimal("1")
        ))

        result = service.list_movements(sample_company.id, movement_type=MovementTypeModel.AJUSTE_NEGATIVO)
        assert result.total == 1
        assert result.items[0].stock_after == Decimal("1")


class TestInventoryAPI:

    def test_site_issue_requires_work_order(self, client, sample_user, sample_company, product, auth_headers):
        response = client.post("/inventario/movimientos", json={
            "product_id": str(product.id),
            "movement_type": "SALIDA_OBRA",
            "quantity": "1",
        }, headers=auth_headers(sample_user, sample_company))

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"

    def test_insufficient_stock_conflict(self, client, sample_user, sample_company, sample_work_order, product, auth_headers):
        response = client.post("/inventario/movimientos", json={
            "product_id": str(product.id),
            "movement_type": "SALIDA_OBRA",
            "quantity": "1",
            "work_order_id": str(sample_work_order.id),
        }, headers=auth_headers(sample_user, sample_company))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "insufficient_stock"
