"""
Tests para el módulo de Obras

- Alta, consulta y listado acotados por empresa
- Claves duplicadas
- Acceso cruzado entre empresas
- Roles y header de empresa en la API
"""

import pytest
from decimal import Decimal
from uuid import uuid4
from sqlalchemy.orm import Session

from app.common.exceptions import ValidationError, NotFoundError, ForbiddenError
from app.modules.auth.models import UserRole
from app.modules.work_orders.models import WorkOrder, WorkOrderStatus
from app.modules.work_orders.schemas import WorkOrderCreate
from app.modules.work_orders.service import WorkOrderService


@pytest.fixture
def work_order_data():
    return {
        "code": "OBR-2025-002",
        "name": "Puente Vehicular Río Verde",
        "client_name": "Gobierno del Estado",
        "contract_amount": "2500000.00",
        "advance_pct": "30",
        "retention_pct": "5",
    }


class TestWorkOrderService:

    def test_create_work_order(self, db_session: Session, sample_company, work_order_data):
        service = WorkOrderService(db_session)
        work_order = service.create_work_order(WorkOrderCreate(**work_order_data), sample_company.id)

        assert work_order.id is not None
        assert work_order.tenant_id == sample_company.id
        assert work_order.status == WorkOrderStatus.IN_PROGRESS
        assert Decimal(str(work_order.advance_pct)) == Decimal("30")

    def test_duplicate_code_in_same_company(self, db_session: Session, sample_company, work_order_data):
        service = WorkOrderService(db_session)
        service.create_work_order(WorkOrderCreate(**work_order_data), sample_company.id)

        with pytest.raises(ValidationError):
            service.create_work_order(WorkOrderCreate(**work_order_data), sample_company.id)

    def test_same_code_in_other_company(self, db_session: Session, sample_company, other_company, work_order_data):
        service = WorkOrderService(db_session)
        service.create_work_order(WorkOrderCreate(**work_order_data), sample_company.id)
        other = service.create_work_order(WorkOrderCreate(**work_order_data), other_company.id)

        assert other.tenant_id == other_company.id

    def test_get_from_other_company_is_forbidden(self, db_session: Session, sample_work_order, other_company):
        service = WorkOrderService(db_session)
        with pytest.raises(ForbiddenError):
            service.get_work_order(sample_work_order.id, other_company.id)

    def test_get_unknown_work_order(self, db_session: Session, sample_company):
        with pytest.raises(NotFoundError):
            WorkOrderService(db_session).get_work_order(uuid4(), sample_company.id)

    def test_list_filters_by_status_and_company(self, db_session: Session, sample_company, other_company, sample_work_order):
        db_session.add(WorkOrder(
            tenant_id=sample_company.id, code="OBR-2024-010", name="Bodega", status=WorkOrderStatus.FINISHED
        ))
        db_session.add(WorkOrder(
            tenant_id=other_company.id, code="OBR-2024-011", name="Ajena", status=WorkOrderStatus.FINISHED
        ))
        db_session.commit()

        service = WorkOrderService(db_session)
        all_orders = service.list_work_orders(sample_company.id)
        finished = service.list_work_orders(sample_company.id, status=WorkOrderStatus.FINISHED)

        assert all_orders.total == 2
        assert finished.total == 1
        assert finished.items[0].code == "OBR-2024-010"

    def test_end_date_before_start_date(self, work_order_data):
        with pytest.raises(Exception):
            WorkOrderCreate(**work_order_data, start_date="2025-06-01", end_date="2025-05-01")

    def test_deductions_cannot_exceed_gross(self, work_order_data):
        work_order_data.update(advance_pct="60", retention_pct="60")
        with pytest.raises(Exception):
            WorkOrderCreate(**work_order_data)

        work_order_data.update(advance_pct="95", retention_pct="5")
        assert WorkOrderCreate(**work_order_data).advance_pct == Decimal("95")


class TestWorkOrderAPI:

    def test_create_and_get(self, client, sample_user, sample_company, auth_headers, work_order_data):
        headers = auth_headers(sample_user, sample_company)
        response = client.post("/obras/", json=work_order_data, headers=headers)
        assert response.status_code == 201
        created = response.json()
        assert created["code"] == "OBR-2025-002"

        response = client.get(f"/obras/{created['id']}", headers=headers)
        assert response.status_code == 200
        assert Decimal(str(response.json()["retention_pct"])) == Decimal("5")

    def test_excessive_deductions_rejected(self, client, sample_user, sample_company, auth_headers, work_order_data):
        work_order_data.update(advance_pct="60", retention_pct="60")
        response = client.post("/obras/", json=work_order_data, headers=auth_headers(sample_user, sample_company))

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"

    def test_list(self, client, sample_user, sample_company, sample_work_order, auth_headers):
        response = client.get("/obras/", headers=auth_headers(sample_user, sample_company))
        assert response.status_code == 200
        assert response.json()["total"] == 1

    def test_user_role_cannot_create(self, client, make_user, sample_company, auth_headers, work_order_data):
        user = make_user(sample_company, UserRole.USUARIO.value)
        response = client.post("/obras/", json=work_order_data, headers=auth_headers(user, sample_company))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "forbidden"

    def test_missing_company_header(self, client, sample_user, sample_company, auth_headers):
        headers = auth_headers(sample_user, sample_company)
        headers.pop("X-Company-ID")
        response = client.get("/obras/", headers=headers)

        assert response.status_code == 400

    def test_other_company_work_order(self, client, make_user, sample_work_order, other_company, auth_headers):
        outsider = make_user(other_company, UserRole.ADMIN.value)
        response = client.get(f"/obras/{sample_work_order.id}", headers=auth_headers(outsider, other_company))

        assert response.status_code == 403
