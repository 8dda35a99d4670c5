"""
Tests para el módulo de Maquinaria

- Salida a obra sólo desde DISPONIBLE y regreso a DISPONIBLE
- Horómetro: nunca retrocede, horas usadas por asignación
- Una sola asignación activa por equipo
"""

import pytest
from datetime import date
from decimal import Decimal
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.common.exceptions import ValidationError, InvalidTransitionError, NotFoundError, ForbiddenError
from app.modules.auth.models import UserRole
from app.modules.machinery.models import MachineAssignment, MachineStatus
from app.modules.machinery.schemas import MachineCreate, AssignmentCreate, AssignmentFinish
from app.modules.machinery.service import MachineryService
from app.modules.work_orders.models import WorkOrderStatus


@pytest.fixture
def service(db_session: Session):
    return MachineryService(db_session)


@pytest.fixture
def excavator(service, sample_company):
    return service.create_machine(sample_company.id, MachineCreate(
        code="exc-01", description="Retroexcavadora", brand="Caterpillar", model="416F",
        hourly_cost=Decimal("650.00"), hour_meter=Decimal("1200.50")
    ))


def _assign(service, company, machine, work_order, **kwargs):
    return service.assign(company.id, machine.id, AssignmentCreate(
        work_order_id=work_order.id, start_date=kwargs.pop("start_date", date(2025, 4, 1)), **kwargs
    ))


class TestMachineryService:

    def test_new_machine_is_available_in_yard(self, excavator):
        assert excavator.code == "EXC-01"
        assert excavator.status == MachineStatus.DISPONIBLE
        assert excavator.location == settings.MACHINERY_YARD_LOCATION

    def test_duplicate_code(self, service, sample_company, excavator):
        with pytest.raises(ValidationError):
            service.create_machine(sample_company.id, MachineCreate(code="EXC-01", description="Otra"))

    def test_assign_and_return(self, service, sample_company, sample_work_order, excavator):
        assignment = _assign(service, sample_company, excavator, sample_work_order)
        machine = service.get_machine(sample_company.id, excavator.id)

        assert assignment.is_active
        assert assignment.hour_meter_start == Decimal("1200.50")
        assert machine.status == MachineStatus.EN_OBRA
        assert machine.location == sample_work_order.name

        finished = service.finish_assignment(sample_company.id, excavator.id, AssignmentFinish(
            end_date=date(2025, 4, 20), hour_meter_end=Decimal("1286.75"), notes="Sin novedades"
        ))
        machine = service.get_machine(sample_company.id, excavator.id)

        assert not finished.is_active
        assert finished.hours_used == Decimal("86.25")
        assert finished.notes == "Cierre: Sin novedades"
        assert machine.status == MachineStatus.DISPONIBLE
        assert machine.hour_meter == Decimal("1286.75")
        assert machine.location == settings.MACHINERY_YARD_LOCATION

    def test_cannot_assign_twice(self, service, sample_company, sample_work_order, excavator):
        _assign(service, sample_company, excavator, sample_work_order)

        with pytest.raises(InvalidTransitionError):
            _assign(service, sample_company, excavator, sample_work_order)
        assert len(service.list_assignments(sample_company.id, excavator.id)) == 1

    def test_machine_in_maintenance_cannot_leave(self, service, sample_company, sample_work_order, excavator):
        service.change_status(sample_company.id, excavator.id, MachineStatus.MANTENIMIENTO)

        with pytest.raises(InvalidTransitionError):
            _assign(service, sample_company, excavator, sample_work_order)

        machine = service.change_status(sample_company.id, excavator.id, MachineStatus.DISPONIBLE)
        assert machine.status == MachineStatus.DISPONIBLE

    def test_status_change_cannot_bypass_assignments(self, service, sample_company, sample_work_order, excavator):
        with pytest.raises(InvalidTransitionError):
            service.change_status(sample_company.id, excavator.id, MachineStatus.EN_OBRA)

        _assign(service, sample_company, excavator, sample_work_order)
        with pytest.raises(InvalidTransitionError):
            service.change_status(sample_company.id, excavator.id, MachineStatus.DISPONIBLE)

    def test_retired_machine_is_final(self, service, sample_company, excavator):
        service.change_status(sample_company.id, excavator.id, MachineStatus.BAJA)

        with pytest.raises(InvalidTransitionError):
            service.change_status(sample_company.id, excavator.id, MachineStatus.DISPONIBLE)

    def test_hour_meter_never_goes_back(self, service, sample_company, sample_work_order, excavator):
        with pytest.raises(ValidationError):
            _assign(service, sample_company, excavator, sample_work_order, hour_meter_start=Decimal("1100"))

        _assign(service, sample_company, excavator, sample_work_order)
        with pytest.raises(ValidationError):
            service.finish_assignment(sample_company.id, excavator.id, AssignmentFinish(
                end_date=date(2025, 4, 2), hour_meter_end=Decimal("1200.49")
            ))
        assert service.get_machine(sample_company.id, excavator.id).status == MachineStatus.EN_OBRA

    def test_return_before_departure(self, service, sample_company, sample_work_order, excavator):
        _assign(service, sample_company, excavator, sample_work_order)

        with pytest.raises(ValidationError):
            service.finish_assignment(sample_company.id, excavator.id, AssignmentFinish(end_date=date(2025, 3, 31)))

    def test_finish_without_active_assignment(self, service, sample_company, excavator):
        with pytest.raises(NotFoundError):
            service.finish_assignment(sample_company.id, excavator.id, AssignmentFinish(end_date=date(2025, 4, 2)))

    def test_closed_work_order_rejected(self, db_session, service, sample_company, sample_work_order, excavator):
        sample_work_order.status = WorkOrderStatus.FINISHED
        db_session.commit()

        with pytest.raises(ValidationError):
            _assign(service, sample_company, excavator, sample_work_order)
        assert service.get_machine(sample_company.id, excavator.id).status == MachineStatus.DISPONIBLE

    def test_work_order_from_other_company(self, db_session, service, other_company, sample_work_order):
        machine = service.create_machine(other_company.id, MachineCreate(code="GRU-01", description="Grúa"))

        with pytest.raises(ForbiddenError):
            _assign(service, other_company, machine, sample_work_order)

    def test_database_allows_one_active_assignment(self, db_session, service, sample_company, sample_work_order, excavator):
        _assign(service, sample_company, excavator, sample_work_order)

        db_session.add(MachineAssignment(
            tenant_id=sample_company.id,
            machine_id=excavator.id,
            work_order_id=sample_work_order.id,
            start_date=date(2025, 4, 5),
            hour_meter_start=Decimal("1300"),
            is_active=True,
        ))
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()


class TestMachineryAPI:

    def test_assignment_flow(self, client, sample_user, sample_company, sample_work_order, auth_headers):
        headers = auth_headers(sample_user, sample_company)
        response = client.post("/maquinaria/", json={
            "code": "rev-02", "description": "Revolvedora 1 saco", "hour_meter": "310.00"
        }, headers=headers)
        assert response.status_code == 201
        machine_id = response.json()["id"]

        response = client.post(f"/maquinaria/{machine_id}/asignaciones", json={
            "work_order_id": str(sample_work_order.id), "start_date": "2025-05-02"
        }, headers=headers)
        assert response.status_code == 201

        response = client.post(f"/maquinaria/{machine_id}/asignaciones", json={
            "work_order_id": str(sample_work_order.id), "start_date": "2025-05-03"
        }, headers=headers)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "invalid_transition"

        response = client.post(f"/maquinaria/{machine_id}/asignaciones/finalizar", json={
            "end_date": "2025-05-09", "hour_meter_end": "352.5"
        }, headers=headers)
        assert response.status_code == 200
        assert Decimal(str(response.json()["hours_used"])) == Decimal("42.5")

        response = client.get("/maquinaria/", params={"status": "DISPONIBLE"}, headers=headers)
        assert response.json()["total"] == 1

    def test_buyer_cannot_assign(self, client, make_user, sample_company, sample_work_order, excavator, auth_headers):
        buyer = make_user(sample_company, UserRole.COMPRAS.value)
        response = client.post(f"/maquinaria/{excavator.id}/asignaciones", json={
            "work_order_id": str(sample_work_order.id), "start_date": "2025-05-02"
        }, headers=auth_headers(buyer, sample_company))

        assert response.status_code == 403
