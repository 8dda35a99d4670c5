"""
Routers FastAPI para Maquinaria
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from app.modules.machinery.models import MachineStatus as MachineStatusModel
from app.modules.machinery.schemas import (
    MachineCreate, MachineOut, MachineList, MachineStatusUpdate, MachineStatus,
    AssignmentCreate, AssignmentFinish, AssignmentOut
)
from app.modules.machinery.service import MachineryService

machinery_router = APIRouter(prefix="/maquinaria", tags=["Maquinaria"])

MACHINERY_ROLES = ["OBRAS"]


@machinery_router.post("/", response_model=MachineOut, status_code=status.HTTP_201_CREATED)
def create_machine(
    data: MachineCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(MACHINERY_ROLES))
):
    return MachineryService(db).create_machine(auth_context.tenant_id, data)


@machinery_router.get("/", response_model=MachineList)
def list_machines(
    search: Optional[str] = Query(None, description="Buscar por código, descripción, marca o modelo"),
    status: Optional[MachineStatus] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return MachineryService(db).list_machines(
        auth_context.tenant_id,
        search=search,
        status=MachineStatusModel(status.value) if status else None,
        limit=limit,
        offset=offset
    )


@machinery_router.get("/{machine_id}", response_model=MachineOut)
def get_machine(
    machine_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return MachineryService(db).get_machine(auth_context.tenant_id, machine_id)


@machinery_router.post("/{machine_id}/estado", response_model=MachineOut)
def change_machine_status(
    machine_id: UUID,
    data: MachineStatusUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(MACHINERY_ROLES))
):
    return MachineryService(db).change_status(
        auth_context.tenant_id, machine_id, MachineStatusModel(data.status.value)
    )


@machinery_router.post(
    "/{machine_id}/asignaciones", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED
)
def assign_machine(
    machine_id: UUID,
    data: AssignmentCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(MACHINERY_ROLES))
):
    """Enviar el equipo a una obra. Debe estar DISPONIBLE."""
    return MachineryService(db).assign(auth_context.tenant_id, machine_id, data)


@machinery_router.post("/{machine_id}/asignaciones/finalizar", response_model=AssignmentOut)
def finish_machine_assignment(
    machine_id: UUID,
    data: AssignmentFinish,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(MACHINERY_ROLES))
):
    """Registrar el regreso del equipo con la lectura final del horómetro."""
    return MachineryService(db).finish_assignment(auth_context.tenant_id, machine_id, data)


@machinery_router.get("/{machine_id}/asignaciones", response_model=List[AssignmentOut])
def list_machine_assignments(
    machine_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_any_role())
):
    return MachineryService(db).list_assignments(auth_context.tenant_id, machine_id)
