"""
Routers FastAPI para Nómina
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext
from app.modules.payroll.models import PayrollPeriodStatus as PayrollPeriodStatusModel
from app.modules.payroll.schemas import (
    EmployeeCreate, EmployeeOut, PayrollPeriodCreate, PayrollPeriodOut, PayrollPeriodDetail,
    PayrollPeriodList, PayrollLinesUpdate, PayrollPeriodStatus
)
from app.modules.payroll.service import PayrollService

payroll_router = APIRouter(prefix="/nomina", tags=["Nómina"])

PAYROLL_ROLES = ["CONTADOR"]
READ_ROLES = ["CONTADOR", "OBRAS"]


@payroll_router.post("/empleados", response_model=EmployeeOut, status_code=status.HTTP_201_CREATED)
def create_employee(
    data: EmployeeCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(PAYROLL_ROLES))
):
    return PayrollService(db).create_employee(auth_context.tenant_id, data)


@payroll_router.get("/empleados", response_model=List[EmployeeOut])
def list_employees(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(READ_ROLES))
):
    return PayrollService(db).list_employees(auth_context.tenant_id, include_inactive)


@payroll_router.post("/periodos", response_model=PayrollPeriodOut, status_code=status.HTTP_201_CREATED)
def create_payroll_period(
    data: PayrollPeriodCreate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(PAYROLL_ROLES))
):
    return PayrollService(db).create_period(auth_context.tenant_id, data)


@payroll_router.get("/periodos", response_model=PayrollPeriodList)
def list_payroll_periods(
    year: Optional[int] = Query(None),
    status: Optional[PayrollPeriodStatus] = Query(None),
    work_order_id: Optional[UUID] = Query(None, description="Filtrar por obra"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(READ_ROLES))
):
    return PayrollService(db).list_periods(
        auth_context.tenant_id,
        year=year,
        status=PayrollPeriodStatusModel(status.value) if status else None,
        work_order_id=work_order_id,
        limit=limit,
        offset=offset
    )


@payroll_router.get("/periodos/{period_id}", response_model=PayrollPeriodDetail)
def get_payroll_period(
    period_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(READ_ROLES))
):
    return PayrollService(db).get_period_detail(auth_context.tenant_id, period_id)


@payroll_router.put("/periodos/{period_id}/detalles", response_model=PayrollPeriodDetail)
def save_payroll_lines(
    period_id: UUID,
    data: PayrollLinesUpdate,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(PAYROLL_ROLES))
):
    """Capturar o actualizar detalles de empleados y recalcular el total."""
    service = PayrollService(db)
    service.save_lines(auth_context.tenant_id, period_id, data)
    return service.get_period_detail(auth_context.tenant_id, period_id)


@payroll_router.delete("/periodos/{period_id}/detalles/{line_id}", response_model=PayrollPeriodOut)
def remove_payroll_line(
    period_id: UUID,
    line_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(PAYROLL_ROLES))
):
    return PayrollService(db).remove_line(auth_context.tenant_id, period_id, line_id)


@payroll_router.post("/periodos/{period_id}/cerrar", response_model=PayrollPeriodOut)
def close_payroll_period(
    period_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(PAYROLL_ROLES))
):
    return PayrollService(db).close(auth_context.tenant_id, period_id)


@payroll_router.post("/periodos/{period_id}/pagar", response_model=PayrollPeriodOut)
def pay_payroll_period(
    period_id: UUID,
    db: Session = Depends(get_db),
    auth_context: AuthContext = Depends(AuthDependencies.require_role(PAYROLL_ROLES))
):
    return PayrollService(db).mark_paid(auth_context.tenant_id, period_id)
