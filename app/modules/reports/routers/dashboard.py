"""
Dashboard Router
"""

from fastapi import APIRouter

from app.dependencies.dbDependecies import db_dependency
from app.dependencies.companyDependencies import TenantContext
from ..services.dashboard import DashboardReportService
from ..schemas import DashboardSummary


router = APIRouter(prefix="/reportes", tags=["Reportes"])


@router.get("/dashboard", response_model=DashboardSummary)
def get_dashboard_summary(auth_context: TenantContext, db: db_dependency):
    """Resumen de bancos, cuentas por cobrar y por pagar, estimaciones y obras."""
    return DashboardReportService(db, auth_context.tenant_id).dashboard_summary()
