from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

# Import database components
from app.database.database import engine, Base

# Import middleware and error handlers
from app.common.middleware import TenantMiddleware, SecurityHeadersMiddleware
from app.common.exceptions import register_exception_handlers

# Import routers
from app.modules.auth.router import auth_router
from app.modules.work_orders.router import work_orders_router
from app.modules.budgets.router import budgets_router
from app.modules.billing.router import billing_router
from app.modules.purchases.router import suppliers_router, purchase_orders_router
from app.modules.inventory.router import inventory_router
from app.modules.treasury.router import treasury_router
from app.modules.accounting.router import accounting_router
from app.modules.payroll.router import payroll_router
from app.modules.machinery.router import machinery_router
from app.modules.reports.routers import (
    dashboard_router as dashboard_reports_router,
    financial_router as financial_reports_router
)

# Import models for table creation
import app.modules.auth.models
import app.modules.company.models
import app.modules.work_orders.models
import app.modules.budgets.models
import app.modules.billing.models
import app.modules.purchases.models
import app.modules.inventory.models
import app.modules.treasury.models
import app.modules.accounting.models
import app.modules.payroll.models
import app.modules.machinery.models

from app.core.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if settings.ENVIRONMENT == "production" else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Constructora ERP API",
    description="API multi-empresa para constructoras: presupuestos, estimaciones, compras, tesorería, contabilidad, nómina y maquinaria",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

register_exception_handlers(app)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(TenantMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth_router)
app.include_router(work_orders_router)
app.include_router(budgets_router)
app.include_router(billing_router)
app.include_router(suppliers_router)
app.include_router(purchase_orders_router)
app.include_router(inventory_router)
app.include_router(treasury_router)
app.include_router(accounting_router)
app.include_router(payroll_router)
app.include_router(machinery_router)
app.include_router(dashboard_reports_router, prefix="/api/v1")
app.include_router(financial_reports_router, prefix="/api/v1")

# Create database tables (only for development - use migrations in production)
if settings.ENVIRONMENT == "development":
    Base.metadata.create_all(bind=engine)

@app.get("/")
async def read_root():
    return {
        "message": "Constructora ERP API is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}

@app.on_event("startup")
async def startup_event():
    logger.info("Constructora ERP API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")
    logger.info(f"IVA: {settings.IVA_RATE}% | Moneda: {settings.CURRENCY} | Sobregiro: {settings.TREASURY_ALLOW_OVERDRAFT}")

@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Constructora ERP API shutting down...")
