"""
Fixtures compartidas por los tests de todos los módulos.

Se usa SQLite en memoria (una sola conexión compartida con StaticPool) y se
sustituye la dependencia ``get_db`` de la API para que los tests y los
endpoints vean la misma sesión.
"""
import os

os.environ["ENVIRONMENT"] = "test"

from decimal import Decimal
from uuid import uuid4

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.database.database import Base, get_db
from app.main import app
from app.modules.auth.models import User, UserCompany, UserRole
from app.modules.company.models import Company
from app.modules.work_orders.models import WorkOrder, WorkOrderStatus


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    """Sesión con esquema recién creado para cada test"""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def sample_company(db_session):
    company = Company(name="Constructora Norte SA de CV", rfc="CNO010101AB1")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture
def other_company(db_session):
    company = Company(name="Edificaciones del Sur SA de CV", rfc="ESU020202CD2")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture
def make_user(db_session):
    """Crea un usuario con membresía en una empresa y el rol indicado"""
    def _make_user(company, role=UserRole.ADMIN.value, email=None):
        user = User(
            auth_id=f"idp|{uuid4().hex}",
            email=email or f"{uuid4().hex[:8]}@constructora.mx",
            full_name="Usuario de Prueba",
        )
        db_session.add(user)
        db_session.flush()
        db_session.add(UserCompany(user_id=user.id, company_id=company.id, role=role))
        db_session.commit()
        return user
    return _make_user


@pytest.fixture
def sample_user(make_user, sample_company):
    return make_user(sample_company, UserRole.ADMIN.value, email="admin@constructora.mx")


@pytest.fixture
def sample_work_order(db_session, sample_company):
    work_order = WorkOrder(
        tenant_id=sample_company.id,
        code="OBR-2025-001",
        name="Nave Industrial Querétaro",
        client_name="Desarrollos QRO SA",
        status=WorkOrderStatus.IN_PROGRESS,
        contract_amount=Decimal("1000000.00"),
        advance_pct=Decimal("10"),
        retention_pct=Decimal("5"),
    )
    db_session.add(work_order)
    db_session.commit()
    return work_order


def make_token(user: User) -> str:
    return jwt.encode({"sub": user.auth_id}, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)


@pytest.fixture
def auth_headers():
    def _auth_headers(user, company):
        return {
            "Authorization": f"Bearer {make_token(user)}",
            "X-Company-ID": str(company.id),
        }
    return _auth_headers


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
