"""
Tests para autenticación y contexto de empresa

El token lo emite el proveedor de identidad; aquí se valida firma, usuario
local, membresía en la empresa del header y rol.
"""

import jwt
import pytest
from datetime import datetime, timedelta, timezone

from app.core.config import settings
from app.modules.auth.models import UserCompany, UserRole


def _headers(token, company=None):
    headers = {"Authorization": f"Bearer {token}"}
    if company is not None:
        headers["X-Company-ID"] = str(company.id)
    return headers


class TestAuthentication:

    def test_me_lists_active_companies(self, client, db_session, sample_user, sample_company, other_company, auth_headers):
        db_session.add(UserCompany(
            user_id=sample_user.id, company_id=other_company.id, role=UserRole.CONTADOR.value, is_active=False
        ))
        db_session.commit()

        headers = auth_headers(sample_user, sample_company)
        headers.pop("X-Company-ID")
        response = client.get("/auth/me", headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["email"] == "admin@constructora.mx"
        assert [c["company_name"] for c in body["companies"]] == [sample_company.name]

    def test_invalid_signature(self, client, sample_user, sample_company):
        token = jwt.encode({"sub": sample_user.auth_id}, "otro-secreto-de-al-menos-32-bytes!!", algorithm="HS256")
        response = client.get("/obras/", headers=_headers(token, sample_company))

        assert response.status_code == 401

    def test_expired_token(self, client, sample_user, sample_company):
        token = jwt.encode(
            {"sub": sample_user.auth_id, "exp": datetime.now(timezone.utc) - timedelta(minutes=5)},
            settings.AUTH_JWT_SECRET,
            algorithm=settings.AUTH_JWT_ALGORITHM
        )
        response = client.get("/obras/", headers=_headers(token, sample_company))

        assert response.status_code == 401

    def test_unknown_subject(self, client, sample_company):
        token = jwt.encode({"sub": "idp|desconocido"}, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)
        response = client.get("/obras/", headers=_headers(token, sample_company))

        assert response.status_code == 401

    def test_inactive_user(self, client, db_session, sample_user, sample_company, auth_headers):
        sample_user.is_active = False
        db_session.commit()

        response = client.get("/obras/", headers=auth_headers(sample_user, sample_company))
        assert response.status_code == 401


class TestCompanyContext:

    def test_non_member_is_forbidden(self, client, sample_user, other_company, auth_headers):
        response = client.get("/obras/", headers=auth_headers(sample_user, other_company))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "forbidden"

    def test_invalid_company_header(self, client, sample_user, sample_company, auth_headers):
        headers = auth_headers(sample_user, sample_company)
        headers["X-Company-ID"] = "no-es-uuid"
        response = client.get("/obras/", headers=headers)

        assert response.status_code == 400

    @pytest.mark.parametrize("role,expected", [
        (UserRole.OBRAS.value, 201),
        (UserRole.COMPRAS.value, 403),
        (UserRole.USUARIO.value, 403),
    ])
    def test_role_restrictions(self, client, make_user, sample_company, auth_headers, role, expected):
        user = make_user(sample_company, role)
        response = client.post("/obras/", json={"code": f"OBR-{role}", "name": "Obra"}, headers=auth_headers(user, sample_company))

        assert response.status_code == expected

    def test_any_role_can_read(self, client, make_user, sample_company, sample_work_order, auth_headers):
        user = make_user(sample_company, UserRole.USUARIO.value)
        response = client.get(f"/obras/{sample_work_order.id}", headers=auth_headers(user, sample_company))

        assert response.status_code == 200
