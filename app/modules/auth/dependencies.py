"""
Dependencias de autenticación para FastAPI.

El login vive en el proveedor de identidad externo; aquí sólo se verifica
el token que emite, se mapea el claim ``sub`` al usuario local y se resuelve
la empresa (tenant) activa del request.
"""
from typing import Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session, selectinload
import jwt
import logging

from app.dependencies.dbDependecies import get_db
from app.modules.auth.models import User, UserCompany, UserRole
from app.modules.auth.schemas import AuthContext, UserCompanyOut
from app.common.exceptions import ForbiddenError, ValidationError
from app.core.config import settings

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer()


def decode_token(token: str) -> dict:
    """Verifica firma y expiración del token del proveedor de identidad."""
    return jwt.decode(
        token,
        settings.AUTH_JWT_SECRET,
        algorithms=[settings.AUTH_JWT_ALGORITHM],
        audience=settings.AUTH_JWT_AUDIENCE,
        options={"verify_aud": settings.AUTH_JWT_AUDIENCE is not None},
    )


class AuthDependencies:
    """Dependencias de autenticación reutilizables."""

    @staticmethod
    def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: Session = Depends(get_db)
    ) -> User:
        """
        Obtener usuario actual desde el token.
        No requiere tenant_id.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No se pudieron validar las credenciales",
            headers={"WWW-Authenticate": "Bearer"},
        )

        try:
            payload = decode_token(credentials.credentials)
            auth_id: Optional[str] = payload.get("sub")
            if auth_id is None:
                raise credentials_exception
        except jwt.PyJWTError as e:
            logger.info(f"Token rechazado: {e}")
            raise credentials_exception

        user = db.query(User).options(
            selectinload(User.user_companies).selectinload(UserCompany.company)
        ).filter(User.auth_id == auth_id).first()

        if user is None or not user.is_active:
            raise credentials_exception

        return user

    @staticmethod
    def get_auth_context(
        request: Request,
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: Session = Depends(get_db)
    ) -> AuthContext:
        """
        Obtener contexto de autenticación completo con tenant.
        La empresa viene en el header X-Company-ID; el usuario debe ser
        miembro activo de ella.
        """
        user = AuthDependencies.get_current_user(credentials, db)

        tenant_id = None
        user_role = None

        company_id_raw = getattr(request.state, "tenant_id", None) or request.headers.get("X-Company-ID")
        if company_id_raw:
            try:
                tenant_id = UUID(str(company_id_raw))
            except ValueError:
                raise ValidationError("ID de empresa inválido")

            user_company = next(
                (uc for uc in user.user_companies
                 if uc.company_id == tenant_id and uc.is_active),
                None
            )
            if not user_company:
                logger.warning(f"Usuario {user.id} sin acceso a empresa {tenant_id}")
                raise ForbiddenError("No tienes acceso a esta empresa")
            user_role = user_company.role

        companies = [
            UserCompanyOut(
                id=uc.id,
                company_id=uc.company_id,
                role=uc.role,
                is_active=uc.is_active,
                joined_at=uc.joined_at,
                company_name=uc.company.name if uc.company else None
            )
            for uc in user.user_companies if uc.is_active
        ]

        return AuthContext(
            user_id=user.id,
            tenant_id=tenant_id,
            user_role=user_role,
            companies=companies
        )

    @staticmethod
    def require_role(allowed_roles: list[str]):
        """
        Dependencia para requerir roles específicos. ADMIN siempre pasa.
        """
        def role_checker(auth_context: AuthContext = Depends(AuthDependencies.get_auth_context)):
            if not auth_context.tenant_id:
                raise ValidationError("Se requiere seleccionar una empresa")

            if auth_context.user_role != UserRole.ADMIN.value and auth_context.user_role not in allowed_roles:
                raise ForbiddenError(
                    f"Acceso denegado. Requiere uno de estos roles: {', '.join(allowed_roles)}"
                )

            return auth_context
        return role_checker

    @staticmethod
    def require_any_role():
        """Dependencia que requiere cualquier rol activo en una empresa."""
        return AuthDependencies.require_role([role.value for role in UserRole])

# Instancias de dependencias
get_current_user = AuthDependencies.get_current_user
get_auth_context = AuthDependencies.get_auth_context
require_any_role = AuthDependencies.require_any_role
