from sqlalchemy import Column, String, Boolean, ForeignKey, DateTime, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4
from datetime import datetime, timezone
import enum
from app.database.database import Base
from app.common.mixins import TimestampMixin


class UserRole(str, enum.Enum):
    """Roles por empresa. ADMIN tiene acceso a todo."""
    ADMIN = "ADMIN"
    CONTADOR = "CONTADOR"
    COMPRAS = "COMPRAS"
    OBRAS = "OBRAS"
    ALMACEN = "ALMACEN"
    USUARIO = "USUARIO"


class User(Base, TimestampMixin):
    """
    Usuario local vinculado a la identidad del proveedor externo.

    La autenticación (login, contraseñas, sesiones) vive en el proveedor;
    aquí sólo se guarda el ``auth_id`` (claim ``sub`` del token) y las
    membresías por empresa.
    """
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    auth_id = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False)
    full_name = Column(String(200), nullable=True)
    is_active = Column(Boolean, default=True)

    # Relationships
    user_companies = relationship("UserCompany", back_populates="user", cascade="all, delete-orphan")


class UserCompany(Base, TimestampMixin):
    __tablename__ = "user_companies"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    company_id = Column(Uuid(as_uuid=True), ForeignKey("companies.id"), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.USUARIO.value)
    is_active = Column(Boolean, default=True)
    joined_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    # Relationships
    user = relationship("User", back_populates="user_companies")
    company = relationship("Company", back_populates="user_companies")

    __table_args__ = (
        UniqueConstraint("user_id", "company_id", name="uq_user_company"),
    )
