from app.database.database import Base
from sqlalchemy import Column, String, Boolean, DateTime, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import uuid

class Company(Base):
    """Empresa (tenant). Todas las operaciones de negocio quedan acotadas a una empresa."""
    __tablename__ = "companies"

    id = Column(Uuid(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    name = Column(String(200), unique=True, index=True, nullable=False)
    rfc = Column(String(13), unique=True, nullable=True)
    social_reason = Column(String, nullable=True)
    address = Column(String, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user_companies = relationship("UserCompany", back_populates="company")
