from pydantic import BaseModel
from typing import List, Optional
from uuid import UUID
from datetime import datetime


class UserCompanyOut(BaseModel):
    id: UUID
    company_id: UUID
    role: str
    is_active: bool
    joined_at: Optional[datetime] = None
    company_name: Optional[str] = None

    class Config:
        from_attributes = True


# Auth context schemas
class AuthContext(BaseModel):
    """
    Contexto resuelto una vez por request y pasado por valor a los servicios.
    """
    user_id: UUID
    tenant_id: Optional[UUID] = None
    user_role: Optional[str] = None
    companies: List[UserCompanyOut] = []


class UserOut(BaseModel):
    id: UUID
    email: str
    full_name: Optional[str] = None
    companies: List[UserCompanyOut] = []
