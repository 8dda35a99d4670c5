from fastapi import APIRouter, Depends

from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.auth.schemas import UserOut, UserCompanyOut

auth_router = APIRouter(prefix="/auth", tags=["Auth"])


@auth_router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(AuthDependencies.get_current_user)):
    """
    Usuario autenticado y sus empresas activas.
    No requiere X-Company-ID; el cliente lo usa para elegir la empresa.
    """
    return UserOut(
        id=current_user.id,
        email=current_user.email,
        full_name=current_user.full_name,
        companies=[
            UserCompanyOut(
                id=uc.id,
                company_id=uc.company_id,
                role=uc.role,
                is_active=uc.is_active,
                joined_at=uc.joined_at,
                company_name=uc.company.name if uc.company else None
            )
            for uc in current_user.user_companies if uc.is_active
        ]
    )
