from typing import Annotated
from fastapi import Depends
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.schemas import AuthContext


# Contexto de empresa con cualquier rol activo
TenantContext = Annotated[AuthContext, Depends(AuthDependencies.require_any_role())]
