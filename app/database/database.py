from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_size=10,
    max_overflow=20,
    echo=settings.DEBUG and settings.ENVIRONMENT == "development"
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Genera una sesión de base de datos por request."""
    db = SessionLocal()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Database error: {e}")
        db.rollback()
        raise
    finally:
        db.close()


# Helper for tenant-scoped lookups
def get_tenant_object(session, model, obj_id, tenant_id, label: str, for_update: bool = False):
    """
    Carga un registro por id verificando que pertenezca a la empresa.

    - No existe → NotFoundError
    - Existe en otra empresa → ForbiddenError
    - ``for_update`` bloquea la fila (SELECT ... FOR UPDATE) hasta el commit
    """
    from app.common.exceptions import NotFoundError, ForbiddenError

    query = session.query(model).filter(model.id == obj_id)
    if for_update:
        query = query.with_for_update()
    obj = query.first()

    if obj is None:
        raise NotFoundError(f"{label} no encontrado", {"id": str(obj_id)})
    if obj.tenant_id != tenant_id:
        logger.warning(f"Acceso cruzado a {model.__tablename__} {obj_id} desde empresa {tenant_id}")
        raise ForbiddenError(f"No tienes acceso a este recurso: {label}", {"id": str(obj_id)})
    return obj
