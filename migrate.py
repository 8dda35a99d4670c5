#!/usr/bin/env python3
"""
Migraciones de la base de datos de Constructora ERP con Alembic.

La URL se arma con las variables POSTGRES_* de app.core.config; la
revisión inicial se genera con ``python migrate.py create "esquema inicial"``.
"""
import sys
from pathlib import Path

# Agregar el directorio raíz al path
root_dir = Path(__file__).parent
sys.path.insert(0, str(root_dir))

from alembic.config import Config
from alembic import command
from app.core.config import settings


def get_alembic_config() -> Config:
    alembic_cfg = Config(str(root_dir / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(root_dir / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    return alembic_cfg


def create_migration(message: str):
    """Autogenerar revisión comparando los modelos con la base de datos."""
    command.revision(get_alembic_config(), autogenerate=True, message=message)
    print(f"Migración creada: {message}")


def upgrade(revision: str = "head"):
    command.upgrade(get_alembic_config(), revision)
    print(f"Base de datos en revisión {revision}")


def downgrade(revision: str = "-1"):
    command.downgrade(get_alembic_config(), revision)
    print(f"Rollback a {revision} ejecutado")


def stamp(revision: str = "head"):
    """Marcar la revisión sin ejecutar DDL (bases creadas con create_all)."""
    command.stamp(get_alembic_config(), revision)
    print(f"Base de datos marcada en {revision}")


def show_sql(revision: str = "head"):
    """Imprimir el SQL de upgrade sin conectarse (modo offline)."""
    command.upgrade(get_alembic_config(), revision, sql=True)


def check():
    """Falla si los modelos tienen cambios sin migración."""
    command.check(get_alembic_config())


def show_history():
    command.history(get_alembic_config())


def show_current():
    command.current(get_alembic_config())


COMMANDS = {
    "upgrade": upgrade,
    "downgrade": downgrade,
    "stamp": stamp,
    "sql": show_sql,
    "check": check,
    "history": show_history,
    "current": show_current,
}

USAGE = """Uso:
  python migrate.py create 'mensaje'   # Autogenerar migración
  python migrate.py upgrade [rev]      # Ejecutar migraciones (default: head)
  python migrate.py downgrade [rev]    # Rollback (default: -1)
  python migrate.py stamp [rev]        # Marcar revisión sin ejecutar
  python migrate.py sql [rev]          # Ver SQL sin ejecutar
  python migrate.py check              # Verificar modelos vs. migraciones
  python migrate.py history            # Ver historial
  python migrate.py current            # Ver revisión actual"""


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    action, args = sys.argv[1], sys.argv[2:]

    if action == "create":
        if not args:
            print("Error: Se requiere un mensaje para la migración")
            sys.exit(1)
        create_migration(args[0])
    elif action in COMMANDS:
        COMMANDS[action](*args[:1])
    else:
        print(f"Acción desconocida: {action}")
        print(USAGE)
        sys.exit(1)
