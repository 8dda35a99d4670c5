"""
Entorno de Alembic: usa la misma URL y los mismos modelos que la API.
"""
from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

from app.core.config import settings
from app.database.database import Base

# Modelos registrados en Base.metadata para autogenerate
import app.modules.auth.models  # noqa: F401
import app.modules.company.models  # noqa: F401
import app.modules.work_orders.models  # noqa: F401
import app.modules.budgets.models  # noqa: F401
import app.modules.billing.models  # noqa: F401
import app.modules.purchases.models  # noqa: F401
import app.modules.inventory.models  # noqa: F401
import app.modules.treasury.models  # noqa: F401
import app.modules.accounting.models  # noqa: F401
import app.modules.payroll.models  # noqa: F401
import app.modules.machinery.models  # noqa: F401

config = context.config
if not config.get_main_option("sqlalchemy.url"):
    config.set_main_option("sqlalchemy.url", settings.database_url)

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


def run_migrations_offline() -> None:
    context.configure(
        url=config.get_main_option("sqlalchemy.url"),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
