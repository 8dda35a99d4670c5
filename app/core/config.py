from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'erp_user'
    POSTGRES_PASSWORD: str = 'erp_pass'
    POSTGRES_DB: str = 'constructora_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432

    # Identity provider (tokens emitidos por el proveedor externo)
    AUTH_JWT_SECRET: str = 'your-super-secret-key-here-change-in-production-2024'
    AUTH_JWT_ALGORITHM: str = 'HS256'
    AUTH_JWT_AUDIENCE: Optional[str] = None

    # Reglas de negocio
    IVA_RATE: int = 16  # Porcentaje de IVA aplicado a órdenes de compra
    CURRENCY: str = 'MXN'
    TREASURY_ALLOW_OVERDRAFT: bool = False
    MACHINERY_YARD_LOCATION: str = 'Patio Central'  # Ubicación de la maquinaria al regresar de obra

    # Pagination
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("TREASURY_ALLOW_OVERDRAFT", mode="before")
    @classmethod
    def parse_overdraft(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

settings = Settings()
