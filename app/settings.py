from enum import Enum

from pydantic import computed_field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from app.utils.settings_utils import DockerSecretsSettingsSource


class GeneralConfig(BaseSettings):
    RUN_MIGRATIONS_ON_STARTUP: bool = True
    SENTRY_DSN: str = ""
    SENTRY_ENVIRONMENT: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.0


class LogFormat(str, Enum):
    JSON = "json"
    CONSOLE = "console"


class LoggingConfig(BaseSettings):
    LOG_FORMAT: LogFormat = LogFormat.JSON
    LOG_LEVEL: str = "INFO"


class DatabaseConfig(BaseSettings):
    DATABASE_USER: str = "admin"
    DATABASE_PASSWORD: str = "secret"
    DATABASE_HOST: str = "db"
    DATABASE_PORT: int = 5432
    DATABASE_NAME: str = "postgres"

    @computed_field
    @property
    def DATABASE_URL(self) -> str:
        return f"postgresql+asyncpg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"


class ExecutionApiConfig(BaseSettings):
    EXECUTION_API_URL: str = ""  # e.g. https://n8n.example.com
    EXECUTION_API_KEY: str = ""
    EXECUTION_API_TIMEOUT_SECONDS: float = 30.0

    @field_validator("EXECUTION_API_URL")
    @classmethod
    def strip_trailing_slashes(cls, value: str) -> str:
        return value.rstrip("/")


class TableApiConfig(BaseSettings):
    TABLE_API_URL: str = "https://tables-api.softr.io/api/v1"
    TABLE_API_KEY: str = ""
    TABLE_DATABASE_ID: str = ""
    TABLE_API_TIMEOUT_SECONDS: float = 30.0

    # Table name -> field names searched for an order number
    TABLE_SEARCH_FIELDS: dict[str, list[str]] = {
        "Kleurstalen": ["orderNumber"],
        "Ne DistriService": ["orderNumber"],
        "Webattelier - lines": ["OrderID"],
        "Webattelier - orders": ["ID"],
    }
    TABLE_SEARCH_LIMIT: int = 10


class SyncConfig(BaseSettings):
    EXECUTION_SYNC_PAGE_SIZE: int = 50
    EXECUTION_SYNC_COOLDOWN_SECONDS: float = 60.0
    WORKFLOWS_CACHE_TTL_SECONDS: float = 300.0

    ORDER_NUMBER_KEY: str = "orderNumber"
    """Key looked up in an execution's custom data / node output to index
    executions by order number."""


class SchedulerConfig(BaseSettings):
    SCHEDULER_ENABLED: bool = True
    EXECUTION_SYNC_INTERVAL_SECONDS: int = 60


class Settings(
    GeneralConfig,
    LoggingConfig,
    DatabaseConfig,
    ExecutionApiConfig,
    TableApiConfig,
    SyncConfig,
    SchedulerConfig,
    BaseSettings,
):
    model_config = SettingsConfigDict(
        env_file=(".env", ".env.prod", ".env.test"),
        extra="allow",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        Define the priority order for settings sources.

        Priority (highest to lowest):
        1. Docker secrets from files (reads *_FILE env vars)
        2. Environment variables
        3. .env files
        4. Default values
        """
        return (
            init_settings,
            DockerSecretsSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )


settings = Settings()
