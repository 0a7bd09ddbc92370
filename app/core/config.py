from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Where uploaded objects live on disk
    DATASOURCE_DIRECTORY: str = "./uploads"

    # Short urls are served under this route, e.g. /go/abc123
    URLS_ROUTE: str = "/go"
    URLS_LENGTH: int = 6
    CORE_HTTPS: bool = False

    ALEMBIC_CONFIG: str = "alembic.ini"
    # None keeps startup waiting on the database for as long as it takes
    MIGRATION_TIMEOUT_SECONDS: Optional[float] = None

    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Create a single instance of the settings to use everywhere
settings = Settings()
