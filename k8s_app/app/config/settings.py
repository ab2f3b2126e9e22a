"""Settings for the service."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongo_uri: str = Field(..., min_length=1, validation_alias="MONGO_URI")

    host: str = Field("0.0.0.0", validation_alias="HOST")
    port: int = Field(3000, ge=1, le=65535, validation_alias="PORT")

    database_server_selection_timeout_ms: int = Field(
        5000, gt=0, validation_alias="DATABASE_SERVER_SELECTION_TIMEOUT_MS"
    )
    database_socket_timeout_ms: int = Field(45000, gt=0, validation_alias="DATABASE_SOCKET_TIMEOUT_MS")
    database_backend: str = Field("mongo", validation_alias="DATABASE_BACKEND")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")
    log_json: bool = Field(False, validation_alias="LOG_JSON")
