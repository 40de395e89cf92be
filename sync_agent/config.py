# sync_agent/config.py
import math
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True)

    # Controller
    CONTROLLER_URL: str
    # Expected SPIFFE id of the controller; checked by whoever provisions the certs
    CONTROLLER_SPIFFE_ID: Optional[str] = None

    # Identity reported to the controller
    SERVICE_PORT: int = Field(gt=0, lt=65536)
    MY_NAMESPACE: str
    SERVICE_NAME: Optional[str] = None

    # Timing
    HEARTBEAT_INTERVAL_MINUTES: float = Field(default=1, gt=0, le=7 * 24 * 60)
    HEARTBEAT_RETRY_SECONDS: float = Field(default=5, gt=0, le=3600)
    MAX_REGISTRATION_ATTEMPTS: int = Field(default=5, ge=1)
    REQUEST_TIMEOUT_SECONDS: float = Field(default=10, gt=0)

    # mTLS material, provisioned outside the agent
    TLS_CERT_FILE: Optional[str] = None
    TLS_KEY_FILE: Optional[str] = None
    TLS_CA_FILE: Optional[str] = None

    # Payload variants expected by the controller deployment
    INCLUDE_SERVICE_NAME: bool = True
    INCLUDE_RULES_VERSION: bool = True
    HONOR_INTERVAL_HINT: bool = True

    # Local status API
    AGENT_API_HOST: str = "0.0.0.0"
    AGENT_API_PORT: int = Field(default=9070, gt=0, lt=65536)

    LOG_LEVEL: str = "INFO"

    @field_validator("REQUEST_TIMEOUT_SECONDS", "HEARTBEAT_INTERVAL_MINUTES", "HEARTBEAT_RETRY_SECONDS")
    @classmethod
    def _finite(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("must be finite")
        return value

    @field_validator("LOG_LEVEL")
    @classmethod
    def _log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            raise ValueError(f"unsupported log level {value}")
        return value

    @property
    def heartbeat_interval_seconds(self) -> float:
        return self.HEARTBEAT_INTERVAL_MINUTES * 60


def get_settings(**overrides) -> Settings:
    """Load settings from the environment; keyword overrides win"""
    return Settings(**overrides)
