"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EngineMode(str, Enum):
    """Proving engine implementation."""

    BARRETENBERG = "barretenberg"
    MOCK = "mock"


class VerifierSettings(BaseSettings):
    """Attestation signer and request handling configuration."""

    model_config = SettingsConfigDict(env_prefix="VERIFIER_")

    # base58 string or JSON byte array; empty means ephemeral keypair
    private_key: SecretStr = SecretStr("")
    request_timeout_seconds: float = 60.0
    max_proof_hex_length: int = 200_000


class EngineSettings(BaseSettings):
    """Barretenberg engine configuration."""

    model_config = SettingsConfigDict(env_prefix="ENGINE_")

    mode: EngineMode = EngineMode.BARRETENBERG
    bb_path: str = "bb"
    scheme: str = "ultra_honk"
    threads: int = 1
    command_timeout_seconds: float = 120.0
    work_dir: Path | None = None


class CircuitSettings(BaseSettings):
    """Compiled circuit artifact configuration."""

    model_config = SettingsConfigDict(env_prefix="CIRCUITS_")

    dir: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent.parent / "circuits",
    )
    preload: bool = True


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000"
    allow_credentials: bool = False

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class ServicePorts(BaseSettings):
    """Service port configuration."""

    verifier: int = Field(default=3001, alias="VERIFIER_PORT")


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    # Service ports
    ports: ServicePorts = Field(default_factory=ServicePorts)

    # Verification core
    verifier: VerifierSettings = Field(default_factory=VerifierSettings)
    engine: EngineSettings = Field(default_factory=EngineSettings)
    circuits: CircuitSettings = Field(default_factory=CircuitSettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
