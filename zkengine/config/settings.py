"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"


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


class ZKSettings(BaseSettings):
    """Proving engine configuration."""

    model_config = SettingsConfigDict(env_prefix="ZK_")

    # Setup artifact files
    srs_path: Path = DEFAULT_ARTIFACTS_DIR / "sha256.srs.json"
    proving_key_path: Path = DEFAULT_ARTIFACTS_DIR / "sha256.pk.json"
    verifying_key_path: Path = DEFAULT_ARTIFACTS_DIR / "sha256.vk.json"

    # Reference string generation (only used when auto_setup is enabled)
    srs_k: int = Field(default=17, ge=4, le=28)
    srs_seed: str | None = Field(default=None, description="Hex seed for a reproducible reference string")
    auto_setup: bool = False
    persist_artifacts: bool = True

    # Circuit and protocol parameters
    # 65535 blocks, the most a proof header can describe
    max_input_size: int = Field(default=8192, ge=0, le=4_194_231, description="Largest preimage in bytes")
    repetitions: int = Field(default=219, ge=1, le=4096)

    # Host-side limits
    prover_timeout_seconds: int = 300
    estimated_proof_time_ms: int = 1000
    health_check_input: str = "health_check"

    @field_validator("srs_seed")
    @classmethod
    def seed_must_be_hex(cls, v: str | None) -> str | None:
        """Reject seeds that are not hex encoded."""
        if v is None or v == "":
            return None
        bytes.fromhex(v)
        return v.lower()


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class ServicePorts(BaseSettings):
    """Service port configuration."""

    prover: int = Field(default=8004, alias="PROVER_PORT")


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

    # Project paths
    project_root: Path = Field(default_factory=lambda: PROJECT_ROOT)

    # Service ports
    ports: ServicePorts = Field(default_factory=ServicePorts)

    # Proving engine
    zk: ZKSettings = Field(default_factory=ZKSettings)

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
