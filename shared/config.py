"""
Shared configuration management for Schooly Access Layer.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="SCHOOLY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")
    json_logs: bool = Field(default=True)

    # External services
    redis_url: str = Field(default="redis://localhost:6379/0")
    postgres_dsn: str = Field(default="postgres://localhost:5432/schooly")

    # Internal services
    auth_service_url: str = Field(default="http://localhost:8010")
    entitlements_service_url: str = Field(default="http://localhost:8011")

    # Sessions
    session_secret: str = Field(default="change-me")
    session_algorithms: List[str] = Field(default_factory=lambda: ["HS256"])

    # Plan catalog cache
    plan_cache_enabled: bool = Field(default=True)
    plan_cache_ttl_seconds: int = Field(default=60, ge=1, le=3600)

    # Store retries
    data_retry_attempts: int = Field(default=3, ge=1, le=10)
    data_retry_base_delay: float = Field(default=0.2, ge=0.0)

    # Entitlements
    strict_feature_names: Optional[bool] = Field(default=None)
    default_trial_plan: str = Field(default="STARTER")
    approaching_limit_threshold: float = Field(default=80.0, gt=0, le=100)

    @property
    def is_production(self) -> bool:
        return self.env.lower() in ("prod", "production")

    @property
    def strict_features(self) -> bool:
        """Unknown feature names raise outside production unless overridden."""
        if self.strict_feature_names is not None:
            return self.strict_feature_names
        return not self.is_production


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
