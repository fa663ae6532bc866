"""Configuration for Logfire observability."""

import os
from typing import Literal

from pydantic import BaseModel, Field


def _send_to_logfire_from_env() -> bool | Literal["if-token-present"]:
    value = os.getenv("LOGFIRE_SEND")
    if value is None:
        return "if-token-present"
    return value.lower() == "true"


class ObservabilityConfig(BaseModel):
    """Configuration for Logfire observability."""

    token: str = Field(default_factory=lambda: os.getenv("LOGFIRE_TOKEN", ""))
    project_name: str = "school-library-mcp"
    environment: str = Field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))

    enabled: bool = Field(
        default_factory=lambda: os.getenv("LOGFIRE_ENABLED", "true").lower() == "true"
    )
    console_output: bool = Field(
        default_factory=lambda: os.getenv("LOGFIRE_CONSOLE", "false").lower() == "true"
    )
    # Nothing leaves the machine unless a token is configured
    send_to_logfire: bool | Literal["if-token-present"] = Field(
        default_factory=_send_to_logfire_from_env
    )

    max_attribute_length: int = 1000


class ProductionConfig(ObservabilityConfig):
    """Production-specific configuration."""

    console_output: bool = False
    send_to_logfire: bool = True


class DevelopmentConfig(ObservabilityConfig):
    """Development-specific configuration."""

    console_output: bool = False  # stdout belongs to the stdio transport
    send_to_logfire: bool = False


def get_environment_config() -> ObservabilityConfig:
    """Get configuration based on the ENVIRONMENT variable."""
    env = os.getenv("ENVIRONMENT", "development")

    if env == "production":
        return ProductionConfig()
    if env == "development":
        return DevelopmentConfig()
    return ObservabilityConfig()
