"""
Configuration Settings.

This module defines the runtime configuration using Pydantic's BaseSettings.
It automatically loads all configuration from environment variables and .env file
without explicit dotenv loading.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# =====================================================================
# Grouped Configuration Models
# =====================================================================


class ToolServiceConfig(BaseModel):
    """Backend tool service (MCP streamable HTTP endpoint) configuration."""

    url: str = Field(
        default="http://localhost:8787/mcp",
        alias="TOOL_SERVICE_URL",
        description="Streamable HTTP endpoint of the backend tool service",
    )
    auth_token: Optional[str] = Field(
        default=None,
        alias="TOOL_SERVICE_AUTH_TOKEN",
        description="Optional Authorization header value sent to the tool service",
    )
    timeout_seconds: float = Field(
        default=10.0,
        alias="TOOL_SERVICE_TIMEOUT_SECONDS",
        description="Per-request timeout in seconds for capability calls",
        ge=0.1,
        le=120.0,
    )

    model_config = {"populate_by_name": True}


class SandboxConfig(BaseModel):
    """Isolated execution context configuration."""

    timeout_seconds: float = Field(
        default=30.0,
        alias="EXECUTION_TIMEOUT_SECONDS",
        description="Wall-clock budget for one program execution",
        gt=0,
        le=600.0,
    )
    memory_limit_mb: Optional[int] = Field(
        default=512,
        alias="SANDBOX_MEMORY_LIMIT_MB",
        description="Address space limit for the sandbox process (POSIX only, None disables)",
        ge=64,
    )
    max_result_bytes: int = Field(
        default=1_000_000,
        alias="SANDBOX_MAX_RESULT_BYTES",
        description="Maximum size of the JSON-serialized program result",
        ge=1024,
    )

    model_config = {"populate_by_name": True}


class CodegenConfig(BaseModel):
    """Code generation model configuration."""

    model: str = Field(
        default="openai:gpt-4.1",
        alias="CODEGEN_MODEL",
        description="pydantic-ai model identifier used to generate programs",
    )

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Runtime settings model.

    All properties are automatically bound from environment variables and .env file.
    Pydantic's BaseSettings handles dotenv loading automatically via model_config.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=True,
        populate_by_name=True,
    )

    # =====================================================================
    # Server Configuration
    # =====================================================================
    server_host: str = Field(
        default="0.0.0.0",
        description="Codemode server host address to bind to",
        alias="CODEMODE_SERVER_HOST",
    )
    server_port: int = Field(
        default=8000,
        description="Codemode server port number",
        alias="CODEMODE_SERVER_PORT",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
        alias="CODEMODE_LOG_LEVEL",
    )

    # =====================================================================
    # Catalog Configuration
    # =====================================================================
    catalog_path: Optional[str] = Field(
        default=None,
        description="JSON file with capability declarations; the built-in catalog is used when unset",
        alias="CATALOG_PATH",
    )

    # =====================================================================
    # Flat fields backing the grouped configurations
    # =====================================================================
    tool_service_url: str = Field(default="http://localhost:8787/mcp", alias="TOOL_SERVICE_URL")
    tool_service_auth_token: Optional[str] = Field(default=None, alias="TOOL_SERVICE_AUTH_TOKEN")
    tool_service_timeout_seconds: float = Field(default=10.0, alias="TOOL_SERVICE_TIMEOUT_SECONDS")
    execution_timeout_seconds: float = Field(default=30.0, alias="EXECUTION_TIMEOUT_SECONDS")
    sandbox_memory_limit_mb: Optional[int] = Field(default=512, alias="SANDBOX_MEMORY_LIMIT_MB")
    sandbox_max_result_bytes: int = Field(default=1_000_000, alias="SANDBOX_MAX_RESULT_BYTES")
    codegen_model: str = Field(default="openai:gpt-4.1", alias="CODEGEN_MODEL")

    # =====================================================================
    # Computed Properties (Grouped Configurations)
    # =====================================================================

    @property
    def tool_service(self) -> ToolServiceConfig:
        """Get tool service configuration from environment variables."""
        return ToolServiceConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def sandbox(self) -> SandboxConfig:
        """Get sandbox configuration from environment variables."""
        return SandboxConfig.model_validate(self.model_dump(by_alias=True))

    @property
    def codegen(self) -> CodegenConfig:
        """Get code generation configuration from environment variables."""
        return CodegenConfig.model_validate(self.model_dump(by_alias=True))


settings = Settings()
