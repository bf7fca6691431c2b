"""
Settings Management

Pydantic-based settings schema with environment variable support.
Integrates with the service TOML config and provides type-safe access.

@.architecture
Incoming: utils/config.py, Environment variables, config/service.toml, api/dependencies.py --- {Dict from load_toml_config, str from os.getenv, TOML config dict, get_settings calls}
Processing: get_settings(), reload_settings(), Settings.__init__(), field_validator() --- {4 jobs: configuration_loading, environment_variable_merging, schema_validation, caching}
Outgoing: api/dependencies.py, app.py, main.py, security/auth.py --- {Settings Pydantic model with typed config sections}
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from functools import lru_cache

from utils.config import load_config as load_toml_config


# =============================================================================
# Settings Schemas
# =============================================================================

class SecuritySettings(BaseModel):
    """Security configuration."""
    bind_host: str = "127.0.0.1"
    bind_port: int = 8080
    allowed_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://127.0.0.1",
        ]
    )
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = Field(default_factory=lambda: ["*"])
    cors_allow_headers: List[str] = Field(default_factory=lambda: ["*"])

    # Account rules
    username_min_length: int = Field(default=3, ge=1)
    username_max_length: int = Field(default=20, ge=1)
    password_min_length: int = Field(default=8, ge=1)
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # Request limits
    max_json_payload: int = Field(default=1024, gt=0)

    @model_validator(mode="after")
    def validate_username_bounds(self) -> "SecuritySettings":
        """Validate username length bounds."""
        if self.username_min_length > self.username_max_length:
            raise ValueError("username_min_length must not exceed username_max_length")
        return self


class StorageSettings(BaseModel):
    """Embedded store settings."""
    files_db_path: Path = Field(default_factory=lambda: Path("./data/files.db"))
    auth_db_path: Path = Field(default_factory=lambda: Path("./data/auth.db"))
    max_upload_bytes: int = Field(default=1024 * 1024, gt=0)
    pool_size: int = Field(default=8, ge=1)
    timeout: float = Field(default=30.0, gt=0)
    busy_timeout: float = Field(default=5.0, gt=0)


class MonitoringSettings(BaseModel):
    """Monitoring and logging configuration."""
    log_level: str = "INFO"
    log_format: str = "json"  # json|text
    metrics_enabled: bool = True
    log_file: Optional[Path] = None

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        v = v.upper()
        allowed = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v


class Settings(BaseModel):
    """
    Main application settings.

    Loads configuration from:
    1. TOML config file (config/service.toml)
    2. Environment variables
    3. Defaults defined in schemas

    Priority: Environment variables > TOML config > Defaults
    """

    app_name: str = "FileVault Backend"
    app_version: str = "1.0.0"
    environment: str = "development"  # development|production|test

    security: SecuritySettings = Field(default_factory=SecuritySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)

    @property
    def base_url(self) -> str:
        """Service URL built from the bind settings."""
        return f"http://{self.security.bind_host}:{self.security.bind_port}"

    @field_validator('environment')
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        allowed = ['development', 'production', 'test']
        if v not in allowed:
            raise ValueError(f"Environment must be one of {allowed}")
        return v


# =============================================================================
# Settings Loader
# =============================================================================

def _section(toml_config: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = toml_config.get(name, {})
    return dict(section) if isinstance(section, dict) else {}


@lru_cache()
def get_settings() -> Settings:
    """
    Load and return application settings (cached).

    Merges configuration from:
    1. TOML config file (via utils.config)
    2. Environment variables
    3. Default values

    Returns:
        Settings: Complete application settings
    """
    toml_config = load_toml_config()

    # [SERVER] and [AUTH] both land in the security section
    security_settings = _section(toml_config, "SERVER")
    security_settings.update(_section(toml_config, "AUTH"))
    storage_settings = _section(toml_config, "STORAGE")
    monitoring_settings = _section(toml_config, "MONITORING")

    # Override with environment variables if present
    if bind_host := os.getenv("SECURITY_BIND_HOST"):
        security_settings["bind_host"] = bind_host

    if bind_port := os.getenv("SECURITY_BIND_PORT"):
        security_settings["bind_port"] = bind_port

    if files_db := os.getenv("FILEVAULT_FILES_DB"):
        storage_settings["files_db_path"] = files_db

    if auth_db := os.getenv("FILEVAULT_AUTH_DB"):
        storage_settings["auth_db_path"] = auth_db

    if log_level := os.getenv("MONITORING_LOG_LEVEL"):
        monitoring_settings["log_level"] = log_level

    if log_file := os.getenv("FILEVAULT_LOG_FILE"):
        monitoring_settings["log_file"] = log_file

    return Settings(
        environment=os.getenv("FILEVAULT_ENVIRONMENT", "development"),
        security=security_settings,
        storage=storage_settings,
        monitoring=monitoring_settings,
    )


def reload_settings() -> Settings:
    """
    Reload settings (clears cache).

    Use this when settings need to be refreshed (e.g., after config file changes).

    Returns:
        Settings: Reloaded application settings
    """
    get_settings.cache_clear()
    return get_settings()


# =============================================================================
# Environment-specific Helpers
# =============================================================================

def is_development() -> bool:
    """Check if running in development environment."""
    return get_settings().environment == "development"


def is_production() -> bool:
    """Check if running in production environment."""
    return get_settings().environment == "production"


def is_test() -> bool:
    """Check if running in test environment."""
    return get_settings().environment == "test"
