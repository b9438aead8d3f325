"""Pydantic settings models for Launchpad Monitor configuration."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Tuple, Type
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads values from a YAML file.

    The YAML file path is determined by the CONFIG_PATH environment variable.
    """

    def get_field_value(
        self, field: Any, field_name: str
    ) -> Tuple[Any, str, bool]:
        """Get field value from YAML config."""
        yaml_config = self._load_yaml_config()
        field_value = yaml_config.get(field_name)
        return field_value, field_name, False

    def _load_yaml_config(self) -> Dict[str, Any]:
        """Load YAML configuration file."""
        config_path = os.environ.get("CONFIG_PATH")
        if not config_path:
            return {}

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
                return data if isinstance(data, dict) else {}
        except (FileNotFoundError, yaml.YAMLError, PermissionError):
            # Errors will be handled by loader.py
            return {}

    def __call__(self) -> Dict[str, Any]:
        """Return the YAML config values."""
        return self._load_yaml_config()


class MonitorSettings(BaseSettings):
    """Launchpad Monitor configuration settings.

    Configuration is loaded in the following precedence (highest to lowest):
    1. Environment variables (LPMON_ prefix)
    2. Secret files (LPMON_<FIELD>_FILE, passed in by load_config)
    3. YAML configuration file (via CONFIG_PATH)
    4. Default values
    """

    model_config = SettingsConfigDict(
        env_prefix="LPMON_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # GroundControl (snapshot source)
    groundcontrol_url: str = Field(
        ...,
        description="GroundControl launchpads endpoint, including the api_key query parameter",
    )
    scope_email: str = Field(
        default="",
        description="Only Launchpads whose record mentions this account are monitored",
    )

    # Workspace ONE (remediation gateway)
    ws1_env_url: str = Field(
        ...,
        description="Workspace ONE UEM API base URL (e.g. https://as1234.awmdm.com)",
    )
    ws1_token_url: str = Field(
        default="https://na.uemauth.workspaceone.com/connect/token",
        description="Workspace ONE OAuth token endpoint",
    )
    ws1_client_id: str = Field(
        ...,
        description="Workspace ONE OAuth client ID",
    )
    ws1_client_secret: str = Field(
        default="",
        description="Workspace ONE OAuth client secret",
    )
    token_lifetime_seconds: int = Field(
        default=3600,
        description="Seconds a cached access token is reused before refreshing",
        gt=0,
    )

    # Filesystem layout
    base_dir: str = Field(
        default="./lpmonitor",
        description="Directory holding debounce state, cycle logs and the status file",
    )
    serial_csv_path: Optional[str] = Field(
        default=None,
        description="Name to serial CSV (defaults to <base_dir>/launchpads.csv)",
    )
    token_cache_path: Optional[str] = Field(
        default=None,
        description="Token cache file (defaults to <base_dir>/ws1_token_cache.json)",
    )

    # Network
    request_timeout: float = Field(
        default=15.0,
        description="Timeout in seconds for every HTTP request",
        gt=0,
    )
    connectivity_check_url: str = Field(
        default="https://www.google.com",
        description="URL probed before each cycle; empty string disables the check",
    )

    # Debounce and remediation policy
    occurrences_before_action: int = Field(
        default=2,
        description="Consecutive unhealthy cycles required before a soft reset",
        ge=1,
    )
    strict_serial_required: bool = Field(
        default=False,
        description="Treat a due remediation without a serial mapping as a cycle error",
    )
    remediation_attempts: int = Field(
        default=1,
        description="Attempts for the bulk reset call on transport errors (1 = no retry)",
        ge=1,
        le=5,
    )

    # Reporting
    alert_command: Optional[str] = Field(
        default=None,
        description="Command run when a cycle raises alerts (e.g. afplay on macOS)",
    )
    log_retention_days: int = Field(
        default=30,
        description="Days to keep per-cycle log files (0 = keep forever)",
        ge=0,
    )
    timezone: str = Field(
        default="UTC",
        description="Timezone for cycle log names and reboot log timestamps",
    )

    # Scheduling
    interval_seconds: int = Field(
        default=60,
        description="Period between cycles in scheduled mode",
        gt=0,
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format: json (production) or text (development)",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to set precedence.

        Order (first = highest priority):
        1. init_settings (constructor arguments)
        2. env_settings (environment variables with LPMON_ prefix)
        3. dotenv_settings (.env file)
        4. yaml_settings (CONFIG_PATH YAML file)
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized == "WARN":
            normalized = "WARNING"
        if normalized not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: DEBUG, INFO, WARNING, ERROR"
            )
        return normalized

    @field_validator("groundcontrol_url", "ws1_env_url", "ws1_token_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("ws1_client_id")
    @classmethod
    def validate_client_id(cls, v: str) -> str:
        """Validate client ID is not empty."""
        if not v or not v.strip():
            raise ValueError("Client ID cannot be empty")
        return v.strip()

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Reject names the zoneinfo database does not know."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone '{v}'") from e
        return v

    @field_validator("alert_command")
    @classmethod
    def blank_command_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def base_path(self) -> Path:
        return Path(self.base_dir)

    @property
    def state_dir(self) -> Path:
        """Directory of per-device debounce records."""
        return self.base_path / ".alert_state"

    @property
    def logs_dir(self) -> Path:
        return self.base_path / "logs"

    @property
    def status_path(self) -> Path:
        return self.base_path / "status.txt"

    @property
    def reboot_log_path(self) -> Path:
        return self.base_path / "reboot_log.txt"

    @property
    def serial_csv(self) -> Path:
        if self.serial_csv_path:
            return Path(self.serial_csv_path)
        return self.base_path / "launchpads.csv"

    @property
    def token_cache(self) -> Path:
        if self.token_cache_path:
            return Path(self.token_cache_path)
        return self.base_path / "ws1_token_cache.json"
