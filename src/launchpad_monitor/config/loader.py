"""Build MonitorSettings from the environment, a YAML file and secret files."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog
import yaml
from pydantic import ValidationError

from launchpad_monitor.config.settings import MonitorSettings

ENV_PREFIX = "LPMON_"
SECRET_SUFFIX = "_FILE"

logger = structlog.get_logger(__name__)


class ConfigurationError(Exception):
    """Settings could not be read or did not validate.

    Attributes:
        problems: One line per offending setting, when validation failed.
    """

    def __init__(self, message: str, problems: Optional[List[str]] = None) -> None:
        self.problems = problems or []
        if self.problems:
            message = "\n  - ".join([message, *self.problems])
        super().__init__(message)


def read_secret_files(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Collect settings supplied as LPMON_<FIELD>_FILE paths.

    Only fields MonitorSettings knows are read. A field already set directly
    in the environment keeps that value and its file is ignored.

    Returns:
        Field name to file contents, stripped of surrounding whitespace.

    Raises:
        ConfigurationError: A named file exists but cannot be read.
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, str] = {}

    for key, location in environ.items():
        if not (key.startswith(ENV_PREFIX) and key.endswith(SECRET_SUFFIX)):
            continue
        field = key[len(ENV_PREFIX) : -len(SECRET_SUFFIX)].lower()
        if field not in MonitorSettings.model_fields:
            logger.warning("secret_file_unknown_setting", env_var=key)
            continue
        if f"{ENV_PREFIX}{field.upper()}" in environ:
            continue

        path = Path(location)
        if not path.is_file():
            # Validation reports the value as missing
            logger.warning("secret_file_not_found", env_var=key, path=location)
            continue
        try:
            values[field] = path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ConfigurationError(f"Cannot read {key} file {location}: {e}") from e

    return values


def check_yaml_file(environ: Optional[Mapping[str, str]] = None) -> Optional[Path]:
    """Confirm the CONFIG_PATH file, if any, is a readable YAML mapping.

    The settings source treats an unreadable file as empty, so problems are
    raised here before MonitorSettings is built.

    Raises:
        ConfigurationError: The file is missing, unreadable or not a mapping.
    """
    environ = os.environ if environ is None else environ
    location = environ.get("CONFIG_PATH")
    if not location:
        return None

    path = Path(location)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(
            f"Configuration file not found: {path} (unset CONFIG_PATH to use environment only)"
        ) from e
    except OSError as e:
        raise ConfigurationError(f"Cannot read configuration file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping of setting names to values")
    return path


def explain_errors(errors: Iterable[Dict[str, Any]]) -> List[str]:
    """Turn pydantic error dicts into one actionable line each."""
    lines: List[str] = []
    for error in errors:
        field = ".".join(str(part) for part in error.get("loc", ())) or "settings"
        if error.get("type") == "missing":
            lines.append(
                f"{field} is required: set {ENV_PREFIX}{field.upper()} or add '{field}:' to the YAML file"
            )
            continue
        line = f"{field}: {error.get('msg', 'invalid value')}"
        value = error.get("input")
        if value is not None and not isinstance(value, dict):
            line += f" (got {value!r})"
        lines.append(line)
    return lines


def load_config() -> MonitorSettings:
    """Load and validate settings.

    Precedence, highest first: LPMON_ environment variables, LPMON_*_FILE
    secret files, the .env file, the CONFIG_PATH YAML file, defaults.

    Raises:
        ConfigurationError: A file could not be read or validation failed.
    """
    check_yaml_file()
    overrides = read_secret_files()

    try:
        return MonitorSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError("Invalid configuration", problems=explain_errors(e.errors())) from e
