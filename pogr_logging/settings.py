"""Load pogr_logging settings: defaults, pogr.yaml, .env and process environment."""

import logging
import os
import sys
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, ConfigDict, Field

from pogr_logging import secrets

logger = logging.getLogger(__name__)

DEFAULT_INIT_ENDPOINT = "https://api.pogr.io/v1/intake/init"
DEFAULT_LOGS_ENDPOINT = "https://api.pogr.io/v1/intake/logs"
DEFAULT_EXCLUDED_LOGGERS = ("pogr_logging", "httpx", "httpcore")

ACCESS_KEY_ENV = "POGR_ACCESS"
SECRET_KEY_ENV = "POGR_SECRET"

_DEFAULTS: dict[str, Any] = {
    "pogr": {
        "init_endpoint": DEFAULT_INIT_ENDPOINT,
        "logs_endpoint": DEFAULT_LOGS_ENDPOINT,
        "request_timeout": 10.0,
    },
    "service": {
        "name": None,  # resolved from sys.argv[0] when absent
        "environment": "development",
        "type": "service",
    },
    "capture": {
        "level": "DEBUG",
        "excluded_loggers": list(DEFAULT_EXCLUDED_LOGGERS),
    },
    "logging": {
        "file": None,
        "level": "WARNING",
        "log_to_console": True,
        "max_bytes": 10485760,  # 10 MB
        "backup_count": 3,
    },
}

# Environment variable -> dot path in the settings tree
_ENV_OVERRIDES: dict[str, str] = {
    "POGR_INIT_ENDPOINT": "pogr.init_endpoint",
    "POGR_LOGS_ENDPOINT": "pogr.logs_endpoint",
    "POGR_REQUEST_TIMEOUT": "pogr.request_timeout",
    "SERVICE_NAME": "service.name",
    "ENVIRONMENT": "service.environment",
    "SERVICE_TYPE": "service.type",
}


def default_service_name() -> str:
    """Name of the running script, like the executable name of a binary."""
    argv0 = sys.argv[0] if sys.argv else ""
    stem = Path(argv0).stem if argv0 else ""
    return stem or "python"


class ServiceMetadata(BaseModel):
    """Static identity of the emitting service, sent at session init."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(default_factory=default_service_name)
    environment: str = "development"
    service_type: str = "service"


class LoggingSettings(BaseModel):
    """Local diagnostic sink for pogr_logging's own messages."""

    model_config = ConfigDict(frozen=True)

    file: str | None = None
    level: str = "WARNING"
    log_to_console: bool = True
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 3


class PogrSettings(BaseModel):
    """Immutable configuration consumed by the appender and the handler."""

    model_config = ConfigDict(frozen=True)

    access_key: str = ""
    secret_key: str = ""
    init_endpoint: str = DEFAULT_INIT_ENDPOINT
    logs_endpoint: str = DEFAULT_LOGS_ENDPOINT
    request_timeout: float = 10.0
    service: ServiceMetadata = Field(default_factory=ServiceMetadata)
    capture_level: str = "DEBUG"
    excluded_loggers: tuple[str, ...] = DEFAULT_EXCLUDED_LOGGERS
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    """Merge overlay into base recursively. Mutates base."""
    for key, value in overlay.items():
        if value is None:
            continue
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _deep_copy_nested(obj: Any) -> Any:
    """Return a deep copy of nested dicts/lists for defaults."""
    if isinstance(obj, dict):
        return {k: _deep_copy_nested(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_deep_copy_nested(x) for x in obj]
    return obj


def get_setting(settings: dict[str, Any], path: str, default: Any = None) -> Any:
    """Get a nested value by dot path (e.g. 'pogr.init_endpoint')."""
    current: Any = settings
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def _set_path(settings: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    current = settings
    for part in parts[:-1]:
        current = current.setdefault(part, {})
    current[parts[-1]] = value


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, OSError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _read_environ(env_file: Path | None, environ: Mapping[str, str] | None) -> dict[str, str]:
    """.env values overlaid by the process environment (or the given mapping)."""
    values: dict[str, str] = {}
    if env_file is not None and env_file.exists():
        values.update({k: v for k, v in dotenv_values(env_file).items() if v is not None})
    values.update(os.environ if environ is None else environ)
    return values


def build_settings(tree: dict[str, Any], access_key: str, secret_key: str) -> PogrSettings:
    """Turn a merged settings tree into a validated PogrSettings."""
    service = tree.get("service") or {}
    capture = tree.get("capture") or {}
    service_kwargs: dict[str, Any] = {
        "environment": service.get("environment") or "development",
        "service_type": service.get("type") or "service",
    }
    if service.get("name"):
        service_kwargs["name"] = service["name"]
    return PogrSettings(
        access_key=access_key,
        secret_key=secret_key,
        init_endpoint=get_setting(tree, "pogr.init_endpoint", DEFAULT_INIT_ENDPOINT),
        logs_endpoint=get_setting(tree, "pogr.logs_endpoint", DEFAULT_LOGS_ENDPOINT),
        request_timeout=float(get_setting(tree, "pogr.request_timeout", 10.0)),
        service=ServiceMetadata(**service_kwargs),
        capture_level=str(capture.get("level", "DEBUG")).upper(),
        excluded_loggers=tuple(capture.get("excluded_loggers") or DEFAULT_EXCLUDED_LOGGERS),
        logging=LoggingSettings(**(tree.get("logging") or {})),
    )


def load_settings(
    config_path: Path | None = None,
    env_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> PogrSettings:
    """Load settings. Precedence: environment > .env > pogr.yaml > defaults.

    Credentials come from the OS keyring first, then the environment. Empty
    credentials are allowed here; the session reports them at first use.
    """
    if config_path is None:
        config_path = Path.cwd() / "pogr.yaml"
    if env_file is None:
        env_file = Path.cwd() / ".env"

    tree: dict[str, Any] = {k: _deep_copy_nested(v) for k, v in _DEFAULTS.items()}
    _deep_merge(tree, _read_yaml(config_path))

    env = _read_environ(env_file, environ)
    for var, path in _ENV_OVERRIDES.items():
        value = env.get(var)
        if value:
            _set_path(tree, path, value)

    access_key = secrets.get_secret(ACCESS_KEY_ENV, env) or ""
    secret_key = secrets.get_secret(SECRET_KEY_ENV, env) or ""
    return build_settings(tree, access_key, secret_key)
