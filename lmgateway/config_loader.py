"""Configuration loading from YAML files with environment variable support."""

import logging
import os
import re
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import dotenv_values

from .core.exceptions import ConfigurationError

logger = logging.getLogger("lmgateway")

DEFAULT_CONFIG_PATH = "configs/config_default.yaml"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000

ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def resolve_config_path(path: str) -> Path:
    """Resolve config path relative to project root if needed."""
    if Path(path).is_absolute():
        return Path(path)
    project_root = Path(__file__).parent.parent
    return project_root / path


def resolve_env_path(config_path: Path, env_path: str | None = None) -> Path:
    """Resolve the env file that sits next to a config file.

    ``configs/config_local.yaml`` pairs with ``configs/.env_local``; any
    other name pairs with ``.env`` in the same directory.
    """
    if env_path:
        return resolve_config_path(env_path)
    stem = config_path.stem
    if stem.startswith("config_"):
        return config_path.with_name(f".env_{stem[len('config_'):]}")
    return config_path.with_name(".env")


def load_env_values(env_path: Path) -> dict[str, str]:
    """Load environment values from a .env file without mutating os.environ."""
    if not env_path.exists():
        return {}
    raw_values = dotenv_values(env_path)
    return {key: value for key, value in raw_values.items() if value is not None}


def load_config(
    path: str | None = None,
    env_path: str | None = None,
    substitute_env: bool = True,
) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Path to the config file. Defaults to ``LMGATEWAY_CONFIG``, or
              configs/config_default.yaml in the project root.
        env_path: Optional .env path override for env substitution.
        substitute_env: Whether to substitute environment variables in the config.

    Returns:
        Parsed configuration dictionary.

    Raises:
        ConfigurationError: If the file is missing or is not a YAML mapping.
    """
    if path is None:
        path = os.getenv("LMGATEWAY_CONFIG") or DEFAULT_CONFIG_PATH

    config_path = resolve_config_path(path)
    logger.info(f"Loading configuration from {config_path}")

    if not config_path.exists():
        logger.error(f"Config file not found: {config_path}")
        raise ConfigurationError(f"Config file not found: {config_path}")

    env_values: dict[str, str] = {}
    if substitute_env:
        env_file = resolve_env_path(config_path, env_path)
        if env_file.exists():
            logger.info(f"Loading environment variables from {env_file}")
            env_values = load_env_values(env_file)

    try:
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    if substitute_env:
        data = _substitute_env_vars(data, env_values)

    logger.info(f"Configuration loaded successfully from {config_path}")
    return data


def _substitute_env_vars(
    obj: Any, env_values: Mapping[str, str] | None = None
) -> Any:
    """Recursively substitute ``${VAR}`` and ``$VAR`` references.

    Values from the .env file win over the process environment. Unknown
    variables are left as literal placeholders.
    """
    env_values = env_values or {}

    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v, env_values) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_substitute_env_vars(item, env_values) for item in obj]
    if isinstance(obj, str):

        def replace_var(match: re.Match) -> str:
            var_name = match.group(1) or match.group(2)
            value = env_values.get(var_name)
            if value is None:
                value = os.getenv(var_name)
            if value is None:
                logger.warning(
                    f"CONFIG ERROR: Environment variable '${var_name}' is not set! "
                    f"The literal placeholder will be used."
                )
                return match.group(0)
            return value

        return ENV_VAR_PATTERN.sub(replace_var, obj)
    return obj


def get_gateway_settings(config: Mapping[str, Any]) -> dict[str, Any]:
    settings = config.get("gateway_settings") or {}
    if not isinstance(settings, Mapping):
        raise ConfigurationError("gateway_settings must be a mapping")
    return dict(settings)


def resolve_server_address(config: Mapping[str, Any]) -> tuple[str, int]:
    """Return the bind address; LMGATEWAY_HOST / LMGATEWAY_PORT take priority."""
    server_cfg = get_gateway_settings(config).get("server") or {}

    host = os.getenv("LMGATEWAY_HOST") or str(server_cfg.get("host", DEFAULT_HOST))

    raw_port = os.getenv("LMGATEWAY_PORT")
    if raw_port is None:
        raw_port = server_cfg.get("port", DEFAULT_PORT)
    try:
        port = int(raw_port)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid server port: {raw_port!r}") from exc

    return host, port


def resolve_log_level(config: Mapping[str, Any]) -> str:
    level = str(get_gateway_settings(config).get("log_level", "INFO")).upper()
    if level not in logging.getLevelNamesMapping():
        raise ConfigurationError(f"Unknown log level: {level}")
    return level
