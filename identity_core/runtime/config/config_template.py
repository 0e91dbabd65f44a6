"""``config.yaml`` loading with ``${VAR}`` placeholders resolved from the environment."""

import os
import re
from pathlib import Path

import yaml
from loguru import logger
from pydantic import ValidationError

from identity_core.runtime.config.config_data import ConfigData

_PLACEHOLDER = re.compile(r"\$\{(?P<name>[A-Za-z_][A-Za-z0-9_]*)(?:(?P<op>:-|:\?)(?P<arg>[^}]*))?\}")


def _resolve_placeholder(match: re.Match[str]) -> str:
    name, op, arg = match.group("name"), match.group("op"), match.group("arg")
    value = os.environ.get(name)
    if value is not None:
        return value
    if op == ":-":
        return arg
    reason = arg if op == ":?" else "not set"
    raise ValueError(f"Environment variable {name} is required: {reason}")


def substitute_env_vars(text: str) -> str:
    """Replace placeholders in ``text``.

    ``${NAME}`` must be set, ``${NAME:-fallback}`` falls back when unset and
    ``${NAME:?reason}`` fails with ``reason`` when unset.
    """
    return _PLACEHOLDER.sub(_resolve_placeholder, text)


def apply_environment_overrides(env_mode: str) -> None:
    """Promote ``<ENV>_NAME`` variables to ``NAME`` for the active environment."""
    prefix = f"{env_mode.upper()}_"
    promoted = {
        name.removeprefix(prefix): value
        for name, value in os.environ.items()
        if name.startswith(prefix)
    }
    for name, value in promoted.items():
        os.environ[name] = value
        logger.debug("{} overridden for the {} environment", name, env_mode)


def load_templated_yaml(file_path: Path) -> ConfigData:
    """Read ``file_path`` and build ``ConfigData`` from its ``config`` section.

    Raises:
        ValueError: Missing variable, unparsable YAML or values that fail validation
        FileNotFoundError: If the file does not exist
    """
    env_mode = os.getenv("APP_ENVIRONMENT", "development")
    logger.info("Loading {} for the {} environment", file_path, env_mode)
    apply_environment_overrides(env_mode)

    rendered = substitute_env_vars(Path(file_path).read_text())
    try:
        document = yaml.safe_load(rendered)
    except yaml.YAMLError as e:
        raise ValueError(f"{file_path} is not valid YAML: {e}") from e
    if not isinstance(document, dict):
        raise ValueError(f"{file_path} holds no configuration mapping")

    try:
        return ConfigData.model_validate(document.get("config") or {})
    except ValidationError as e:
        raise ValueError(f"Invalid configuration in {file_path}: {e}") from e
