from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, replace
from pathlib import Path

from loguru import logger
from pydantic import BaseModel

from identity_core.runtime.config.config_data import ConfigData
from identity_core.runtime.config.config_template import load_templated_yaml
from identity_core.runtime.config.settings import EnvironmentVariables


@dataclass
class AppContext:
    """Application context containing configuration and other app-wide state."""

    config: ConfigData


def load_default_config() -> ConfigData:
    """Build the configuration from config.yaml and the environment.

    A missing config file is not an error; defaults apply. ``DATABASE_URL``,
    ``LOG_LEVEL`` and ``APP_ENVIRONMENT`` win over the file.
    """
    env = EnvironmentVariables()
    path = Path(env.config_path)
    if path.is_file():
        config = load_templated_yaml(path)
    else:
        logger.debug("No configuration file at {}; using defaults", path)
        config = ConfigData()

    config.app.environment = env.environment
    if env.database_url:
        config.database.url = env.database_url
    if env.log_level:
        config.logging.level = env.log_level.upper()
    return config


_app_context: ContextVar[AppContext | None] = ContextVar("app_context", default=None)


def get_context() -> AppContext:
    """Get the current application context, loading the default one on first use.

    Returns:
        AppContext: The current application context containing configuration.
    """
    context = _app_context.get()
    if context is None:
        context = AppContext(config=load_default_config())
        _app_context.set(context)
    return context


def set_context(context: AppContext) -> Token[AppContext | None]:
    """Set the current application context.

    Args:
        context: AppContext instance to set as current.
    """
    return _app_context.set(context)


def get_config() -> ConfigData:
    return get_context().config


def set_config(config: ConfigData) -> None:
    """Replace the entire current configuration with the provided one."""
    set_context(replace(get_context(), config=config))


def _recursive_model_dump_exclude_unset(model: BaseModel) -> dict:
    """Recursively dump a Pydantic model keeping only explicitly set fields.

    A nested model is included in full as soon as any field inside it was set.
    """
    result = {}
    explicitly_set_fields = model.model_fields_set

    for field_name in type(model).model_fields:
        field_value = getattr(model, field_name)

        if isinstance(field_value, BaseModel):
            if _recursive_model_dump_exclude_unset(field_value):
                result[field_name] = field_value.model_dump()
            elif field_name in explicitly_set_fields:
                result[field_name] = field_value.model_dump()
        elif field_name in explicitly_set_fields:
            result[field_name] = field_value

    return result


def _recursive_dict_merge(base_dict: dict, override_dict: dict) -> dict:
    """Recursively merge two dictionaries, values from ``override_dict`` winning."""
    result = base_dict.copy()

    for key, value in override_dict.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _recursive_dict_merge(result[key], value)
        else:
            result[key] = value

    return result


def _merge_configs(base_config: ConfigData, override_config: ConfigData) -> ConfigData:
    base_dict = base_config.model_dump()
    override_dict = _recursive_model_dump_exclude_unset(override_config)
    merged_dict = _recursive_dict_merge(base_dict, override_dict)
    return ConfigData.model_validate(merged_dict)


@contextmanager
def with_context(config_override: ConfigData | None = None):
    """Context manager for temporarily overriding the application context.

    The override is merged into the current configuration, so only the
    fields set on ``config_override`` change.

    Example:
        override = ConfigData()
        override.security.password_hash_rounds = 4
        with with_context(override):
            assert get_config().security.password_hash_rounds == 4
    """
    if config_override is None:
        yield
        return

    if not isinstance(config_override, ConfigData):
        raise ValueError(
            f"config_override must be ConfigData, or None, got {type(config_override)}"
        )

    current = get_context()
    merged_config = _merge_configs(current.config, config_override)

    token = set_context(replace(current, config=merged_config))
    try:
        yield
    finally:
        _app_context.reset(token)
