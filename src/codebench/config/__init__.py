from .settings import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    CodebenchSettings,
    load_settings,
    read_config_file,
    settings_from_env,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "CodebenchSettings",
    "load_settings",
    "read_config_file",
    "settings_from_env",
]
