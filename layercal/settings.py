"""
Application configuration and per-user display settings.

``DefaultConfig`` is loaded into ``app.config``; any key can be overridden with
a ``LAYERCAL_`` prefixed environment variable. User settings (language, theme,
selected framework, precision, memory mode) are small key/value pairs kept in
the signed session cookie.
"""

import logging
from typing import Any, Callable, Dict

from flask import current_app, request, session

from .codegen import FRAMEWORKS
from .errors import SettingsError
from .memory import BYTES_PER_PARAM, MEMORY_MODES
from .translations import TRANSLATIONS

logger = logging.getLogger(__name__)


class DefaultConfig:
    SECRET_KEY = 'layercal-dev-key'
    DEFAULT_LANGUAGE = 'en'
    DEFAULT_FRAMEWORK = 'pytorch'
    DEFAULT_PRECISION = 'fp32'
    DEFAULT_MEMORY_MODE = 'inference'
    LOG_LEVEL = 'INFO'


def _is_bool(value) -> bool:
    return isinstance(value, bool)


# setting key -> (config key holding its default, validator)
SETTINGS: Dict[str, tuple] = {
    'language': ('DEFAULT_LANGUAGE', lambda v: v in TRANSLATIONS),
    'dark_mode': (None, _is_bool),
    'framework': ('DEFAULT_FRAMEWORK', lambda v: v in FRAMEWORKS),
    'precision': ('DEFAULT_PRECISION', lambda v: v in BYTES_PER_PARAM),
    'memory_mode': ('DEFAULT_MEMORY_MODE', lambda v: v in MEMORY_MODES),
}


def _default(key: str) -> Any:
    config_key, _ = SETTINGS[key]
    if config_key is None:
        return False
    if key == 'language':
        best = request.accept_languages.best_match(list(TRANSLATIONS))
        if best:
            return best
    return current_app.config[config_key]


def get_setting(key: str) -> Any:
    """Read a setting, falling back to the configured default when unset or stale."""
    _, is_valid = SETTINGS[key]
    value = session.get(key)
    if value is not None and is_valid(value):
        return value
    return _default(key)


def get_settings() -> Dict[str, Any]:
    return {key: get_setting(key) for key in SETTINGS}


def update_settings(values: Dict[str, Any]) -> Dict[str, Any]:
    """Validate and store several settings at once; nothing is stored if any is invalid."""
    if not isinstance(values, dict):
        raise SettingsError("Settings must be a JSON object")
    for key, value in values.items():
        if key not in SETTINGS:
            raise SettingsError(f"Unknown setting '{key}'")
        is_valid: Callable = SETTINGS[key][1]
        if not is_valid(value):
            raise SettingsError(f"Invalid value {value!r} for setting '{key}'")
    for key, value in values.items():
        session[key] = value
    logger.debug("Updated settings: %s", ', '.join(sorted(values)))
    return get_settings()
