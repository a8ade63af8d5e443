"""Configuration management for filmcam.

Values come from environment variables first and Streamlit secrets second,
so the same keys work in a shell, a ``.env`` file loaded by the CLI, or a
deployed Streamlit app. Pipeline policy values (capture box, JPEG quality,
retry counts) are constants in the modules that own them, not configuration.
"""

import os
from typing import Any

try:
    import streamlit as st

    STREAMLIT_AVAILABLE = True
except ImportError:
    STREAMLIT_AVAILABLE = False

from .logging_config import get_logger

logger = get_logger(__name__)

TRUTHY_VALUES = ("true", "1", "yes", "on")
DEVELOPMENT_ENVIRONMENTS = ("development", "dev", "local")


def _read_secret(key: str) -> Any:
    if not STREAMLIT_AVAILABLE:
        return None
    # Secrets are only reachable inside a running Streamlit app
    try:
        return st.secrets.get(key)
    except Exception:  # nosec B110
        return None


def _cast(value: Any, cast_type: type) -> Any:
    if cast_type is bool:
        return value.lower() in TRUTHY_VALUES if isinstance(value, str) else bool(value)
    if cast_type is str:
        return value
    return cast_type(value)


class Config:
    """Cached, typed access to configuration values."""

    def __init__(self):
        self._cache: dict[str, Any] = {}

    def get(self, key: str, default: Any = None, cast_type: type = str) -> Any:
        """Get a configuration value.

        Args:
            key: Configuration key
            default: Value used when the key is unset or cannot be cast
            cast_type: str, int, float or bool

        Returns:
            The value cast to ``cast_type``, or ``default``
        """
        cache_key = f"{key}:{cast_type.__name__}"
        if cache_key not in self._cache:
            self._cache[cache_key] = self._resolve(key, default, cast_type)
        return self._cache[cache_key]

    def _resolve(self, key: str, default: Any, cast_type: type) -> Any:
        value = os.getenv(key)
        if value is None:
            value = _read_secret(key)
        if value is None:
            return default

        try:
            return _cast(value, cast_type)
        except (ValueError, TypeError) as e:
            logger.warning("config_cast_failed", key=key, cast_type=cast_type.__name__, error=str(e))
            return default

    def get_required(self, key: str, cast_type: type = str) -> Any:
        """Get a configuration value that must be set.

        Raises:
            ValueError: If the key is not set
        """
        value = self.get(key, cast_type=cast_type)
        if value is None:
            raise ValueError(f"Required configuration '{key}' not found")
        return value

    def is_development(self) -> bool:
        return self.get("ENVIRONMENT", "development").lower() in DEVELOPMENT_ENVIRONMENTS

    def clear_cache(self):
        """Forget cached values so changed environment variables are picked up."""
        self._cache.clear()


_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_env(key: str, default: Any = None, cast_type: type = str) -> Any:
    return get_config().get(key, default, cast_type)


def get_required_env(key: str, cast_type: type = str) -> Any:
    """Get a required configuration value.

    Raises:
        ValueError: If the key is not set
    """
    return get_config().get_required(key, cast_type)


def is_development() -> bool:
    return get_config().is_development()


def get_project_id() -> str:
    """Get Google Cloud project ID."""
    return str(get_required_env("GOOGLE_CLOUD_PROJECT"))


def get_photos_bucket() -> str:
    """Get GCS bucket name for photos."""
    return str(get_required_env("GCS_PHOTOS_BUCKET"))


def get_photos_prefix() -> str:
    """Get object prefix under which photos are stored."""
    return str(get_env("GCS_PHOTOS_PREFIX", "photos")).strip("/")


def get_database_path() -> str:
    """Get path of the DuckDB metadata database."""
    return str(get_env("FILMCAM_DB_PATH", "data/filmcam.duckdb"))


def get_camera_device(facing_mode: str) -> int:
    """Get the capture device index for a facing mode ("environment" or "user")."""
    if facing_mode == "user":
        return int(get_env("CAMERA_USER_DEVICE", 1, int))
    return int(get_env("CAMERA_ENV_DEVICE", 0, int))


def get_default_user_id() -> str:
    """Get the user id used when no session user is present."""
    return str(get_env("DEFAULT_USER_ID", "local-user"))


def get_http_timeout() -> float:
    """Get timeout in seconds for fetching images by URL."""
    return float(get_env("HTTP_TIMEOUT_SECONDS", 30.0, float))
