"""
Client configuration module.

Manages the Evently server URL, request timeout, logging level and payment
display settings. Configuration can be loaded from a YAML file and
overridden by environment variables.
"""

import os
import re
from pathlib import Path
from typing import Optional

import yaml
from platformdirs import user_config_dir, user_data_dir


# ============================================================================
# Constants
# ============================================================================

APP_NAME = "evently"
APP_AUTHOR = "Evently"
CONFIG_FILENAME = "client-config.yaml"

# Environment variable names
ENV_SERVER_URL = "EVENTLY_SERVER_URL"
ENV_LOG_LEVEL = "EVENTLY_LOG_LEVEL"
ENV_CONFIG_PATH = "EVENTLY_CONFIG_PATH"

# Default values
DEFAULT_SERVER_URL = "http://localhost:8000"
DEFAULT_TIMEOUT = 30.0  # seconds
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_CURRENCY = "IDR"
DEFAULT_PAYMENT_METHODS = ["va", "cc", "qris"]

URL_PATTERN = re.compile(
    r"^https?://"
    r"(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+[A-Z]{2,6}\.?|"
    r"localhost|"
    r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})"
    r"(?::\d+)?"
    r"(?:/?|[/?]\S+)$",
    re.IGNORECASE,
)


# ============================================================================
# Exceptions
# ============================================================================


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    pass


# ============================================================================
# Helper Functions
# ============================================================================


def get_default_config_dir() -> Path:
    """Get the platform-appropriate configuration directory."""
    return Path(user_config_dir(APP_NAME, APP_AUTHOR))


def get_default_data_dir() -> Path:
    """Get the platform-appropriate data directory (session storage)."""
    return Path(user_data_dir(APP_NAME, APP_AUTHOR))


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    return get_default_config_dir() / CONFIG_FILENAME


# ============================================================================
# ClientConfig Class
# ============================================================================


class ClientConfig:
    """
    Client configuration manager.

    Configuration sources (in priority order):
    1. Environment variables
    2. Configuration file
    3. Default values

    Attributes:
        server_url: Evently server URL (without the /api suffix)
        timeout_seconds: HTTP request timeout
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        currency: ISO currency code used to display ticket prices
        payment_methods: Payment method ids offered to the user
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config_dir: Optional[Path] = None,
    ):
        """
        Initialize client configuration.

        Args:
            config_path: Explicit path to config file (takes precedence)
            config_dir: Directory containing config file
        """
        if config_path:
            self._config_path = Path(config_path)
            self._config_dir = self._config_path.parent
        elif config_dir:
            self._config_dir = Path(config_dir)
            self._config_path = self._config_dir / CONFIG_FILENAME
        else:
            env_path = os.environ.get(ENV_CONFIG_PATH)
            if env_path:
                self._config_path = Path(env_path)
                self._config_dir = self._config_path.parent
            else:
                self._config_dir = get_default_config_dir()
                self._config_path = self._config_dir / CONFIG_FILENAME

        self._server_url: str = DEFAULT_SERVER_URL
        self._timeout_seconds: float = DEFAULT_TIMEOUT
        self._log_level: str = DEFAULT_LOG_LEVEL
        self._currency: str = DEFAULT_CURRENCY
        self._payment_methods: list[str] = list(DEFAULT_PAYMENT_METHODS)

        self._load()

    @property
    def config_path(self) -> Path:
        """Get the configuration file path."""
        return self._config_path

    @property
    def config_dir(self) -> Path:
        """Get the configuration directory."""
        return self._config_dir

    # -------------------------------------------------------------------------
    # Configuration Properties
    # -------------------------------------------------------------------------

    @property
    def server_url(self) -> str:
        """Get the server URL."""
        return os.environ.get(ENV_SERVER_URL, self._server_url)

    @server_url.setter
    def server_url(self, value: str) -> None:
        self._server_url = value.rstrip("/")

    @property
    def timeout_seconds(self) -> float:
        return self._timeout_seconds

    @timeout_seconds.setter
    def timeout_seconds(self, value: float) -> None:
        self._timeout_seconds = value

    @property
    def log_level(self) -> str:
        """Get the log level."""
        return os.environ.get(ENV_LOG_LEVEL, self._log_level)

    @log_level.setter
    def log_level(self, value: str) -> None:
        self._log_level = value

    @property
    def currency(self) -> str:
        return self._currency

    @currency.setter
    def currency(self, value: str) -> None:
        self._currency = value

    @property
    def payment_methods(self) -> list[str]:
        return list(self._payment_methods)

    @payment_methods.setter
    def payment_methods(self, value: list[str]) -> None:
        self._payment_methods = list(value)

    # -------------------------------------------------------------------------
    # Configuration Management
    # -------------------------------------------------------------------------

    def _load(self) -> None:
        """Load configuration from file."""
        if not self._config_path.exists():
            return

        try:
            with open(self._config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse config file: {e}")

        if not isinstance(data, dict):
            raise ConfigError(
                f"Config file must contain a mapping: {self._config_path}"
            )

        try:
            timeout = float(data.get("timeout_seconds", DEFAULT_TIMEOUT))
        except (TypeError, ValueError):
            raise ConfigError(
                f"timeout_seconds must be a number, got: {data.get('timeout_seconds')!r}"
            )

        payment_methods = data.get("payment_methods", DEFAULT_PAYMENT_METHODS)
        if not isinstance(payment_methods, list):
            raise ConfigError("payment_methods must be a list")

        self._server_url = str(data.get("server_url", DEFAULT_SERVER_URL)).rstrip("/")
        self._timeout_seconds = timeout
        self._log_level = data.get("log_level", DEFAULT_LOG_LEVEL)
        self._currency = data.get("currency", DEFAULT_CURRENCY)
        self._payment_methods = [str(m) for m in payment_methods]

    def save(self) -> None:
        """Save configuration to file."""
        self._config_dir.mkdir(parents=True, exist_ok=True)

        data = {
            "server_url": self._server_url,
            "timeout_seconds": self._timeout_seconds,
            "log_level": self._log_level,
            "currency": self._currency,
            "payment_methods": self._payment_methods,
        }

        with open(self._config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)

    def validate(self) -> None:
        """
        Validate the current configuration.

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        if not self.server_url or not URL_PATTERN.match(self.server_url):
            raise ConfigValidationError(
                f"Invalid server_url format: {self.server_url}"
            )

        if self.timeout_seconds <= 0:
            raise ConfigValidationError(
                f"timeout_seconds must be positive, got: {self.timeout_seconds}"
            )
