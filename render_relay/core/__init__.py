from .config import get_config, config_manager, ConfigurationManager, ConfigError, ConfigFileNotFoundError, InvalidYamlError
from .exceptions import (
    RenderRelayError,
    ConfigurationError,
    ComponentError,
    RendererError,
    RemoteServiceError,
    RenderRequestError,
    RenderFailure,
)
from .logger import setup_logging, get_logger

__all__ = [
    # Config
    "get_config",
    "config_manager",
    "ConfigurationManager",
    "ConfigError",
    "ConfigFileNotFoundError",
    "InvalidYamlError",
    # Logger
    "setup_logging",
    "get_logger",
    # Exceptions
    "RenderRelayError",
    "ConfigurationError",
    "ComponentError",
    "RendererError",
    "RemoteServiceError",
    "RenderRequestError",
    "RenderFailure",
]
