"""Configuration package exports."""

from .loader import load_config, resolve_config_path, save_config
from .model import ClientConfig, CtcpSettings, FloodSettings, RegistrationInfo

__all__ = [
    "ClientConfig",
    "CtcpSettings",
    "FloodSettings",
    "RegistrationInfo",
    "load_config",
    "resolve_config_path",
    "save_config",
]
