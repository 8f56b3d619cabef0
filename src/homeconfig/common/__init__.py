"""Common utilities for homeconfig."""

from homeconfig.common.settings import ConfigurationError, Settings, get_settings
from homeconfig.common.signing import RequestSigner, SigningCredentials

__all__ = [
    "ConfigurationError",
    "RequestSigner",
    "Settings",
    "SigningCredentials",
    "get_settings",
]
