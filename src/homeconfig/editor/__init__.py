"""Main app side of the configuration service protocol."""

from homeconfig.editor.config_client import ConfigServiceClient, ConfigServiceError

__all__ = ["ConfigServiceClient", "ConfigServiceError"]
