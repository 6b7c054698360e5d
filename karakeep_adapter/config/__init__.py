"""
Configuration loading for the Karakeep Adapter.
"""

from .settings import AdapterConfig, ConfigurationManager, format_config_error

__all__ = ["AdapterConfig", "ConfigurationManager", "format_config_error"]
