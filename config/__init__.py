"""Configuration management for notevault."""

from .loader import ConfigLoader, load_config
from .schema import ChatConfig, LoggingConfig, NotevaultSettings, StoreConfig

__all__ = ["ChatConfig", "ConfigLoader", "LoggingConfig", "NotevaultSettings", "StoreConfig", "load_config"]
