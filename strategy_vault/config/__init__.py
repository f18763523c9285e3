"""
Configuration defaults, loading and validation.
"""
from .defaults import VaultConfig, get_default_config
from .loader import ConfigLoader

__all__ = ["ConfigLoader", "VaultConfig", "get_default_config"]
