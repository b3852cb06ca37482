"""
Operations package for the MODIS State Explorer

This package centralizes all operational tools including:
- Configuration management
- The command line interface

The Config class is exposed at the package level for convenient imports:
    from ops import Config
"""

from .config_loader import Config

__all__ = ["Config"]
