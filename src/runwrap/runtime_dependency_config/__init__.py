"""
Runtime dependency configuration management.

This package handles:
1. Selecting the archive published for the host platform
2. Applying configuration overrides from RunwrapConfig
3. Deciding whether the archive has to be downloaded and where to
4. Tracking download state for the downloader
"""

from .config_manager import DependencyConfigManager

__all__ = ["DependencyConfigManager"]
