"""
Runtime dependency downloader.

This package handles:
1. Downloading archives from release URLs
2. Extracting archives
3. Verifying the extracted binaries
4. Updating dependency states
"""

from .downloader import DependencyDownloader

__all__ = ["DependencyDownloader"]
