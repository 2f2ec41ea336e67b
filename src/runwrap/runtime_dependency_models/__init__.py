"""
Runtime dependency models for wrapped binaries.

This package provides Pydantic data models for the package metadata and the
per-platform archive tables that describe a wrapped binary.
"""

from .package_metadata import PackageMetadata
from .runtime_dependencies import (
    BinaryWrapConfig,
    Dependency,
)

__all__ = [
    "PackageMetadata",
    "BinaryWrapConfig",
    "Dependency",
]
