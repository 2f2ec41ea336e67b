"""
The run tool, wrapped. Importing this package reads the bundled version metadata.
"""

from .run import (
    BINARY_NAME,
    build_url,
    build_urls,
    create_wrapper,
    load_package_metadata,
    read_version,
    version,
    wrapper,
)

__all__ = [
    "BINARY_NAME",
    "build_url",
    "build_urls",
    "create_wrapper",
    "load_package_metadata",
    "read_version",
    "version",
    "wrapper",
]
