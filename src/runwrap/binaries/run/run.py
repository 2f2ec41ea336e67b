"""
Provides the wrapper for TekWizely's run tool, published per platform on GitHub releases.
"""

import json
import os
import pathlib
from typing import Dict, Optional

from pydantic import ValidationError

from runwrap.binwrap import BinWrap, binwrap
from runwrap.runtime_dependency_models import BinaryWrapConfig, PackageMetadata
from runwrap.runwrap_exceptions import ConfigurationError

BINARY_NAME = "run"

RELEASE_HOST = "https://github.com/TekWizely/run/releases/download/v"

# platform key -> os_arch suffix of the release archive
PLATFORM_ARCHIVES = {
    "darwin-x64": "darwin_amd64",
    "darwin-arm64": "darwin_arm64",
    "linux-x64": "linux_amd64",
}

PACKAGE_METADATA_PATH = pathlib.Path(os.path.dirname(__file__)) / "package.json"


def load_package_metadata(path: Optional[pathlib.Path] = None) -> PackageMetadata:
    """
    Reads the package metadata file.

    Raises:
        ConfigurationError: if the file is missing, unreadable or has no valid version
    """
    path = pathlib.Path(path or PACKAGE_METADATA_PATH)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read package metadata {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Malformed package metadata {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Package metadata {path} is not a JSON object")

    try:
        return PackageMetadata(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid package metadata {path}: {e}") from e


def read_version(path: Optional[pathlib.Path] = None) -> str:
    return load_package_metadata(path).version


def build_url(root: str, version: str, os_arch: str) -> str:
    return root + "/run_" + version + "_" + os_arch + ".tar.gz"


def build_urls(version: str) -> Dict[str, str]:
    """
    Returns the release archive URL of every supported platform key
    """
    root = RELEASE_HOST + version
    return {
        platform_key: build_url(root, version, os_arch)
        for platform_key, os_arch in PLATFORM_ARCHIVES.items()
    }


def create_wrapper(version: str, dirname: Optional[str] = None, **kwargs) -> BinWrap:
    """
    Creates the wrapper for the given run version. Extra kwargs go to binwrap().
    """
    config = BinaryWrapConfig(
        dirname=dirname or os.path.dirname(os.path.abspath(__file__)),
        binaries=[BINARY_NAME],
        urls=build_urls(version),
    )
    return binwrap(config, **kwargs)


package_metadata = load_package_metadata()
version = package_metadata.version
wrapper = create_wrapper(version)
