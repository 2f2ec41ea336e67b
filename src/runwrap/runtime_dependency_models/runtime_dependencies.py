"""
Pydantic data models describing wrapped binaries and their per-platform archives.

A BinaryWrapConfig is the whole description of one wrapper:
{
  "dirname": "/path/next/to/the/shim",
  "binaries": ["run"],
  "urls": {
    "darwin-x64": "https://.../run_0.11.2_darwin_amd64.tar.gz",
    "linux-x64": "https://.../run_0.11.2_linux_amd64.tar.gz",
    ...
  }
}
"""

from typing import Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from runwrap.runwrap_exceptions import DownloadError
from runwrap.runwrap_utils import FileUtils, PlatformUtils


class Dependency(BaseModel):
    """
    A downloadable archive for a single platform.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    platform_key: str = Field(..., alias="platformKey", description="Platform the archive targets")
    url: str = Field(..., description="URL to download from")
    archive_type: str = Field(
        ..., alias="archiveType", description="Archive type: tar.gz, tgz, tar or zip"
    )

    @classmethod
    def from_url(cls, platform_key: str, url: str) -> "Dependency":
        return cls(
            platform_key=platform_key,
            url=url,
            archive_type=FileUtils.archive_type_from_url(url),
        )


class BinaryWrapConfig(BaseModel):
    """
    Configuration handed to the binary wrapping facility.

    Every key of `urls` must be a platform the facility can detect at runtime.
    """

    model_config = ConfigDict(frozen=True)

    dirname: str = Field(..., description="Directory of the wrapper; binaries unpack beneath it")
    binaries: List[str] = Field(..., min_length=1, description="Executable names in each archive")
    urls: Dict[str, str] = Field(..., description="Platform key to archive URL")

    @field_validator("urls")
    @classmethod
    def _check_platform_keys(cls, urls: Dict[str, str]) -> Dict[str, str]:
        if not urls:
            raise ValueError("at least one platform URL is required")
        unknown = sorted(k for k in urls if not PlatformUtils.is_known_platform(k))
        if unknown:
            raise ValueError(f"unknown platform keys: {', '.join(unknown)}")
        for url in urls.values():
            try:
                FileUtils.archive_type_from_url(url)
            except DownloadError as e:
                raise ValueError(e.message) from e
        return urls

    @field_validator("binaries")
    @classmethod
    def _check_binaries(cls, binaries: List[str]) -> List[str]:
        for name in binaries:
            if not name or "/" in name or "\\" in name:
                raise ValueError(f"invalid binary name: {name!r}")
        return binaries

    def get_dependency(self, platform_key: str):
        """
        Returns the Dependency for the platform, or None if no URL is published for it
        """
        url = self.urls.get(platform_key)
        if url is None:
            return None
        return Dependency.from_url(platform_key, url)

    def get_dependencies(self) -> Dict[str, Dependency]:
        return {key: Dependency.from_url(key, url) for key, url in self.urls.items()}
