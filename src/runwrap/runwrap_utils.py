"""
This file contains various utility functions like platform detection and archive download/extraction.
"""

import logging
import os
import pathlib
import platform
import shutil
import stat
import tarfile
import tempfile
import uuid
import zipfile
from enum import Enum
from typing import Optional

import httpx

from runwrap.runwrap_exceptions import DownloadError, UnsupportedPlatformError
from runwrap.runwrap_logger import RunwrapLogger
from runwrap.runwrap_settings import RunwrapSettings


class PlatformId(str, Enum):
    """
    Host platforms runwrap can detect, keyed the way release URL tables are keyed.
    """

    DARWIN_X64 = "darwin-x64"
    DARWIN_ARM64 = "darwin-arm64"
    LINUX_X64 = "linux-x64"
    LINUX_ARM64 = "linux-arm64"
    WIN32_X64 = "win32-x64"


OS_NAMES = {
    "darwin": "darwin",
    "linux": "linux",
    "windows": "win32",
}

ARCH_NAMES = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "ia32",
    "i686": "ia32",
}


class PlatformUtils:
    """
    This class provides utilities for platform detection and identification.
    """

    @staticmethod
    def get_platform_key() -> str:
        """
        Returns the "<os>-<arch>" key of the host, even when the host is not a known PlatformId
        """
        system = platform.system().lower()
        machine = platform.machine().lower()
        return f"{OS_NAMES.get(system, system)}-{ARCH_NAMES.get(machine, machine)}"

    @staticmethod
    def get_platform_id() -> PlatformId:
        """
        Returns the platform id for the current system
        """
        platform_key = PlatformUtils.get_platform_key()
        try:
            return PlatformId(platform_key)
        except ValueError as e:
            raise UnsupportedPlatformError(platform_key) from e

    @staticmethod
    def is_known_platform(platform_key: str) -> bool:
        return platform_key in {p.value for p in PlatformId}


ARCHIVE_SUFFIXES = {
    ".tar.gz": "tar.gz",
    ".tgz": "tgz",
    ".tar": "tar",
    ".zip": "zip",
}


class FileUtils:
    """
    Utility functions for downloading, extracting and marking files
    """

    @staticmethod
    def archive_type_from_url(url: str) -> str:
        """
        Derive the archive type from the file name at the end of the URL
        """
        file_name = url.rsplit("/", 1)[-1].lower()
        for suffix, archive_type in ARCHIVE_SUFFIXES.items():
            if file_name.endswith(suffix):
                return archive_type
        raise DownloadError(f"Unrecognised archive type for {url}")

    @staticmethod
    def download_file(
        logger: RunwrapLogger,
        url: str,
        target_path: str,
        client: Optional[httpx.Client] = None,
        timeout: float = 60.0,
    ) -> None:
        """
        Downloads the file from the given URL to the given target path, following redirects
        """
        os.makedirs(os.path.dirname(target_path), exist_ok=True)
        logger.log(f"Downloading file from {url} to {target_path}", logging.INFO)

        owns_client = client is None
        if owns_client:
            client = httpx.Client(
                follow_redirects=True,
                timeout=timeout,
                headers={"User-Agent": RunwrapSettings.USER_AGENT},
            )
        try:
            with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise DownloadError(
                        f"Error downloading file {url}: HTTP status {response.status_code}"
                    )
                with open(target_path, "wb") as f:
                    for chunk in response.iter_bytes():
                        f.write(chunk)
        except httpx.HTTPError as e:
            raise DownloadError(f"Error downloading file {url}: {e}") from e
        finally:
            if owns_client:
                client.close()

    @staticmethod
    def extract_archive(archive_path: str, target_path: str, archive_type: str) -> None:
        """
        Extracts the archive into target_path, refusing members that escape it
        """
        os.makedirs(target_path, exist_ok=True)
        try:
            if archive_type in ("tar.gz", "tgz", "tar"):
                mode = "r:gz" if archive_type in ("tar.gz", "tgz") else "r:"
                with tarfile.open(archive_path, mode) as tar:
                    if hasattr(tarfile, "data_filter"):
                        tar.extractall(target_path, filter="data")
                    else:
                        FileUtils._check_members(
                            target_path, [m.name for m in tar.getmembers()]
                        )
                        tar.extractall(target_path)
            elif archive_type == "zip":
                with zipfile.ZipFile(archive_path) as archive:
                    FileUtils._check_members(target_path, archive.namelist())
                    archive.extractall(target_path)
            else:
                raise DownloadError(f"Unsupported archive type: {archive_type}")
        except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
            raise DownloadError(f"Error extracting {archive_path}: {e}") from e

    @staticmethod
    def _check_members(target_path: str, names) -> None:
        root = pathlib.Path(target_path).resolve()
        for name in names:
            member_path = (root / name).resolve()
            if member_path != root and root not in member_path.parents:
                raise DownloadError(f"Archive member escapes extraction directory: {name}")

    @staticmethod
    def download_and_extract_archive(
        logger: RunwrapLogger,
        url: str,
        target_path: str,
        archive_type: str,
        client: Optional[httpx.Client] = None,
        timeout: float = 60.0,
    ) -> None:
        """
        Downloads the archive from the given URL and extracts it into target_path
        """
        with tempfile.TemporaryDirectory(prefix="runwrap-") as tmp_dir:
            archive_path = os.path.join(tmp_dir, url.rsplit("/", 1)[-1] or "archive")
            FileUtils.download_file(logger, url, archive_path, client=client, timeout=timeout)
            logger.log(f"Extracting {archive_path} to {target_path}", logging.INFO)
            FileUtils.extract_archive(archive_path, target_path, archive_type)

    @staticmethod
    def make_executable(path: str) -> None:
        mode = os.stat(path).st_mode
        os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    @staticmethod
    def move_aside(path: str) -> Optional[str]:
        """
        Renames path to a unique hidden sibling so it can be removed without racing other installers.

        Returns:
            The new location, or None if nothing was at path
        """
        parent, name = os.path.split(os.path.normpath(path))
        aside = os.path.join(parent, f".{name}-old-{uuid.uuid4().hex}")
        try:
            os.replace(path, aside)
        except FileNotFoundError:
            return None
        return aside

    @staticmethod
    def remove_path(path: str) -> None:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path, ignore_errors=True)
        elif os.path.lexists(path):
            os.remove(path)
