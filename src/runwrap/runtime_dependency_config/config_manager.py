"""
Dependency configuration manager.

Selects the archive for the host platform, decides whether it has to be
downloaded, and tracks where it is installed.
"""

import os
import pathlib
from typing import Dict, List, Optional

from runwrap.runtime_dependency_models import BinaryWrapConfig, Dependency
from runwrap.runwrap_config import RunwrapConfig
from runwrap.runwrap_exceptions import UnsupportedPlatformError
from runwrap.runwrap_settings import RunwrapSettings
from runwrap.runwrap_utils import PlatformUtils


class DownloadStatus:
    """Enumeration of download statuses."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class DownloadPlan:
    """
    A plan to download a specific dependency.

    Captures all information needed to download and extract a dependency.
    """

    def __init__(
            self,
            dependency_key: str,
            dependency: Dependency,
            destination_path: str,
            binaries: List[str],
            force: bool = False,
            status: str = DownloadStatus.PENDING,
    ):
        """
        Initialize a download plan.

        Args:
            dependency_key: Unique key for the dependency (the platform key)
            dependency: The Dependency object
            destination_path: Where to extract the archive
            binaries: Executable names expected in the extracted archive
            force: Replace an existing install even if it is current
            status: Current download status
        """
        self.dependency_key = dependency_key
        self.dependency = dependency
        self.url = dependency.url
        self.archive_type = dependency.archive_type
        self.destination_path = destination_path
        self.binaries = binaries
        self.force = force
        self.status = status
        self.error_message: Optional[str] = None

    def __repr__(self) -> str:
        return (
            f"DownloadPlan(key={self.dependency_key}, "
            f"status={self.status}, url={self.url})"
        )


class DependencyState:
    """
    Current state of a dependency.

    Tracks whether a dependency has been downloaded and where it's located.
    """

    def __init__(
            self,
            dependency_key: str,
            download_status: str,
            downloaded_path: Optional[str] = None,
            error_message: Optional[str] = None,
    ):
        self.dependency_key = dependency_key
        self.download_status = download_status
        self.downloaded_path = downloaded_path
        self.error_message = error_message

    def is_downloaded(self) -> bool:
        """Check if the dependency has been successfully downloaded."""
        return self.download_status == DownloadStatus.COMPLETED

    def __repr__(self) -> str:
        return (
            f"DependencyState(key={self.dependency_key}, "
            f"status={self.download_status}, path={self.downloaded_path})"
        )


class DependencyConfigManager:
    """
    Manages the wrapped binary's configuration and download decisions.

    Picks the URL matching the host platform and plans a download unless a
    matching copy is already installed.
    """

    def __init__(
        self,
        wrap_config: BinaryWrapConfig,
        runwrap_config: RunwrapConfig,
        platform_key: Optional[str] = None,
    ):
        """
        Initialize the dependency config manager.

        Args:
            wrap_config: Binaries and per-platform URLs to install
            runwrap_config: Runtime configuration (install directory, forcing)
            platform_key: Host platform key; detected when omitted
        """
        self.wrap_config = wrap_config
        self.runwrap_config = runwrap_config
        self.platform_key = platform_key or PlatformUtils.get_platform_key()
        self.download_plans: Dict[str, DownloadPlan] = {}
        self.dependency_states: Dict[str, DependencyState] = {}

    def get_install_directory(self) -> pathlib.Path:
        if self.runwrap_config.install_dir:
            return pathlib.Path(self.runwrap_config.install_dir)
        return RunwrapSettings.get_default_install_directory(self.wrap_config.dirname)

    def get_destination_path(self) -> pathlib.Path:
        return self.get_install_directory() / self.platform_key

    def get_binary_path(self, binary: str) -> pathlib.Path:
        """
        Path the named binary has once installed for the host platform
        """
        if self.platform_key.startswith("win32") and not binary.endswith(".exe"):
            binary += ".exe"
        return self.get_destination_path() / binary

    def get_host_dependency(self) -> Dependency:
        """
        Returns the dependency for the host platform.

        Raises:
            UnsupportedPlatformError: if no URL is published for the host
        """
        dependency = self.wrap_config.get_dependency(self.platform_key)
        if dependency is None:
            raise UnsupportedPlatformError(self.platform_key)
        return dependency

    def create_download_plan(self, force: bool = False) -> None:
        """
        Create the download plan for the host platform.

        A plan is only created when the binaries are missing, were installed
        from a different URL, or a download is forced.
        """
        self.download_plans = {}
        dependency = self.get_host_dependency()
        destination = self.get_destination_path()

        force = force or self.runwrap_config.force_download
        if not force and self.is_installed(dependency):
            self.dependency_states[self.platform_key] = DependencyState(
                dependency_key=self.platform_key,
                download_status=DownloadStatus.COMPLETED,
                downloaded_path=str(destination),
            )
            return

        self.download_plans[self.platform_key] = DownloadPlan(
            dependency_key=self.platform_key,
            dependency=dependency,
            destination_path=str(destination),
            binaries=list(self.wrap_config.binaries),
            force=force,
        )
        self.dependency_states[self.platform_key] = DependencyState(
            dependency_key=self.platform_key,
            download_status=DownloadStatus.PENDING,
        )

    def is_installed(self, dependency: Dependency) -> bool:
        """
        Check whether every binary is present, executable and came from the dependency's URL.
        """
        marker = self.get_destination_path() / RunwrapSettings.SOURCE_URL_MARKER
        try:
            if marker.read_text(encoding="utf-8").strip() != dependency.url:
                return False
        except OSError:
            return False

        for binary in self.wrap_config.binaries:
            path = self.get_binary_path(binary)
            if not path.is_file() or not os.access(path, os.X_OK):
                return False
        return True

    def get_pending_downloads(self) -> List[DownloadPlan]:
        """
        Get all pending downloads.

        Returns:
            List of DownloadPlan objects with PENDING status
        """
        return [p for p in self.download_plans.values() if p.status == DownloadStatus.PENDING]

    def mark_download_completed(
        self, plan: DownloadPlan, success: bool = True
    ) -> None:
        """
        Mark a download plan as completed or failed.

        Args:
            plan: The download plan to mark
            success: Whether the download was successful
        """
        plan.status = DownloadStatus.COMPLETED if success else DownloadStatus.FAILED

        state = DependencyState(
            dependency_key=plan.dependency_key,
            download_status=plan.status,
            downloaded_path=plan.destination_path if success else None,
            error_message=None if success else (plan.error_message or "Download failed"),
        )
        self.dependency_states[plan.dependency_key] = state

    def get_dependency_states(self) -> Dict[str, DependencyState]:
        return self.dependency_states

    def get_dependency_state(self, dep_key: str) -> Optional[DependencyState]:
        """
        Get the state of a specific dependency.

        Args:
            dep_key: The dependency key

        Returns:
            DependencyState or None if not found
        """
        return self.dependency_states.get(dep_key)
