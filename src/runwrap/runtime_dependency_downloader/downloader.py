"""
Dependency downloader implementation.

Handles downloading and extracting the archive of a wrapped binary.
"""

import logging
import os
import pathlib
import shutil
import tempfile
from typing import Dict, Optional

import httpx

from runwrap.runwrap_exceptions import DownloadError
from runwrap.runwrap_logger import RunwrapLogger
from runwrap.runwrap_settings import RunwrapSettings
from runwrap.runwrap_utils import FileUtils
from runwrap.runtime_dependency_config.config_manager import (
    DependencyConfigManager,
    DependencyState,
    DownloadPlan,
    DownloadStatus,
)

INSTALL_ATTEMPTS = 10


class DependencyDownloader:
    """
    Downloads and extracts wrapped binaries.

    Executes download plans, installs the extracted binaries atomically, and
    updates dependency states.
    """

    def __init__(
        self,
        config_manager: DependencyConfigManager,
        logger: RunwrapLogger,
        client: Optional[httpx.Client] = None,
    ):
        """
        Initialize the dependency downloader.

        Args:
            config_manager: The DependencyConfigManager with download plans
            logger: Logger for progress and error messages
            client: HTTP client to download with; a fresh one is used per download if omitted
        """
        self.config_manager = config_manager
        self.logger = logger
        self.client = client

    def download_all_pending(self) -> bool:
        """
        Download all pending dependencies.

        Returns:
            True if all downloads succeeded, False if any failed
        """
        pending = self.config_manager.get_pending_downloads()

        if not pending:
            self.logger.log("No pending downloads", logging.INFO)
            return True

        all_succeeded = True
        for plan in pending:
            if not self.download_dependency(plan):
                all_succeeded = False

        return all_succeeded

    def download_dependency(self, plan: DownloadPlan) -> bool:
        """
        Download a single dependency.

        The archive is extracted into a staging directory which replaces the
        destination only once every binary has been verified.

        Args:
            plan: The download plan to execute

        Returns:
            True if download succeeded, False otherwise
        """
        destination = pathlib.Path(plan.destination_path)
        staging = None
        try:
            self.logger.log(
                f"Downloading {plan.dependency_key} from {plan.url}",
                logging.INFO,
            )
            plan.status = DownloadStatus.IN_PROGRESS

            destination.parent.mkdir(parents=True, exist_ok=True)
            staging = pathlib.Path(
                tempfile.mkdtemp(prefix=f".{destination.name}-", dir=destination.parent)
            )

            FileUtils.download_and_extract_archive(
                self.logger,
                plan.url,
                str(staging),
                plan.archive_type,
                client=self.client,
                timeout=self.config_manager.runwrap_config.timeout,
            )

            for binary in plan.binaries:
                binary_path = self._locate_binary(staging, binary)
                FileUtils.make_executable(str(binary_path))

            if not self._verify_download(staging, plan):
                raise DownloadError(
                    f"Download verification failed for {plan.dependency_key}"
                )

            (staging / RunwrapSettings.SOURCE_URL_MARKER).write_text(
                plan.url + "\n", encoding="utf-8"
            )
            if self._install_staging(staging, destination, plan):
                staging = None

            self.config_manager.mark_download_completed(plan, success=True)
            self.logger.log(
                f"Successfully downloaded {plan.dependency_key} to {plan.destination_path}",
                logging.INFO,
            )
            return True

        except (DownloadError, OSError) as e:
            error_msg = f"Failed to download {plan.dependency_key}: {str(e)}"
            self.logger.log(error_msg, logging.ERROR)
            plan.error_message = error_msg
            self.config_manager.mark_download_completed(plan, success=False)
            return False

        finally:
            if staging is not None:
                shutil.rmtree(staging, ignore_errors=True)

    def _install_staging(
        self, staging: pathlib.Path, destination: pathlib.Path, plan: DownloadPlan
    ) -> bool:
        """
        Rename the verified staging directory onto the destination.

        Another installer may finish first; a current install it leaves behind
        counts as success. An existing install is only moved aside when it is
        stale or the plan forces a download.

        Returns:
            True if staging became the destination, False if it is no longer needed
        """
        for _ in range(INSTALL_ATTEMPTS):
            if not plan.force and self.config_manager.is_installed(plan.dependency):
                return False

            aside = FileUtils.move_aside(str(destination))
            try:
                os.replace(staging, destination)
                return True
            except OSError:
                if self.config_manager.is_installed(plan.dependency):
                    return False
            finally:
                if aside is not None:
                    FileUtils.remove_path(aside)

        raise DownloadError(
            f"Could not move {plan.dependency_key} into place at {destination}"
        )

    def _locate_binary(self, staging: pathlib.Path, binary: str) -> pathlib.Path:
        """
        Find the binary in the extracted tree and move it to the top level if it is nested.
        """
        names = [binary, binary + ".exe"]
        for name in names:
            if (staging / name).is_file():
                return staging / name

        for name in names:
            for candidate in sorted(staging.rglob(name)):
                if candidate.is_file():
                    target = staging / name
                    os.replace(candidate, target)
                    return target

        raise DownloadError(f"Archive does not contain the binary {binary!r}")

    def _verify_download(self, staging: pathlib.Path, plan: DownloadPlan) -> bool:
        """
        Verify that every expected binary was extracted and is non-empty.
        """
        for binary in plan.binaries:
            candidates = [staging / binary, staging / (binary + ".exe")]
            found = [c for c in candidates if c.is_file()]
            if not found:
                self.logger.log(
                    f"Binary {binary} missing from {plan.url}",
                    logging.WARNING,
                )
                return False
            if found[0].stat().st_size == 0:
                self.logger.log(
                    f"Downloaded binary is empty: {found[0]}",
                    logging.WARNING,
                )
                return False
        return True

    def get_failed_dependencies(self) -> Dict[str, DependencyState]:
        states = self.config_manager.get_dependency_states()
        return {
            key: state
            for key, state in states.items()
            if state.download_status == DownloadStatus.FAILED
        }

    def get_download_summary(self) -> dict:
        """
        Get a summary of download results.

        Returns:
            Dictionary with counts of successful, failed, and pending downloads
        """
        states = self.config_manager.get_dependency_states()
        pending = self.config_manager.get_pending_downloads()

        completed = sum(1 for state in states.values() if state.is_downloaded())
        failed = sum(
            1
            for state in states.values()
            if state.download_status == DownloadStatus.FAILED
        )

        return {
            "completed": completed,
            "failed": failed,
            "pending": len(pending),
            "total": completed + failed + len(pending),
        }
