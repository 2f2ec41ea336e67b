"""
Wraps a prebuilt native binary so that it can be shipped as a Python console script.

A wrapper is created once from a BinaryWrapConfig. On first use it downloads the
archive published for the host platform, unpacks it beneath the wrapper's
directory and afterwards forwards invocations to the unpacked executable.
"""

import logging
import pathlib
import subprocess
import sys
from typing import Dict, List, Optional, Sequence, Union

import httpx
from pydantic import ValidationError

from runwrap.runtime_dependency_config import DependencyConfigManager
from runwrap.runtime_dependency_downloader import DependencyDownloader
from runwrap.runtime_dependency_models import BinaryWrapConfig
from runwrap.runwrap_config import RunwrapConfig
from runwrap.runwrap_exceptions import ConfigurationError, DownloadError, RunwrapException
from runwrap.runwrap_logger import RunwrapLogger
from runwrap.runwrap_settings import RunwrapSettings

SIGINT_EXIT_CODE = 130


class BinWrap:
    """
    Installs and invokes the binaries described by a BinaryWrapConfig.
    """

    def __init__(
        self,
        config: BinaryWrapConfig,
        runwrap_config: Optional[RunwrapConfig] = None,
        logger: Optional[RunwrapLogger] = None,
        client: Optional[httpx.Client] = None,
        platform_key: Optional[str] = None,
    ):
        """
        Creates a wrapper. Nothing is read from disk or the network here.

        Args:
            config: Binaries and per-platform URLs
            runwrap_config: Runtime configuration; read from the environment on first use when omitted
            logger: Logger for progress and error messages
            client: HTTP client shared by downloads and URL checks
            platform_key: Host platform key; detected when omitted
        """
        self.config = config
        self._runwrap_config = runwrap_config
        self.logger = logger or RunwrapLogger()
        self.client = client
        self.platform_key = platform_key

    @property
    def runwrap_config(self) -> RunwrapConfig:
        if self._runwrap_config is None:
            self._runwrap_config = RunwrapConfig.from_env()
        return self._runwrap_config

    @property
    def binaries(self) -> List[str]:
        return list(self.config.binaries)

    @property
    def urls(self) -> Dict[str, str]:
        return dict(self.config.urls)

    def _config_manager(self) -> DependencyConfigManager:
        return DependencyConfigManager(
            wrap_config=self.config,
            runwrap_config=self.runwrap_config,
            platform_key=self.platform_key,
        )

    def install(self, force: bool = False) -> pathlib.Path:
        """
        Make sure the binaries for the host platform are unpacked.

        Does not touch the network when a matching copy is already installed.

        Returns:
            The directory holding the unpacked binaries

        Raises:
            UnsupportedPlatformError: if no URL is published for the host
            DownloadError: if the archive could not be downloaded or verified
        """
        config_manager = self._config_manager()
        config_manager.create_download_plan(force=force)

        downloader = DependencyDownloader(config_manager, self.logger, client=self.client)
        if not downloader.download_all_pending():
            failed = downloader.get_failed_dependencies()
            messages = "; ".join(
                state.error_message or key for key, state in failed.items()
            )
            raise DownloadError(messages or "Download failed")

        summary = downloader.get_download_summary()
        self.logger.log(
            f"Download summary: {summary['completed']} completed, "
            f"{summary['failed']} failed, {summary['pending']} pending",
            logging.INFO,
        )
        return config_manager.get_destination_path()

    def path(self, binary: str) -> pathlib.Path:
        """
        Path of the named binary for the host platform, whether or not it is installed yet
        """
        self._check_binary(binary)
        config_manager = self._config_manager()
        config_manager.get_host_dependency()
        return config_manager.get_binary_path(binary)

    def run(self, binary: str, args: Sequence[str]) -> int:
        """
        Install if needed, then run the binary with args on the current process's streams.

        Returns:
            The exit code of the binary. A binary killed by a signal reports 128 + signal number.
        """
        self._check_binary(binary)
        self.install()
        executable = self.path(binary)

        try:
            completed = subprocess.run([str(executable), *args])
        except KeyboardInterrupt:
            return SIGINT_EXIT_CODE
        except OSError as e:
            raise DownloadError(f"Could not execute {executable}: {e}") from e

        if completed.returncode < 0:
            return 128 - completed.returncode
        return completed.returncode

    def verify_urls(self) -> Dict[str, bool]:
        """
        Check that an archive is published at every URL in the table.

        Returns:
            Mapping of platform key to whether its URL answered with HTTP 200
        """
        client = self.client or httpx.Client(
            follow_redirects=True,
            timeout=self.runwrap_config.timeout,
            headers={"User-Agent": RunwrapSettings.USER_AGENT},
        )
        results = {}
        try:
            for platform_key, url in self.config.urls.items():
                try:
                    response = client.head(url)
                    ok = response.status_code == 200
                except httpx.HTTPError as e:
                    self.logger.log(f"Error checking {url}: {e}", logging.WARNING)
                    ok = False
                self.logger.log(
                    f"{platform_key}: {url} {'ok' if ok else 'missing'}",
                    logging.INFO if ok else logging.WARNING,
                )
                results[platform_key] = ok
        finally:
            if self.client is None:
                client.close()
        return results

    def main(self, binary: Optional[str] = None, argv: Optional[Sequence[str]] = None) -> int:
        """
        Console-script entry point forwarding argv (default sys.argv[1:]) to the binary.
        """
        binary = binary or self.config.binaries[0]
        args = sys.argv[1:] if argv is None else list(argv)
        try:
            return self.run(binary, args)
        except RunwrapException as e:
            print(f"{binary}: {e.message}", file=sys.stderr)
            return 1

    def _check_binary(self, binary: str) -> None:
        if binary not in self.config.binaries:
            raise ConfigurationError(f"{binary!r} is not one of the wrapped binaries")


def binwrap(
    config: Union[BinaryWrapConfig, dict, None] = None,
    runwrap_config: Optional[RunwrapConfig] = None,
    logger: Optional[RunwrapLogger] = None,
    client: Optional[httpx.Client] = None,
    platform_key: Optional[str] = None,
    **kwargs,
) -> BinWrap:
    """
    Create a BinWrap from a BinaryWrapConfig or from its fields (dirname, binaries, urls).

    Raises:
        ConfigurationError: if the configuration is incomplete or names unknown platforms
    """
    if not isinstance(config, BinaryWrapConfig):
        fields = dict(config or {}, **kwargs)
        try:
            config = BinaryWrapConfig(**fields)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid wrapper configuration: {e}") from e
    elif kwargs:
        raise ConfigurationError(
            f"Unexpected arguments with a BinaryWrapConfig: {', '.join(sorted(kwargs))}"
        )

    return BinWrap(
        config,
        runwrap_config=runwrap_config,
        logger=logger,
        client=client,
        platform_key=platform_key,
    )
