"""
Tests for installing and invoking wrapped binaries.

Downloads are served from memory through httpx.MockTransport; nothing touches the network.
"""

import os
import subprocess
import sys
import threading

import pytest

from runwrap.binaries.run.run import build_urls, create_wrapper
from runwrap.binwrap import binwrap
from runwrap.runwrap_config import RunwrapConfig
from runwrap.runwrap_exceptions import (
    ConfigurationError,
    DownloadError,
    UnsupportedPlatformError,
)
from runwrap.runwrap_settings import RunwrapSettings

from tests.runwrap.archive_helpers import RUN_SCRIPT, make_tarball

LINUX_URL = build_urls("1.2.3")["linux-x64"]

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="runs a shell script")


@pytest.fixture
def wrapper(tmp_path, http_client):
    return create_wrapper(
        "1.2.3",
        dirname=str(tmp_path),
        runwrap_config=RunwrapConfig(),
        client=http_client,
        platform_key="linux-x64",
    )


class TestInstall:
    """Tests for BinWrap.install."""

    def test_install_unpacks_binary(self, wrapper, archive_server, run_tarball, tmp_path):
        """Test that install downloads the host archive and unpacks an executable run."""
        archive_server.archives[LINUX_URL] = run_tarball

        destination = wrapper.install()

        assert destination == tmp_path / RunwrapSettings.UNPACKED_DIRECTORY_NAME / "linux-x64"
        binary = destination / "run"
        assert binary.read_bytes() == RUN_SCRIPT
        assert os.access(binary, os.X_OK)
        assert (destination / RunwrapSettings.SOURCE_URL_MARKER).read_text().strip() == LINUX_URL
        assert [str(r.url) for r in archive_server.requests] == [LINUX_URL]

    def test_second_install_uses_cache(self, wrapper, archive_server, run_tarball):
        """Test that an installed binary is not downloaded again."""
        archive_server.archives[LINUX_URL] = run_tarball

        first = wrapper.install()
        second = wrapper.install()

        assert first == second
        assert len(archive_server.requests) == 1

    def test_force_downloads_again(self, wrapper, archive_server, run_tarball):
        archive_server.archives[LINUX_URL] = run_tarball

        wrapper.install()
        wrapper.install(force=True)

        assert len(archive_server.requests) == 2

    def test_new_version_replaces_old_install(self, tmp_path, archive_server, http_client, run_tarball):
        """Test that a different release URL invalidates the cached binary."""
        new_url = build_urls("1.2.4")["linux-x64"]
        archive_server.archives[LINUX_URL] = run_tarball
        archive_server.archives[new_url] = make_tarball({"run": b"#!/bin/sh\nexit 0\n"})

        old = create_wrapper("1.2.3", dirname=str(tmp_path), runwrap_config=RunwrapConfig(),
                             client=http_client, platform_key="linux-x64")
        new = create_wrapper("1.2.4", dirname=str(tmp_path), runwrap_config=RunwrapConfig(),
                             client=http_client, platform_key="linux-x64")
        old.install()
        destination = new.install()

        assert (destination / "run").read_bytes() == b"#!/bin/sh\nexit 0\n"
        assert [str(r.url) for r in archive_server.requests] == [LINUX_URL, new_url]

    def test_install_dir_override(self, tmp_path, archive_server, http_client, run_tarball):
        archive_server.archives[LINUX_URL] = run_tarball
        install_dir = tmp_path / "cache"
        wrapper = create_wrapper(
            "1.2.3",
            dirname=str(tmp_path / "pkg"),
            runwrap_config=RunwrapConfig(install_dir=str(install_dir)),
            client=http_client,
            platform_key="linux-x64",
        )

        assert wrapper.install() == install_dir / "linux-x64"
        assert not (tmp_path / "pkg").exists()

    def test_nested_binary_is_found(self, wrapper, archive_server):
        """Test that a binary inside a top-level folder of the archive is moved into place."""
        archive_server.archives[LINUX_URL] = make_tarball({"run_1.2.3/run": RUN_SCRIPT})

        destination = wrapper.install()

        assert (destination / "run").read_bytes() == RUN_SCRIPT

    def test_unsupported_platform(self, tmp_path, archive_server, http_client):
        """Test that a host without a published archive fails without any request."""
        wrapper = create_wrapper("1.2.3", dirname=str(tmp_path), runwrap_config=RunwrapConfig(),
                                 client=http_client, platform_key="win32-x64")

        with pytest.raises(UnsupportedPlatformError) as excinfo:
            wrapper.install()

        assert "win32-x64" in str(excinfo.value)
        assert archive_server.requests == []

    def test_missing_archive_raises(self, wrapper, tmp_path):
        """Test that an HTTP 404 is reported as a download error and leaves nothing behind."""
        with pytest.raises(DownloadError):
            wrapper.install()

        install_dir = tmp_path / RunwrapSettings.UNPACKED_DIRECTORY_NAME
        assert list(install_dir.iterdir()) == []

    def test_archive_without_binary_raises(self, wrapper, archive_server):
        archive_server.archives[LINUX_URL] = make_tarball({"README.md": b"nothing here\n"})

        with pytest.raises(DownloadError):
            wrapper.install()

    def test_failed_download_keeps_previous_install(self, wrapper, archive_server, run_tarball):
        """Test that a broken archive does not clobber a working install."""
        archive_server.archives[LINUX_URL] = run_tarball
        destination = wrapper.install()

        archive_server.archives[LINUX_URL] = b"not a tarball"
        with pytest.raises(DownloadError):
            wrapper.install(force=True)

        assert (destination / "run").read_bytes() == RUN_SCRIPT


class TestRun:
    """Tests for BinWrap.run and BinWrap.main."""

    @posix_only
    def test_run_passes_args_and_exit_code(self, wrapper, archive_server, run_tarball, capfd):
        """Test that arguments reach the binary unchanged and its exit code comes back."""
        archive_server.archives[LINUX_URL] = run_tarball

        code = wrapper.run("run", ["list", "--flag", "two words"])

        assert code == 3
        assert capfd.readouterr().out == "args: list --flag two words\n"

    @posix_only
    def test_main_forwards_argv(self, wrapper, archive_server, run_tarball, capfd):
        archive_server.archives[LINUX_URL] = run_tarball

        assert wrapper.main("run", ["-h"]) == 3
        assert capfd.readouterr().out == "args: -h\n"

    @posix_only
    def test_signal_exit_code(self, wrapper, archive_server):
        """Test that a binary killed by a signal reports 128 + the signal number."""
        archive_server.archives[LINUX_URL] = make_tarball({"run": b"#!/bin/sh\nkill -TERM $$\n"})

        assert wrapper.run("run", []) == 128 + 15

    def test_interrupt_exit_code(self, wrapper, archive_server, run_tarball, monkeypatch):
        """Test that Ctrl-C while the binary runs returns 130."""
        archive_server.archives[LINUX_URL] = run_tarball

        def interrupted(*args, **kwargs):
            raise KeyboardInterrupt

        monkeypatch.setattr(subprocess, "run", interrupted)

        assert wrapper.run("run", []) == 130

    def test_main_reports_errors(self, tmp_path, http_client, capsys):
        """Test that wrapper errors become a message on stderr and exit status 1."""
        wrapper = create_wrapper("1.2.3", dirname=str(tmp_path), runwrap_config=RunwrapConfig(),
                                 client=http_client, platform_key="linux-arm64")

        assert wrapper.main("run", []) == 1
        assert capsys.readouterr().err == "run: No binaries are available for your platform: linux-arm64\n"

    def test_unknown_binary_rejected(self, wrapper):
        with pytest.raises(ConfigurationError):
            wrapper.run("not-run", [])


class TestVerifyUrls:
    """Tests for BinWrap.verify_urls."""

    def test_reports_each_platform(self, wrapper, archive_server, run_tarball):
        archive_server.archives[LINUX_URL] = run_tarball

        results = wrapper.verify_urls()

        assert results == {"darwin-x64": False, "darwin-arm64": False, "linux-x64": True}
        assert {r.method for r in archive_server.requests} == {"HEAD"}


class TestBinwrapFactory:
    """Tests for building a wrapper from plain fields."""

    def test_accepts_fields(self, tmp_path):
        wrapper = binwrap(
            dirname=str(tmp_path),
            binaries=["tool"],
            urls={"linux-x64": "https://example.invalid/tool.tar.gz"},
        )
        assert wrapper.binaries == ["tool"]

    @pytest.mark.parametrize(
        "fields",
        [
            {"binaries": ["run"], "urls": {"linux-x64": "https://x/run.tar.gz"}},
            {"dirname": "/tmp", "binaries": [], "urls": {"linux-x64": "https://x/run.tar.gz"}},
            {"dirname": "/tmp", "binaries": ["run"], "urls": {}},
            {"dirname": "/tmp", "binaries": ["run"], "urls": {"plan9-mips": "https://x/run.tar.gz"}},
            {"dirname": "/tmp", "binaries": ["run"], "urls": {"linux-x64": "https://x/run.rpm"}},
        ],
    )
    def test_invalid_config_rejected(self, fields):
        with pytest.raises(ConfigurationError):
            binwrap(fields)


class TestConcurrentInstall:
    """Tests for several installers sharing one install directory."""

    @staticmethod
    def _install_in_threads(tmp_path, archive_server, threads, rounds, force):
        errors = []
        barrier = threading.Barrier(threads, timeout=30)

        def worker():
            client = archive_server.client()
            try:
                wrapper = create_wrapper(
                    "1.2.3",
                    dirname=str(tmp_path),
                    runwrap_config=RunwrapConfig(),
                    client=client,
                    platform_key="linux-x64",
                )
                barrier.wait()
                for _ in range(rounds):
                    wrapper.install(force=force)
            except Exception as e:
                errors.append(e)
            finally:
                client.close()

        workers = [threading.Thread(target=worker) for _ in range(threads)]
        for t in workers:
            t.start()
        for t in workers:
            t.join()
        return errors

    @posix_only
    def test_first_installs_race(self, tmp_path, archive_server, run_tarball):
        """Test that simultaneous first-time installs all succeed."""
        archive_server.archives[LINUX_URL] = run_tarball

        errors = self._install_in_threads(tmp_path, archive_server, threads=6, rounds=1, force=False)

        assert errors == []
        install_dir = tmp_path / RunwrapSettings.UNPACKED_DIRECTORY_NAME
        assert sorted(p.name for p in install_dir.iterdir()) == ["linux-x64"]
        assert (install_dir / "linux-x64" / "run").read_bytes() == RUN_SCRIPT

    @posix_only
    def test_forced_installs_race(self, tmp_path, archive_server, run_tarball):
        """Test that repeated forced installs from several threads never fail."""
        archive_server.archives[LINUX_URL] = run_tarball

        errors = self._install_in_threads(tmp_path, archive_server, threads=6, rounds=30, force=True)

        assert errors == []
        install_dir = tmp_path / RunwrapSettings.UNPACKED_DIRECTORY_NAME
        assert sorted(p.name for p in install_dir.iterdir()) == ["linux-x64"]
        assert os.access(install_dir / "linux-x64" / "run", os.X_OK)
