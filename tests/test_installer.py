"""
Tests for installing Rubies through the cache, transport and extractor.
"""

import dataclasses
import os
from unittest.mock import patch

import pytest
import requests

from rvman.core.cache import cache_digest
from rvman.core.exceptions import (
    ExtractionError,
    InstallationError,
    NetworkError,
    ReleaseNotFoundError,
    ResolutionError,
)
from rvman.core.transport import HttpTransport
from rvman.core.version_manager import VersionManager
from rvman.core.version_request import VersionRequest
from rvman.utils.retry import RetryHandler

URL = "https://example.test/releases/latest/download/ruby-3.4.5.x86_64_linux.tar.gz"


def tarball_dir(config):
    return config.cache_dir / "ruby-v0" / "tarballs"


@pytest.fixture
def manager(config, platform):
    transport = HttpTransport(timeout=5, retry_handler=RetryHandler(max_retries=1, base_delay=0, jitter=False))
    return VersionManager(config, transport=transport, platform=platform)


class TestInstallFromRemote:
    """Tests for installing from the release server."""

    def test_second_install_uses_cache(self, manager, config, fake_response, tarball_bytes):
        messages = []
        request = VersionRequest.parse("3.4.5")
        with patch("rvman.core.transport.requests.get",
                   side_effect=lambda *a, **kw: fake_response(body=tarball_bytes)) as mock_get:
            first = manager.install(request, status_callback=messages.append)
            second = manager.install(request, status_callback=messages.append)

        assert mock_get.call_count == 1
        assert mock_get.call_args.args[0] == URL
        assert first == second
        assert first.path == config.install_root / "3.4.5" / "x86_64_linux"
        assert os.access(first.executable, os.X_OK)

        cached = tarball_dir(config) / f"{cache_digest(URL)}.tar.gz"
        assert cached.is_file()
        assert f"{cached} 已存在，跳过下载" in messages
        assert sum(1 for m in messages if m.startswith("正在下载")) == 1

    def test_missing_release_leaves_no_files(self, manager, config, fake_response):
        with patch("rvman.core.transport.requests.get", return_value=fake_response(404)) as mock_get:
            with pytest.raises(ReleaseNotFoundError):
                manager.install(VersionRequest.parse("9.9.9"))

        assert mock_get.call_count == 1
        assert list(tarball_dir(config).glob("*")) == []
        assert not (config.install_root / "9.9.9").exists()

    def test_network_failure_leaves_no_temp_file(self, manager, config):
        with patch("rvman.core.transport.requests.get",
                   side_effect=requests.exceptions.ConnectionError("reset")):
            with pytest.raises(NetworkError):
                manager.install(VersionRequest.parse("3.4.5"))

        assert list(tarball_dir(config).glob("*.tmp")) == []

    def test_invalid_payload_keeps_cached_tarball(self, manager, config, fake_response):
        body = b"<html>rate limited</html>"
        with patch("rvman.core.transport.requests.get", return_value=fake_response(body=body)):
            with pytest.raises(ExtractionError):
                manager.install(VersionRequest.parse("3.4.5"))

        entries = sorted(p.name for p in tarball_dir(config).iterdir())
        assert entries == [f"{cache_digest(URL)}.tar.gz"]
        assert not (config.install_root / "3.4.5" / "x86_64_linux").exists()
        assert [p for p in config.install_root.iterdir() if p.name.startswith(".")] == []

    def test_partial_request_is_rejected_before_network(self, manager):
        with patch("rvman.core.transport.requests.get") as mock_get:
            with pytest.raises(ResolutionError):
                manager.install(VersionRequest.parse("3.4"))
        mock_get.assert_not_called()

    def test_install_dir_override(self, manager, config, fake_response, tarball_bytes, tmp_path):
        other_root = tmp_path / "elsewhere"
        with patch("rvman.core.transport.requests.get", return_value=fake_response(body=tarball_bytes)):
            ruby = manager.install(VersionRequest.parse("3.4.5"), install_dir=other_root)

        assert ruby.path == other_root / "3.4.5" / "x86_64_linux"
        assert not (config.install_root / "3.4.5").exists()

    def test_no_cache_downloads_every_time(self, config, platform, fake_response, tarball_bytes):
        config = dataclasses.replace(config, no_cache=True)
        manager = VersionManager(config, transport=HttpTransport(timeout=5), platform=platform)
        with patch("rvman.core.transport.requests.get",
                   side_effect=lambda *a, **kw: fake_response(body=tarball_bytes)) as mock_get:
            manager.install(VersionRequest.parse("3.4.5"))
            manager.install(VersionRequest.parse("3.4.5"))

        assert mock_get.call_count == 2
        assert not config.cache_dir.exists()


class TestInstallFromTarball:
    """Tests for installing from a local tarball."""

    def test_local_tarball_skips_network(self, manager, config, tarball_file):
        with patch("rvman.core.transport.requests.get") as mock_get:
            ruby = manager.install(VersionRequest.parse("3.4.5"), tarball_path=tarball_file)

        mock_get.assert_not_called()
        assert os.access(ruby.executable, os.X_OK)
        assert not config.cache_dir.exists()

    def test_local_tarball_requires_exact_version(self, manager, tarball_file):
        with pytest.raises(InstallationError):
            manager.install(VersionRequest.parse("latest"), tarball_path=tarball_file)

    def test_missing_local_tarball(self, manager, tmp_path):
        with pytest.raises(InstallationError):
            manager.install(VersionRequest.parse("3.4.5"), tarball_path=tmp_path / "missing.tar.gz")
