"""
Shared test fixtures.
"""

import io
import tarfile
from pathlib import Path
from typing import Dict, Optional
from unittest.mock import MagicMock

import pytest
from requests.structures import CaseInsensitiveDict

from rvman.core.config_manager import Config
from rvman.core.platforms import lookup_platform

RUBY_SCRIPT = b"#!/bin/sh\necho 'ruby 3.4.5'\n"


def _add_dir(tf: tarfile.TarFile, name: str) -> None:
    info = tarfile.TarInfo(name)
    info.type = tarfile.DIRTYPE
    info.mode = 0o755
    tf.addfile(info)


def _add_file(tf: tarfile.TarFile, name: str, data: bytes, mode: int = 0o644) -> None:
    info = tarfile.TarInfo(name)
    info.size = len(data)
    info.mode = mode
    tf.addfile(info, io.BytesIO(data))


def _add_symlink(tf: tarfile.TarFile, name: str, target: str) -> None:
    info = tarfile.TarInfo(name)
    info.type = tarfile.SYMTYPE
    info.linkname = target
    tf.addfile(info)


def build_ruby_tarball(top: Optional[str] = "portable-ruby", extra: Optional[Dict[str, bytes]] = None) -> bytes:
    """Build an in-memory .tar.gz shaped like a portable Ruby release."""
    prefix = f"{top}/" if top else ""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tf:
        if top:
            _add_dir(tf, top)
        _add_dir(tf, f"{prefix}bin")
        _add_file(tf, f"{prefix}bin/ruby", RUBY_SCRIPT, mode=0o755)
        _add_symlink(tf, f"{prefix}bin/irb", "ruby")
        _add_dir(tf, f"{prefix}lib")
        _add_file(tf, f"{prefix}lib/ruby.rb", b"puts 'hello'\n")
        for name, data in (extra or {}).items():
            _add_file(tf, f"{prefix}{name}", data)
    return buffer.getvalue()


@pytest.fixture
def tarball_bytes() -> bytes:
    """A valid Ruby tarball."""
    return build_ruby_tarball()


@pytest.fixture
def tarball_file(tmp_path: Path, tarball_bytes: bytes) -> Path:
    """A valid Ruby tarball written to disk."""
    path = tmp_path / "ruby-3.4.5.x86_64_linux.tar.gz"
    path.write_bytes(tarball_bytes)
    return path


@pytest.fixture
def platform():
    """The linux/x86_64 platform entry."""
    return lookup_platform("linux", "x86_64")


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """A config rooted entirely under tmp_path."""
    return Config(
        cache_dir=tmp_path / "cache",
        install_root=tmp_path / "rubies",
        releases_url="https://example.test/releases",
        releases_index_url="https://example.test/index.json",
        download_retry_count=0,
        request_timeout=5,
    )


@pytest.fixture
def fake_response():
    """Factory for mock requests responses."""

    def _make(status_code: int = 200, body: bytes = b"", headers: Optional[dict] = None,
              json_data=None, content_length: bool = True):
        response = MagicMock()
        response.status_code = status_code
        response.headers = CaseInsensitiveDict(headers or {})
        if content_length and "content-length" not in response.headers:
            response.headers["Content-Length"] = str(len(body))
        response.iter_content.side_effect = lambda chunk_size=1: iter(
            [body[i:i + 4096] for i in range(0, len(body), 4096)]
        )
        if json_data is not None:
            response.json.return_value = json_data
        else:
            response.json.side_effect = ValueError("No JSON object could be decoded")
        return response

    return _make


def make_installed_ruby(root: Path, version: str, platform_tag: str = "x86_64_linux") -> Path:
    """Create a minimal installation directory with an executable bin/ruby."""
    path = root / version / platform_tag
    (path / "bin").mkdir(parents=True)
    ruby = path / "bin" / "ruby"
    ruby.write_bytes(RUBY_SCRIPT)
    ruby.chmod(0o755)
    return path
