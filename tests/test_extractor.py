"""
Tests for archive extraction and atomic promotion.
"""

import io
import os
import tarfile
from pathlib import Path

import pytest

from conftest import RUBY_SCRIPT, build_ruby_tarball
from rvman.core.exceptions import ExtractionError
from rvman.core.extractor import ArchiveExtractor, _extract_options


def write(path: Path, data: bytes) -> Path:
    path.write_bytes(data)
    return path


def evil_tarball(name: str) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tf:
        info = tarfile.TarInfo(name)
        payload = b"owned\n"
        info.size = len(payload)
        tf.addfile(info, io.BytesIO(payload))
    return buffer.getvalue()


def symlinked_tarball(link_target: str) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tf:
        link = tarfile.TarInfo("portable-ruby/lib")
        link.type = tarfile.SYMTYPE
        link.linkname = link_target
        tf.addfile(link)
        info = tarfile.TarInfo("portable-ruby/lib/pwned.txt")
        payload = b"owned\n"
        info.size = len(payload)
        tf.addfile(info, io.BytesIO(payload))
    return buffer.getvalue()


def leftovers(root: Path) -> list:
    return [p.name for p in root.iterdir() if p.name.startswith(".")]


class TestArchiveExtractor:
    """Tests for ArchiveExtractor.install."""

    @pytest.fixture
    def extractor(self):
        return ArchiveExtractor()

    def test_strips_single_top_level_directory(self, extractor, tarball_file, tmp_path):
        target = tmp_path / "rubies" / "3.4.5" / "x86_64_linux"

        extractor.install(tarball_file, target, staging_root=tmp_path / "rubies")

        assert (target / "bin" / "ruby").read_bytes() == RUBY_SCRIPT
        assert (target / "lib" / "ruby.rb").is_file()
        assert not (target / "portable-ruby").exists()

    def test_preserves_executable_bit(self, extractor, tarball_file, tmp_path):
        target = tmp_path / "install"
        extractor.install(tarball_file, target)
        assert os.access(target / "bin" / "ruby", os.X_OK)
        assert not os.access(target / "lib" / "ruby.rb", os.X_OK)

    def test_preserves_symlinks(self, extractor, tarball_file, tmp_path):
        target = tmp_path / "install"
        extractor.install(tarball_file, target)
        irb = target / "bin" / "irb"
        assert irb.is_symlink()
        assert os.readlink(irb) == "ruby"

    def test_archive_without_top_level_directory(self, extractor, tmp_path):
        tarball = write(tmp_path / "flat.tar.gz", build_ruby_tarball(top=None))
        target = tmp_path / "install"
        extractor.install(tarball, target)
        assert os.access(target / "bin" / "ruby", os.X_OK)
        assert oct(target.stat().st_mode & 0o777) == oct(0o755)

    def test_invalid_payload_leaves_nothing_behind(self, extractor, tmp_path):
        tarball = write(tmp_path / "bad.tar.gz", b"<html>not a tarball</html>")
        root = tmp_path / "rubies"
        target = root / "3.4.5" / "x86_64_linux"

        with pytest.raises(ExtractionError):
            extractor.install(tarball, target, staging_root=root)

        assert not target.exists()
        assert leftovers(root) == []
        assert tarball.exists()

    def test_truncated_archive_is_rejected(self, extractor, tmp_path, tarball_bytes):
        tarball = write(tmp_path / "short.tar.gz", tarball_bytes[: len(tarball_bytes) // 2])
        target = tmp_path / "install"
        with pytest.raises(ExtractionError):
            extractor.install(tarball, target)
        assert not target.exists()

    @pytest.mark.parametrize("name", ["../escape.txt", "/etc/escape.txt", "portable-ruby/../../x"])
    def test_path_traversal_is_rejected(self, extractor, tmp_path, name):
        tarball = write(tmp_path / "evil.tar.gz", evil_tarball(name))
        target = tmp_path / "install" / "ruby"
        with pytest.raises(ExtractionError):
            extractor.install(tarball, target)
        assert not target.exists()
        assert not (tmp_path / "escape.txt").exists()

    def test_write_through_symlinked_directory_is_rejected(self, extractor, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        tarball = write(tmp_path / "link.tar.gz", symlinked_tarball(str(outside)))
        root = tmp_path / "rubies"
        target = root / "3.4.5" / "x86_64_linux"

        with pytest.raises(ExtractionError, match="pwned.txt"):
            extractor.install(tarball, target, staging_root=root)

        assert not (outside / "pwned.txt").exists()
        assert not target.exists()
        assert leftovers(root) == []

    def test_relative_symlinked_directory_is_rejected(self, extractor, tmp_path):
        tarball = write(tmp_path / "link.tar.gz", symlinked_tarball("../.."))
        target = tmp_path / "install" / "ruby"
        with pytest.raises(ExtractionError):
            extractor.install(tarball, target)
        assert not (tmp_path / "pwned.txt").exists()
        assert not target.exists()

    def test_extract_filter_follows_tarfile_support(self, monkeypatch):
        if hasattr(tarfile, "fully_trusted_filter"):
            assert _extract_options() == {"filter": "fully_trusted"}
            monkeypatch.delattr(tarfile, "fully_trusted_filter")
        assert _extract_options() == {}

    def test_extracts_without_filter_support(self, extractor, tarball_file, tmp_path, monkeypatch):
        monkeypatch.setattr("rvman.core.extractor._extract_options", lambda: {})
        target = tmp_path / "install"
        extractor.install(tarball_file, target)
        assert os.access(target / "bin" / "ruby", os.X_OK)
        assert (target / "bin" / "irb").is_symlink()

    def test_replaces_existing_installation(self, extractor, tarball_file, tmp_path):
        root = tmp_path / "rubies"
        target = root / "3.4.5" / "x86_64_linux"
        (target / "bin").mkdir(parents=True)
        (target / "stale.txt").write_text("old")

        extractor.install(tarball_file, target, staging_root=root)

        assert not (target / "stale.txt").exists()
        assert (target / "bin" / "ruby").is_file()
        assert leftovers(root) == []
        assert leftovers(root / "3.4.5") == []
