"""
压缩包解压模块。

先解压到暂存目录，完整成功后再通过 rename 放到最终安装位置，
解压失败时删除暂存内容，但保留已缓存的压缩包。
"""

import gzip
import os
import posixpath
import shutil
import tarfile
import tempfile
import zlib
from pathlib import Path
from typing import Dict, List, Optional, Set

from rvman.core.exceptions import ExtractionError
from rvman.utils.logger import get_logger
from rvman.utils.input_validator import InputValidator, InputValidationError

logger = get_logger()

STAGING_PREFIX = ".staging-"
BACKUP_PREFIX = ".replaced-"

ARCHIVE_ERRORS = (tarfile.TarError, EOFError, zlib.error, gzip.BadGzipFile, InputValidationError)


def _extract_options() -> Dict[str, str]:
    """extractall 的额外参数；旧版 tarfile 没有 filter 参数，默认即按原样还原。"""
    if hasattr(tarfile, "fully_trusted_filter"):
        return {"filter": "fully_trusted"}
    return {}


def _normalize_member(name: str) -> str:
    return posixpath.normpath(name.replace("\\", "/"))


def _symlinked_ancestor(name: str, symlinks: Set[str]) -> Optional[str]:
    """
    返回 name 路径上属于符号链接成员的上级目录。

    参数:
        name: 成员路径
        symlinks: 压缩包中所有符号链接成员的规范化路径

    返回:
        第一个是符号链接的上级路径，没有返回 None
    """
    parts = _normalize_member(name).split("/")
    for i in range(1, len(parts)):
        ancestor = "/".join(parts[:i])
        if ancestor in symlinks:
            return ancestor
    return None


class ArchiveExtractor:
    """
    gzip 压缩的 tar 包解压器。

    保留成员的可执行权限位，目录和符号链接按原样还原。
    """

    def install(
        self,
        tarball_path: Path,
        install_dir: Path,
        staging_root: Optional[Path] = None,
    ) -> Path:
        """
        将压缩包解压并原子地放到 install_dir。

        参数:
            tarball_path: .tar.gz 文件路径
            install_dir: 最终安装目录
            staging_root: 暂存目录的父目录，须与 install_dir 在同一文件系统，
                默认为 install_dir 的父目录

        返回:
            install_dir

        抛出:
            ExtractionError: 压缩包无效或无法放到最终位置
        """
        tarball_path = Path(tarball_path)
        install_dir = Path(install_dir)
        staging_root = Path(staging_root) if staging_root else install_dir.parent

        try:
            staging_root.mkdir(parents=True, exist_ok=True)
            staging_dir = Path(tempfile.mkdtemp(prefix=STAGING_PREFIX, dir=staging_root))
        except OSError as e:
            raise ExtractionError(f"无法创建暂存目录 {staging_root}: {e}", staging_root) from e

        try:
            logger.info(f"正在解压 {tarball_path}")
            self._extract_archive(tarball_path, staging_dir)
            content_dir = self._find_content_root(staging_dir)
            self._promote(content_dir, install_dir)
        finally:
            shutil.rmtree(staging_dir, ignore_errors=True)

        logger.info(f"已安装到 {install_dir}")
        return install_dir

    def _extract_archive(self, tarball_path: Path, staging_dir: Path) -> None:
        """
        解压到暂存目录，防止路径遍历漏洞。

        参数:
            tarball_path: 压缩包路径
            staging_dir: 暂存目录
        """
        try:
            with tarfile.open(tarball_path, mode="r:gz") as tf:
                members = tf.getmembers()
                if not members:
                    raise ExtractionError(f"压缩包为空: {tarball_path}", tarball_path)

                self._validate_members(tarball_path, staging_dir, members)

                # 成员路径已在上面校验，这里按原样还原权限位和符号链接
                tf.extractall(staging_dir, members=members, **_extract_options())
        except ExtractionError:
            raise
        except ARCHIVE_ERRORS as e:
            raise ExtractionError(f"无效的压缩包 {tarball_path}: {e}", tarball_path) from e
        except OSError as e:
            raise ExtractionError(f"解压 {tarball_path} 失败: {e}", tarball_path) from e

    def _validate_members(
        self,
        tarball_path: Path,
        staging_dir: Path,
        members: List[tarfile.TarInfo],
    ) -> None:
        """
        校验所有成员都落在暂存目录内。

        符号链接本身按原样保留，但不允许其他成员经由符号链接写入或链接，
        否则解压时会穿过链接写到暂存目录之外。

        抛出:
            InputValidationError: 绝对路径或上级目录引用
            ExtractionError: 成员位于符号链接之下
        """
        symlinks = {_normalize_member(m.name) for m in members if m.issym()}

        for member in members:
            InputValidator.validate_member_name(member.name)
            InputValidator.safe_join_path(str(staging_dir), member.name)
            linked = [member.name]
            if member.islnk():
                InputValidator.validate_member_name(member.linkname)
                linked.append(member.linkname)
            for name in linked:
                ancestor = _symlinked_ancestor(name, symlinks)
                if ancestor is not None:
                    raise ExtractionError(
                        f"压缩包成员 {name} 位于符号链接 {ancestor} 之下: {tarball_path}",
                        tarball_path,
                    )

    def _find_content_root(self, staging_dir: Path) -> Path:
        """
        压缩包只有一个顶层目录时返回该目录，否则返回暂存目录本身。

        参数:
            staging_dir: 暂存目录

        返回:
            要放到安装位置的目录
        """
        entries = list(staging_dir.iterdir())
        if len(entries) == 1 and entries[0].is_dir() and not entries[0].is_symlink():
            return entries[0]
        # mkdtemp 创建的目录权限为 0700
        os.chmod(staging_dir, 0o755)
        return staging_dir

    def _promote(self, content_dir: Path, install_dir: Path) -> None:
        """
        把解压结果重命名到最终位置，已有安装先移到旁边，成功后再删除。

        参数:
            content_dir: 解压得到的目录
            install_dir: 最终安装目录
        """
        backup_dir = None
        try:
            install_dir.parent.mkdir(parents=True, exist_ok=True)
            if install_dir.exists():
                backup_dir = install_dir.with_name(f"{BACKUP_PREFIX}{install_dir.name}-{os.getpid()}")
                os.replace(install_dir, backup_dir)
            os.replace(content_dir, install_dir)
        except OSError as e:
            if backup_dir is not None and backup_dir.exists() and not install_dir.exists():
                os.replace(backup_dir, install_dir)
            raise ExtractionError(f"无法安装到 {install_dir}: {e}", install_dir) from e

        if backup_dir is not None:
            shutil.rmtree(backup_dir, ignore_errors=True)
