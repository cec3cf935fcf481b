"""
发行包缓存模块。

以下载 URL 的摘要为键的压缩包存储。最终文件只通过 rename 出现，
读者永远不会看到写了一半的文件；任何失败都会先删除临时文件再抛出。
"""

import hashlib
import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional

from rvman.core.exceptions import CacheError, RvError
from rvman.utils.logger import get_logger

logger = get_logger()

CACHE_SCHEMA = "ruby-v0"
TARBALL_DIR = "tarballs"
TARBALL_SUFFIX = ".tar.gz"
TEMP_SUFFIX = ".tmp"


def cache_digest(url: str) -> str:
    """
    计算缓存键。

    参数:
        url: 规范化的下载 URL

    返回:
        16 位十六进制摘要，相同 URL 总得到相同的键
    """
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]


class TarballCache:
    """
    内容寻址的压缩包缓存。

    布局为 <cache_dir>/ruby-v0/tarballs/<key>.tar.gz，
    下载中的文件为 <key>.tar.gz.tmp。
    禁用缓存时使用一次性临时目录，close() 时删除。
    """

    def __init__(self, cache_dir: Path, enabled: bool = True):
        """
        初始化缓存。

        参数:
            cache_dir: 缓存根目录
            enabled: 为 False 时使用临时目录，不跨调用复用
        """
        self.enabled = enabled
        self._ephemeral_dir: Optional[Path] = None
        if enabled:
            self.root = Path(cache_dir)
        else:
            self._ephemeral_dir = Path(tempfile.mkdtemp(prefix="rv-cache-"))
            self.root = self._ephemeral_dir
            logger.debug(f"缓存已禁用，使用临时目录 {self.root}")

    @property
    def tarball_dir(self) -> Path:
        return self.root / CACHE_SCHEMA / TARBALL_DIR

    def cache_key(self, url: str) -> str:
        return cache_digest(url)

    def tarball_path(self, url: str) -> Path:
        """缓存命中时的最终文件路径。"""
        return self.tarball_dir / f"{self.cache_key(url)}{TARBALL_SUFFIX}"

    def temp_path(self, url: str) -> Path:
        """下载过程中使用的临时文件路径。"""
        return self.tarball_dir / f"{self.cache_key(url)}{TARBALL_SUFFIX}{TEMP_SUFFIX}"

    def get_or_fetch(
        self,
        url: str,
        fetch_fn: Callable[[Path], object],
        status_callback: Optional[Callable[[str], None]] = None,
    ) -> Path:
        """
        返回 url 对应的缓存文件，未命中时调用 fetch_fn 下载。

        参数:
            url: 下载地址
            fetch_fn: 接收临时文件路径并把完整响应体写入其中的函数
            status_callback: 状态消息回调函数

        返回:
            最终缓存文件路径

        抛出:
            CacheError: 缓存目录无法创建或写入、重命名失败
            fetch_fn 抛出的其他 RvError 原样向上传播
        """
        final_path = self.tarball_path(url)
        if final_path.is_file():
            message = f"{final_path} 已存在，跳过下载"
            logger.info(message)
            if status_callback:
                status_callback(message)
            return final_path

        try:
            self.tarball_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheError(f"无法创建缓存目录 {self.tarball_dir}: {e}", self.tarball_dir) from e

        temp_path = self.temp_path(url)
        logger.debug(f"缓存未命中，下载到临时文件 {temp_path}")
        try:
            fetch_fn(temp_path)
            if not temp_path.is_file():
                raise CacheError(f"下载未生成文件: {temp_path}", temp_path)
            os.replace(temp_path, final_path)
        except RvError:
            self._discard(temp_path)
            raise
        except OSError as e:
            self._discard(temp_path)
            raise CacheError(f"写入缓存文件失败 {final_path}: {e}", final_path) from e
        except BaseException:
            self._discard(temp_path)
            raise

        logger.info(f"已缓存 {url} -> {final_path}")
        return final_path

    def _discard(self, temp_path: Path) -> None:
        """删除临时文件。"""
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"删除临时文件 {temp_path} 失败: {e}")

    def close(self) -> None:
        """删除禁用缓存时创建的临时目录。"""
        if self._ephemeral_dir is not None:
            shutil.rmtree(self._ephemeral_dir, ignore_errors=True)
            self._ephemeral_dir = None

    def __enter__(self) -> "TarballCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
