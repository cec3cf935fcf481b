"""
卸载模块。

解析本地匹配的 Ruby 并递归删除其目录；不清理对应的缓存压缩包，
以便之后重新安装时复用。
"""

import shutil
from typing import Callable, List, Optional

from rvman.core.exceptions import NoMatchingRubyError, UninstallError
from rvman.core.models import InstalledRuby
from rvman.core.platforms import PlatformTag
from rvman.core.resolver import VersionResolver
from rvman.core.version_request import VersionRequest
from rvman.utils.logger import get_logger

logger = get_logger()


class RubyUninstaller:
    """卸载器类。"""

    def __init__(self, resolver: VersionResolver, platform: PlatformTag):
        self.resolver = resolver
        self.platform = platform

    def uninstall(
        self,
        request: VersionRequest,
        installed: List[InstalledRuby],
        status_callback: Optional[Callable[[str], None]] = None,
    ) -> InstalledRuby:
        """
        卸载满足请求的已安装 Ruby。

        参数:
            request: 版本请求
            installed: 已安装列表
            status_callback: 状态消息回调函数

        返回:
            被删除的 InstalledRuby

        抛出:
            NoMatchingRubyError: 没有匹配的安装，此时不修改文件系统
            UninstallError: 删除目录失败，附带出错路径
        """
        ruby = self.resolver.resolve_local(request, installed, self.platform)
        if ruby is None:
            raise NoMatchingRubyError(request)

        if status_callback:
            status_callback(f"正在删除 {ruby.path}")
        logger.info(f"正在删除 {ruby.path}")

        try:
            shutil.rmtree(ruby.path)
        except OSError as e:
            logger.error(f"删除 {ruby.path} 失败: {e}")
            raise UninstallError(ruby.path, e) from e

        self._remove_empty_parent(ruby)
        logger.info(f"已卸载 Ruby {ruby.version}")
        return ruby

    def _remove_empty_parent(self, ruby: InstalledRuby) -> None:
        """删除只剩空目录的版本目录。"""
        version_dir = ruby.path.parent
        try:
            if version_dir.is_dir() and not any(version_dir.iterdir()):
                version_dir.rmdir()
        except OSError as e:
            logger.debug(f"保留版本目录 {version_dir}: {e}")
