"""
安装模块。

组合解析器、缓存、传输层和解压器完成安装；
提供本地压缩包时跳过网络和缓存，直接解压。
"""

from pathlib import Path
from typing import Callable, Optional

from rvman.core.cache import TarballCache
from rvman.core.config_manager import Config
from rvman.core.exceptions import InstallationError, RvError
from rvman.core.extractor import ArchiveExtractor
from rvman.core.interfaces import ITransport
from rvman.core.models import InstalledRuby
from rvman.core.platforms import PlatformTag
from rvman.core.resolver import VersionResolver
from rvman.core.version_request import VersionRequest
from rvman.utils.logger import get_logger

logger = get_logger()


class RubyInstaller:
    """
    安装协调者。

    安装目录布局为 <install_root>/<version>/<platform>/。
    """

    def __init__(
        self,
        config: Config,
        platform: PlatformTag,
        resolver: VersionResolver,
        transport: ITransport,
        extractor: Optional[ArchiveExtractor] = None,
    ):
        """
        初始化安装器。

        参数:
            config: 进程配置
            platform: 当前平台
            resolver: 版本解析器
            transport: 传输层
            extractor: 解压器
        """
        self.config = config
        self.platform = platform
        self.resolver = resolver
        self.transport = transport
        self.extractor = extractor or ArchiveExtractor()

    def install_dir_for(self, install_root: Path, version: str) -> Path:
        return install_root / version / self.platform.tag

    def install(
        self,
        request: VersionRequest,
        install_dir: Optional[Path] = None,
        tarball_path: Optional[Path] = None,
        status_callback: Optional[Callable[[str], None]] = None,
    ) -> InstalledRuby:
        """
        安装指定版本。

        参数:
            request: 版本请求
            install_dir: 本次调用使用的安装根目录，覆盖配置且不持久化
            tarball_path: 本地压缩包路径，提供时跳过下载
            status_callback: 状态消息回调函数

        返回:
            安装完成的 InstalledRuby

        抛出:
            RvError 的各子类，原样向上传播
        """
        install_root = Path(install_dir) if install_dir else self.config.install_root

        try:
            if tarball_path is not None:
                return self._install_from_tarball(request, Path(tarball_path), install_root, status_callback)
            return self._install_from_remote(request, install_root, status_callback)
        except RvError as e:
            logger.error(f"安装 {request} 失败: {e}")
            raise

    def _install_from_tarball(
        self,
        request: VersionRequest,
        tarball_path: Path,
        install_root: Path,
        status_callback: Optional[Callable[[str], None]],
    ) -> InstalledRuby:
        """直接解压本地压缩包。"""
        if not request.is_exact:
            raise InstallationError(f"使用本地压缩包安装时必须指定完整版本号，收到: {request}")
        if not tarball_path.is_file():
            raise InstallationError(f"压缩包不存在: {tarball_path}")

        logger.info(f"从本地压缩包安装 {request}: {tarball_path}")
        return self._extract(request.version, tarball_path, install_root, status_callback)

    def _install_from_remote(
        self,
        request: VersionRequest,
        install_root: Path,
        status_callback: Optional[Callable[[str], None]],
    ) -> InstalledRuby:
        """解析远程版本，经缓存下载后解压。"""
        release = self.resolver.resolve_remote(request, self.platform)
        url = release.url

        def fetch(dest: Path) -> int:
            if status_callback:
                status_callback(f"正在下载 {url}")
            return self.transport.download(url, dest)

        with TarballCache(self.config.cache_dir, enabled=not self.config.no_cache) as cache:
            tarball = cache.get_or_fetch(url, fetch, status_callback)
            return self._extract(release.version, tarball, install_root, status_callback)

    def _extract(
        self,
        version: str,
        tarball: Path,
        install_root: Path,
        status_callback: Optional[Callable[[str], None]],
    ) -> InstalledRuby:
        target_dir = self.install_dir_for(install_root, version)
        if status_callback:
            status_callback(f"正在解压到 {target_dir}")
        self.extractor.install(tarball, target_dir, staging_root=install_root)
        logger.info(f"成功安装 Ruby {version}: {target_dir}")
        return InstalledRuby(version, self.platform.tag, target_dir)
