"""
版本管理器模块。

提供 Ruby 版本的列出、查找、安装、卸载和项目版本固定功能。
"""

from pathlib import Path
from typing import Callable, List, Optional

from rvman.core.config_manager import Config
from rvman.core.exceptions import InvalidVersionRequestError, NoMatchingRubyError
from rvman.core.extractor import ArchiveExtractor
from rvman.core.installer import RubyInstaller
from rvman.core.interfaces import ITransport
from rvman.core.local_manager import LocalManager
from rvman.core.models import InstalledRuby
from rvman.core.platforms import PlatformTag, host_platform
from rvman.core.resolver import VersionResolver
from rvman.core.transport import TRANSIENT_ERRORS, HttpTransport
from rvman.core.uninstaller import RubyUninstaller
from rvman.core.version_request import VersionRequest
from rvman.utils.file_utils import atomic_write_text
from rvman.utils.logger import get_logger
from rvman.utils.retry import RetryHandler

logger = get_logger()

VERSION_FILE = ".ruby-version"


class VersionManager:
    """
    版本管理器类。

    本类作为协调者，把具体工作委托给解析器、安装器、卸载器和本地管理器。
    平台在构造时确定，不受支持的平台在此直接失败。
    """

    def __init__(
        self,
        config: Config,
        transport: Optional[ITransport] = None,
        platform: Optional[PlatformTag] = None,
    ):
        """
        初始化版本管理器。

        参数:
            config: 进程配置
            transport: 传输层，默认为 HttpTransport
            platform: 平台标签，默认检测当前主机

        抛出:
            UnsupportedPlatformError: 当前主机平台不受支持
        """
        self.config = config
        self.platform = platform or host_platform()
        self.transport = transport or HttpTransport(
            timeout=config.request_timeout,
            retry_handler=RetryHandler(
                max_retries=config.download_retry_count,
                transient_errors=TRANSIENT_ERRORS,
            ),
        )
        self.resolver = VersionResolver(
            self.transport, config.releases_url, config.releases_index_url
        )
        self.local_manager = LocalManager(config.search_dirs, self.platform.tag)
        self.installer = RubyInstaller(
            config, self.platform, self.resolver, self.transport, ArchiveExtractor()
        )
        self.uninstaller = RubyUninstaller(self.resolver, self.platform)

    def scan_installed(self) -> List[InstalledRuby]:
        """扫描本地已安装的 Ruby。"""
        return self.local_manager.scan_installed()

    def list_rubies(self, request: Optional[VersionRequest] = None) -> List[InstalledRuby]:
        """
        列出已安装的 Ruby。

        参数:
            request: 可选的版本过滤条件

        返回:
            按版本号降序排列的列表
        """
        rubies = self.scan_installed()
        if request is None:
            return rubies
        return [ruby for ruby in rubies if request.matches(ruby.version)]

    def find(self, request: VersionRequest) -> InstalledRuby:
        """
        查找满足请求的已安装 Ruby。

        参数:
            request: 版本请求

        返回:
            InstalledRuby 实例

        抛出:
            NoMatchingRubyError: 没有匹配的安装
        """
        ruby = self.resolver.resolve_local(request, self.scan_installed(), self.platform)
        if ruby is None:
            raise NoMatchingRubyError(request)
        return ruby

    def executable_for(self, request: VersionRequest) -> Path:
        """满足请求的已安装 Ruby 的 bin/ruby 路径。"""
        return self.find(request).executable

    def install(
        self,
        request: VersionRequest,
        install_dir: Optional[Path] = None,
        tarball_path: Optional[Path] = None,
        status_callback: Optional[Callable[[str], None]] = None,
    ) -> InstalledRuby:
        """下载并安装指定版本，参见 RubyInstaller.install。"""
        return self.installer.install(request, install_dir, tarball_path, status_callback)

    def uninstall(
        self,
        request: VersionRequest,
        status_callback: Optional[Callable[[str], None]] = None,
    ) -> InstalledRuby:
        """卸载指定版本，参见 RubyUninstaller.uninstall。"""
        return self.uninstaller.uninstall(request, self.scan_installed(), status_callback)

    def pin(self, request: VersionRequest, project_dir: Path) -> Path:
        """
        把版本写入项目的 .ruby-version 文件。

        参数:
            request: 要固定的版本
            project_dir: 项目目录

        返回:
            写入的文件路径
        """
        version_file = Path(project_dir) / VERSION_FILE
        atomic_write_text(version_file, f"{request.version}\n")
        logger.info(f"已将 {version_file} 设置为 {request.version}")
        return version_file

    def pinned_version(self, project_dir: Path) -> Optional[str]:
        """
        从项目目录向上查找 .ruby-version。

        参数:
            project_dir: 起始目录

        返回:
            固定的版本字符串，未找到返回 None

        抛出:
            InvalidVersionRequestError: .ruby-version 无法读取或不是 UTF-8 文本
        """
        start = Path(project_dir).resolve()
        for directory in (start, *start.parents):
            version_file = directory / VERSION_FILE
            if version_file.is_file():
                try:
                    content = version_file.read_text(encoding="utf-8").strip()
                except (OSError, UnicodeDecodeError) as e:
                    raise InvalidVersionRequestError(f"无法读取 {version_file}: {e}") from e
                if content:
                    logger.debug(f"使用 {version_file} 中固定的版本 {content}")
                    return content
        return None

    def default_request(self, project_dir: Path) -> VersionRequest:
        """项目固定的版本，未固定时为 latest。"""
        pinned = self.pinned_version(project_dir)
        return VersionRequest.parse(pinned) if pinned else VersionRequest.parse("latest")
