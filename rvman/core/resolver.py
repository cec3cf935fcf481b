"""
版本解析模块。

把版本请求解析为本地已安装的 Ruby，或确定性的远程下载目标。
"""

import re
from typing import Any, List, Optional

from rvman.core import version_utils
from rvman.core.exceptions import ReleaseMetadataError, ResolutionError
from rvman.core.interfaces import ITransport
from rvman.core.models import InstalledRuby, RemoteRelease
from rvman.core.platforms import PlatformTag
from rvman.core.version_request import VersionRequest
from rvman.utils.logger import get_logger

logger = get_logger()


def _pick_highest(versions: List[str]) -> Optional[str]:
    """优先返回最高的正式版，没有正式版时返回最高的预发布版。"""
    if not versions:
        return None
    releases = [v for v in versions if not version_utils.is_prerelease(v)]
    return version_utils.sort_versions_desc(releases or versions)[0]


class VersionResolver:
    """
    版本解析器类。

    本地匹配只看当前平台的安装；远程解析只有在请求 latest 时才访问网络。
    """

    def __init__(self, transport: ITransport, releases_url: str, releases_index_url: str):
        """
        初始化版本解析器。

        参数:
            transport: 传输层实例，用于获取发行版索引
            releases_url: 发行包下载基础 URL
            releases_index_url: 发行版索引 URL（解析 latest 时使用）
        """
        self.transport = transport
        self.releases_url = releases_url.rstrip("/")
        self.releases_index_url = releases_index_url

    def resolve_local(
        self,
        request: VersionRequest,
        installed: List[InstalledRuby],
        platform: PlatformTag,
    ) -> Optional[InstalledRuby]:
        """
        在已安装列表中查找满足请求的 Ruby。

        参数:
            request: 版本请求
            installed: 已安装列表
            platform: 当前平台

        返回:
            匹配的 InstalledRuby，不存在返回 None
        """
        candidates = [
            ruby for ruby in installed
            if ruby.platform == platform.tag and request.matches(ruby.version)
        ]
        best = _pick_highest([ruby.version for ruby in candidates])
        if best is None:
            logger.debug(f"本地没有满足 {request} 的 Ruby")
            return None

        for ruby in candidates:
            if ruby.version == best:
                logger.debug(f"{request} 匹配到本地 Ruby {ruby.version}: {ruby.path}")
                return ruby
        return None

    def resolve_remote(self, request: VersionRequest, platform: PlatformTag) -> RemoteRelease:
        """
        把版本请求解析为远程下载目标。

        参数:
            request: 版本请求
            platform: 当前平台

        返回:
            RemoteRelease 实例

        抛出:
            ResolutionError: 请求不是完整版本号
            NetworkError / ReleaseMetadataError: 解析 latest 时索引不可用
        """
        if request.is_latest:
            version = self.latest_version(platform)
        elif request.is_exact:
            version = request.version
        else:
            raise ResolutionError(f"安装需要完整的版本号（如 3.4.5）或 latest，收到: {request}")

        release = RemoteRelease(
            version=version,
            platform=platform.tag,
            base_url=self.releases_url,
            filename=platform.filename_for(version),
        )
        logger.debug(f"{request} 解析为 {release.url}")
        return release

    def _asset_pattern(self, platform: PlatformTag) -> re.Pattern:
        """由文件名模板构造匹配发行包文件名的正则表达式。"""
        prefix, _, suffix = platform.filename_template.partition("{version}")
        return re.compile(
            "^" + re.escape(prefix) + r"(?P<version>[0-9A-Za-z.\-]+?)" + re.escape(suffix) + "$"
        )

    def _asset_names(self, index: Any) -> List[str]:
        """从索引文档中取出发行包文件名列表。"""
        if not isinstance(index, dict) or not isinstance(index.get("assets"), list):
            raise ReleaseMetadataError(
                f"发行版索引格式无效，缺少 assets 列表: {self.releases_index_url}",
                self.releases_index_url,
            )
        return [
            asset["name"] for asset in index["assets"]
            if isinstance(asset, dict) and isinstance(asset.get("name"), str)
        ]

    def latest_version(self, platform: PlatformTag) -> str:
        """
        查询发行版索引，获取当前平台的最新版本号。

        参数:
            platform: 当前平台

        返回:
            最新版本号
        """
        logger.info(f"正在查询最新版本: {self.releases_index_url}")
        index = self.transport.fetch_json(self.releases_index_url)
        pattern = self._asset_pattern(platform)

        versions = []
        for name in self._asset_names(index):
            match = pattern.match(name)
            if match and version_utils.split_version(match.group("version")) is not None:
                versions.append(match.group("version"))

        latest = _pick_highest(versions)
        if latest is None:
            raise ReleaseMetadataError(
                f"发行版索引中没有适用于平台 {platform.tag} 的版本",
                self.releases_index_url,
            )
        logger.info(f"最新版本为 {latest}")
        return latest
