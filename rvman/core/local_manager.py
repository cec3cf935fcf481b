"""
本地版本管理模块。

扫描安装根目录，发现 <root>/<version>/<platform>/bin/ruby 形式的已安装 Ruby。
"""

import os
from pathlib import Path
from typing import List, Optional

from rvman.core import version_utils
from rvman.core.models import InstalledRuby
from rvman.utils.logger import get_logger

logger = get_logger()


class LocalManager:
    """
    本地版本管理器类。

    负责发现本地已安装的 Ruby 版本。
    """

    def __init__(self, ruby_dirs: List[Path], platform_tag: Optional[str] = None):
        """
        初始化本地版本管理器。

        参数:
            ruby_dirs: 需要扫描的安装根目录列表
            platform_tag: 只保留该平台的安装，None 表示不过滤
        """
        self.ruby_dirs = [Path(p) for p in ruby_dirs]
        self.platform_tag = platform_tag

    def _validate_installation(self, path: Path) -> bool:
        """
        验证安装是否完整可运行。

        参数:
            path: 安装目录

        返回:
            bin/ruby 存在且可执行返回 True
        """
        executable = path / "bin" / "ruby"
        return executable.is_file() and os.access(executable, os.X_OK)

    def _scan_root(self, root: Path) -> List[InstalledRuby]:
        """
        扫描单个安装根目录。

        参数:
            root: 安装根目录

        返回:
            该目录下的已安装版本列表
        """
        rubies = []
        for version_dir in root.iterdir():
            if version_dir.name.startswith(".") or not version_dir.is_dir():
                continue
            if version_utils.split_version(version_dir.name) is None:
                logger.debug(f"目录名不是版本号，跳过: {version_dir}")
                continue

            for platform_dir in version_dir.iterdir():
                if platform_dir.name.startswith(".") or not platform_dir.is_dir():
                    continue
                if self.platform_tag and platform_dir.name != self.platform_tag:
                    continue
                if not self._validate_installation(platform_dir):
                    logger.warning(f"目录 {platform_dir} 中没有可执行的 bin/ruby，跳过")
                    continue
                rubies.append(InstalledRuby(version_dir.name, platform_dir.name, platform_dir))
        return rubies

    def scan_installed(self) -> List[InstalledRuby]:
        """
        扫描所有安装根目录中的已安装 Ruby。

        返回:
            按版本号降序排列的已安装列表
        """
        rubies: List[InstalledRuby] = []
        for root in self.ruby_dirs:
            if not root.is_dir():
                logger.debug(f"安装根目录不存在: {root}")
                continue
            try:
                rubies.extend(self._scan_root(root))
            except OSError as e:
                logger.warning(f"扫描 {root} 时发生文件系统错误: {e}")

        logger.debug(f"找到 {len(rubies)} 个已安装的 Ruby")
        return version_utils.sort_versions_desc(rubies, key=lambda ruby: ruby.version)
