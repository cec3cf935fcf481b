"""
平台标签模块。

(操作系统, CPU 架构) 到平台标签和发行包文件名模板的显式映射表。
文件名模板是与上游发行方约定的外部契约，不从主机信息推导。
"""

import platform as _platform
import sys
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from rvman.core.exceptions import UnsupportedPlatformError


@dataclass(frozen=True)
class PlatformTag:
    """一个受支持的平台及其发行包命名规则。"""

    os: str
    arch: str
    tag: str
    filename_template: str

    def filename_for(self, version: str) -> str:
        """
        生成指定版本的发行包文件名。

        参数:
            version: 完整版本号

        返回:
            发行包文件名
        """
        return self.filename_template.format(version=version)

    def __str__(self) -> str:
        return self.tag


PLATFORM_TABLE: Dict[Tuple[str, str], PlatformTag] = {
    ("darwin", "aarch64"): PlatformTag(
        "darwin", "aarch64", "arm64_sonoma", "ruby-{version}.arm64_sonoma.tar.gz"
    ),
    ("darwin", "x86_64"): PlatformTag(
        "darwin", "x86_64", "ventura", "ruby-{version}.ventura.tar.gz"
    ),
    ("linux", "aarch64"): PlatformTag(
        "linux", "aarch64", "arm64_linux", "ruby-{version}.arm64_linux.tar.gz"
    ),
    ("linux", "x86_64"): PlatformTag(
        "linux", "x86_64", "x86_64_linux", "ruby-{version}.x86_64_linux.tar.gz"
    ),
}

ARCH_ALIASES = {
    "amd64": "x86_64",
    "x64": "x86_64",
    "arm64": "aarch64",
}


def normalize_os(os_name: str) -> str:
    """把 sys.platform / platform.system() 的取值统一为小写系统名。"""
    os_name = os_name.lower()
    if os_name.startswith("linux"):
        return "linux"
    return os_name


def normalize_arch(arch: str) -> str:
    """把 platform.machine() 的取值统一为表中的架构名。"""
    arch = arch.lower()
    return ARCH_ALIASES.get(arch, arch)


def lookup_platform(os_name: str, arch: str) -> PlatformTag:
    """
    查找 (系统, 架构) 对应的平台标签。

    参数:
        os_name: 操作系统名
        arch: CPU 架构名

    返回:
        PlatformTag 实例

    抛出:
        UnsupportedPlatformError: 组合不在映射表中
    """
    key = (normalize_os(os_name), normalize_arch(arch))
    tag = PLATFORM_TABLE.get(key)
    if tag is None:
        raise UnsupportedPlatformError(*key)
    return tag


def host_platform(os_name: Optional[str] = None, arch: Optional[str] = None) -> PlatformTag:
    """
    获取当前主机的平台标签。

    参数:
        os_name: 覆盖系统名（测试用），默认读取 sys.platform
        arch: 覆盖架构名（测试用），默认读取 platform.machine()

    返回:
        PlatformTag 实例
    """
    return lookup_platform(os_name or sys.platform, arch or _platform.machine())
