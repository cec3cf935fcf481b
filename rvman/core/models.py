"""
数据模型模块。

定义远程发行包和本地已安装 Ruby 的值类型。
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict


@dataclass(frozen=True)
class RemoteRelease:
    """
    已解析的远程下载目标。

    URL 由版本号和平台标签确定性地构造，无需网络请求。
    """

    version: str
    platform: str
    base_url: str
    filename: str

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/latest/download/{self.filename}"


@dataclass(frozen=True)
class InstalledRuby:
    """本地已解压可运行的 Ruby。"""

    version: str
    platform: str
    path: Path

    @property
    def executable(self) -> Path:
        return self.path / "bin" / "ruby"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "platform": self.platform,
            "path": str(self.path),
        }
