"""
核心模块抽象接口定义。

传输层可替换，测试和离线场景可以注入自己的实现。
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any


class ITransport(ABC):
    """网络传输抽象接口。"""

    @abstractmethod
    def download(self, url: str, dest: Path) -> int:
        """
        将 url 的响应体完整写入 dest。

        参数:
            url: 下载地址
            dest: 目标文件路径（通常是缓存的临时文件）

        返回:
            写入的字节数
        """
        pass

    @abstractmethod
    def fetch_json(self, url: str) -> Any:
        """获取并解码 JSON 文档。"""
        pass
