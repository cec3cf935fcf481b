"""
核心异常定义。

所有核心操作的错误都派生自 RvError，命令行层据此统一转换为非零退出码。
"""

from pathlib import Path
from typing import Optional


class RvError(Exception):
    """rv 核心错误基类。"""
    pass


class ConfigError(RvError):
    """配置错误异常。"""
    pass


class ConfigLoadError(ConfigError):
    """配置加载错误异常。"""
    pass


class ConfigValidationError(ConfigError):
    """配置验证错误异常。"""
    pass


class ResolutionError(RvError):
    """版本解析错误异常。"""
    pass


class InvalidVersionRequestError(ResolutionError):
    """版本请求格式错误异常。"""
    pass


class NoMatchingRubyError(ResolutionError):
    """未找到匹配的 Ruby 版本。"""

    def __init__(self, request: Optional[object] = None):
        self.request = request
        if request is None:
            super().__init__("未找到匹配的 Ruby 版本")
        else:
            super().__init__(f"未找到匹配的 Ruby 版本: {request}")


class UnsupportedPlatformError(ResolutionError):
    """当前主机平台不受支持。"""

    def __init__(self, os_name: str, arch: str):
        self.os_name = os_name
        self.arch = arch
        super().__init__(f"不支持的平台: {os_name}/{arch}")


class TransportError(RvError):
    """网络传输错误异常。"""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class HttpStatusError(TransportError):
    """HTTP 响应状态码非 200。"""

    def __init__(self, url: str, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message or f"请求 {url} 失败，HTTP 状态码 {status_code}", url)


class ReleaseNotFoundError(HttpStatusError):
    """远程不存在该版本或该平台的发行包 (HTTP 404)。"""

    def __init__(self, url: str):
        super().__init__(url, 404, f"远程不存在该版本/平台的发行包: {url}")


class NetworkError(TransportError):
    """连接失败、超时等网络错误。"""
    pass


class ReleaseMetadataError(TransportError):
    """发行版索引无法解析。"""
    pass


class IncompleteDownloadError(TransportError):
    """下载内容长度与响应头不一致。"""

    def __init__(self, url: str, expected: int, received: int):
        self.expected = expected
        self.received = received
        super().__init__(f"下载不完整: {url} (期望 {expected} 字节，实际 {received} 字节)", url)


class CacheError(RvError):
    """缓存目录读写错误异常。"""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(message)


class ExtractionError(RvError):
    """压缩包解压错误异常。"""

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        super().__init__(message)


class InstallationError(RvError):
    """安装错误异常。"""
    pass


class UninstallError(RvError):
    """卸载时删除目录失败。"""

    def __init__(self, path: Path, error: OSError):
        self.path = path
        self.error = error
        super().__init__(f"无法删除目录 {path}: {error}")
