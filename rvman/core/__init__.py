"""
rv 核心模块。

提供配置、版本解析、缓存、下载、解压、安装和卸载功能。
"""

from .interfaces import ITransport
from .config_manager import Config, ConfigManager
from .exceptions import (
    RvError, ConfigError, ConfigLoadError, ConfigValidationError,
    ResolutionError, InvalidVersionRequestError, NoMatchingRubyError, UnsupportedPlatformError,
    TransportError, HttpStatusError, ReleaseNotFoundError, NetworkError, ReleaseMetadataError,
    IncompleteDownloadError, CacheError, ExtractionError, InstallationError, UninstallError,
)
from .models import InstalledRuby, RemoteRelease
from .platforms import PlatformTag, PLATFORM_TABLE, host_platform, lookup_platform
from .version_request import VersionRequest
from .cache import TarballCache, cache_digest
from .transport import HttpTransport
from .extractor import ArchiveExtractor
from .resolver import VersionResolver
from .local_manager import LocalManager
from .installer import RubyInstaller
from .uninstaller import RubyUninstaller
from .version_manager import VersionManager
from . import version_utils

__all__ = [
    "ITransport",
    "Config", "ConfigManager",
    "RvError", "ConfigError", "ConfigLoadError", "ConfigValidationError",
    "ResolutionError", "InvalidVersionRequestError", "NoMatchingRubyError", "UnsupportedPlatformError",
    "TransportError", "HttpStatusError", "ReleaseNotFoundError", "NetworkError", "ReleaseMetadataError",
    "IncompleteDownloadError", "CacheError", "ExtractionError", "InstallationError", "UninstallError",
    "InstalledRuby", "RemoteRelease",
    "PlatformTag", "PLATFORM_TABLE", "host_platform", "lookup_platform",
    "VersionRequest",
    "TarballCache", "cache_digest",
    "HttpTransport",
    "ArchiveExtractor",
    "VersionResolver",
    "LocalManager",
    "RubyInstaller",
    "RubyUninstaller",
    "VersionManager",
    "version_utils",
]
