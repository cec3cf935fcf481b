"""
配置管理器模块。

启动时一次性读取配置文件和 RV_* 环境变量，生成不可变的 Config，
之后显式传递给各组件，组件自身不再读取环境变量。
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional

import platformdirs

from rvman.core.exceptions import ConfigLoadError, ConfigValidationError
from rvman.utils.logger import get_logger
from rvman.utils.input_validator import InputValidator, InputValidationError

logger = get_logger()

DEFAULT_RELEASES_URL = "https://github.com/spinel-coop/rv-ruby/releases"
DEFAULT_RELEASES_INDEX_URL = "https://api.github.com/repos/spinel-coop/rv-ruby/releases/latest"

TRUTHY_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """进程级配置值。"""

    cache_dir: Path
    install_root: Path
    ruby_dirs: List[Path] = field(default_factory=list)
    releases_url: str = DEFAULT_RELEASES_URL
    releases_index_url: str = DEFAULT_RELEASES_INDEX_URL
    no_cache: bool = False
    download_retry_count: int = 3
    request_timeout: float = 30

    @property
    def search_dirs(self) -> List[Path]:
        """扫描已安装 Ruby 的目录列表，安装根目录总在首位。"""
        dirs = [self.install_root]
        for path in self.ruby_dirs:
            if path not in dirs:
                dirs.append(path)
        return dirs


class ConfigManager:
    """
    配置管理器类。

    负责加载、验证配置文件并合并环境变量覆盖项。
    """

    CONFIG_DIR = Path(platformdirs.user_config_dir("rv"))
    CONFIG_FILE = CONFIG_DIR / "config.json"

    SETTINGS_FIELDS = {
        "cache_dir": str,
        "install_root": str,
        "ruby_dirs": list,
        "releases_url": str,
        "releases_index_url": str,
        "no_cache": bool,
        "download_retry_count": int,
        "request_timeout": (int, float),
    }

    ENV_OVERRIDES = {
        "RV_CACHE_DIR": "cache_dir",
        "RV_NO_CACHE": "no_cache",
        "RV_RELEASES_URL": "releases_url",
        "RV_RELEASES_INDEX_URL": "releases_index_url",
        "RV_INSTALL_DIR": "install_root",
    }

    def __init__(
        self,
        config_file: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        初始化配置管理器。

        参数:
            config_file: 显式指定的配置文件，指定后文件必须存在
            environ: 环境变量映射，默认为 os.environ
        """
        self.config_file = Path(config_file) if config_file else None
        self.environ = os.environ if environ is None else environ

    def _get_builtin_default_settings(self) -> dict[str, Any]:
        """获取内置默认配置。"""
        return {
            "cache_dir": platformdirs.user_cache_dir("rv"),
            "install_root": str(Path.home() / ".rubies"),
            "ruby_dirs": [],
            "releases_url": DEFAULT_RELEASES_URL,
            "releases_index_url": DEFAULT_RELEASES_INDEX_URL,
            "no_cache": False,
            "download_retry_count": 3,
            "request_timeout": 30,
        }

    def _read_settings_file(self) -> dict[str, Any]:
        """
        读取配置文件中的 settings 部分。

        返回:
            settings 字典，默认配置文件不存在时返回空字典
        """
        path = self.config_file or self.CONFIG_FILE
        if not path.exists():
            if self.config_file is not None:
                raise ConfigLoadError(f"配置文件不存在: {path}")
            logger.debug(f"配置文件不存在，使用内置默认配置: {path}")
            return {}

        logger.debug(f"从文件加载配置: {path}")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (IOError, OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise ConfigLoadError(f"无法加载配置文件 {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigValidationError(f"配置文件 {path} 顶层必须是对象")
        settings = data.get("settings", {})
        if not isinstance(settings, dict):
            raise ConfigValidationError("字段 'settings' 必须是 dict 类型")
        return settings

    def _apply_env_overrides(self, settings: dict[str, Any]) -> None:
        """用 RV_* 环境变量覆盖配置项。"""
        for env_name, key in self.ENV_OVERRIDES.items():
            value = self.environ.get(env_name)
            if value is None or value == "":
                continue
            if key == "no_cache":
                settings[key] = value.strip().lower() in TRUTHY_VALUES
            else:
                settings[key] = value
            logger.debug(f"环境变量 {env_name} 覆盖配置项 {key}")

    def validate_settings(self, settings: dict[str, Any]) -> bool:
        """
        验证配置的有效性。

        参数:
            settings: 要验证的 settings 字典

        返回:
            验证通过返回 True

        抛出:
            ConfigValidationError: 配置验证失败时抛出
        """
        for key, expected_type in self.SETTINGS_FIELDS.items():
            if key not in settings:
                raise ConfigValidationError(f"settings 中缺少必需字段: {key}")
            value = settings[key]
            # bool 是 int 的子类
            if isinstance(value, bool) and expected_type is not bool:
                raise ConfigValidationError(f"字段 'settings.{key}' 类型错误: bool")
            if not isinstance(value, expected_type):
                raise ConfigValidationError(
                    f"字段 'settings.{key}' 类型错误，实际为 {type(value).__name__}"
                )

        if not all(isinstance(p, str) for p in settings["ruby_dirs"]):
            raise ConfigValidationError("字段 'settings.ruby_dirs' 的元素必须是路径字符串")

        if settings["download_retry_count"] < 0:
            raise ConfigValidationError("download_retry_count 不能为负数")
        if settings["request_timeout"] <= 0:
            raise ConfigValidationError("request_timeout 必须大于 0")

        for key in ("cache_dir", "install_root"):
            try:
                InputValidator.validate_path(settings[key])
            except InputValidationError as e:
                raise ConfigValidationError(f"字段 'settings.{key}' 无效: {e}") from e

        logger.debug("配置验证通过")
        return True

    def load_config(self) -> Config:
        """
        加载配置。

        优先级：环境变量 > 配置文件 > 内置默认值。

        返回:
            Config 实例
        """
        settings = self._get_builtin_default_settings()
        settings.update(self._read_settings_file())
        self._apply_env_overrides(settings)
        self.validate_settings(settings)

        config = Config(
            cache_dir=Path(settings["cache_dir"]).expanduser(),
            install_root=Path(settings["install_root"]).expanduser(),
            ruby_dirs=[Path(p).expanduser() for p in settings["ruby_dirs"]],
            releases_url=settings["releases_url"].rstrip("/"),
            releases_index_url=settings["releases_index_url"],
            no_cache=settings["no_cache"],
            download_retry_count=settings["download_retry_count"],
            request_timeout=settings["request_timeout"],
        )
        logger.debug(f"配置加载成功: {config}")
        return config
