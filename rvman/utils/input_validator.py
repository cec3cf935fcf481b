"""
输入验证模块。

提供用户输入的验证和 sanitization 功能。
"""

import os
import re
from rvman.utils.logger import get_logger

logger = get_logger()


class InputValidationError(Exception):
    """输入验证错误异常。"""
    pass


class InputValidator:
    """
    输入验证器类。

    提供版本号、路径和压缩包成员名的验证功能。
    """

    VERSION_PATTERN = re.compile(r'^[a-zA-Z0-9._-]+$')
    MAX_PATH_LENGTH = 1024
    MAX_VERSION_LENGTH = 100

    @classmethod
    def validate_version_string(cls, version: str) -> bool:
        """
        验证版本号字符串的有效性。

        参数:
            version: 版本号字符串

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if not version or not version.strip():
            raise InputValidationError("版本号不能为空")

        if len(version.strip()) > cls.MAX_VERSION_LENGTH:
            raise InputValidationError(f"版本号不能超过 {cls.MAX_VERSION_LENGTH} 个字符")

        if not cls.VERSION_PATTERN.match(version.strip()):
            raise InputValidationError(f"版本号格式无效: {version}")

        return True

    @classmethod
    def sanitize_version_string(cls, version: str) -> str:
        """
        sanitize 版本号字符串。

        参数:
            version: 原始版本号

        返回:
            sanitized 后的版本号
        """
        if not version:
            return ""
        return version.strip()

    @classmethod
    def validate_path(cls, path: str) -> bool:
        """
        验证用户提供的路径的有效性。

        参数:
            path: 路径字符串

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if path is None:
            return True

        if not str(path).strip():
            raise InputValidationError("路径不能为空")

        if len(str(path)) > cls.MAX_PATH_LENGTH:
            raise InputValidationError(f"路径不能超过 {cls.MAX_PATH_LENGTH} 个字符")

        return True

    @classmethod
    def validate_member_name(cls, name: str) -> bool:
        """
        验证压缩包成员名，拒绝绝对路径和上级目录引用。

        参数:
            name: 压缩包内的成员路径

        返回:
            验证通过返回 True，否则抛出 InputValidationError
        """
        if not name:
            raise InputValidationError("压缩包包含空路径")

        if name.startswith("/") or name.startswith("\\") or re.match(r"^[A-Za-z]:", name):
            raise InputValidationError(f"压缩包包含绝对路径: {name}")

        parts = re.split(r"[/\\]", name)
        if ".." in parts:
            raise InputValidationError(f"压缩包包含非法路径: {name}")

        return True

    @classmethod
    def safe_join_path(cls, base_path: str, *paths: str) -> str:
        """
        安全连接路径，防止路径遍历。

        参数:
            base_path: 基础路径
            *paths: 要连接的路径部分

        返回:
            安全连接后的路径

        抛出:
            InputValidationError: 如果结果路径位于 base_path 之外
        """
        base = os.path.abspath(base_path)
        joined = os.path.abspath(os.path.join(base, *paths))
        if joined != base and not joined.startswith(base + os.sep):
            raise InputValidationError(f"路径遍历检测: {joined}")
        return joined
