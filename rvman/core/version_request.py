"""
版本请求模块。

将用户输入的版本说明解析为不可变的 VersionRequest，
远程解析和本地匹配使用同一套语义。
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from rvman.core import version_utils
from rvman.core.exceptions import InvalidVersionRequestError
from rvman.utils.input_validator import InputValidator, InputValidationError

EXACT = "exact"
PARTIAL = "partial"
LATEST = "latest"

RUBY_PREFIX = "ruby-"


@dataclass(frozen=True)
class VersionRequest:
    """
    解析后的版本请求。

    kind 为 exact（完整版本号）、partial（版本前缀）或 latest。
    """

    kind: str
    parts: Tuple[int, ...] = ()
    prerelease: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "VersionRequest":
        """
        解析版本请求字符串。

        参数:
            text: 如 "3.4.5"、"3.4"、"ruby-3.4.5"、"3.5.0-preview1"、"latest"

        返回:
            VersionRequest 实例

        抛出:
            InvalidVersionRequestError: 格式无效时抛出
        """
        try:
            InputValidator.validate_version_string(text)
        except InputValidationError as e:
            raise InvalidVersionRequestError(str(e)) from e

        value = InputValidator.sanitize_version_string(text).lower()
        if value.startswith(RUBY_PREFIX):
            value = value[len(RUBY_PREFIX):]

        if value == LATEST:
            return cls(LATEST)

        parsed = version_utils.split_version(value)
        if parsed is None:
            raise InvalidVersionRequestError(f"无法解析版本请求: {text}")
        numbers, prerelease = parsed
        if len(numbers) > 3:
            raise InvalidVersionRequestError(f"版本号最多包含三段: {text}")

        if len(numbers) == 3:
            return cls(EXACT, numbers, prerelease)
        if prerelease is not None:
            raise InvalidVersionRequestError(f"预发布标签需要完整版本号: {text}")
        return cls(PARTIAL, numbers)

    @property
    def is_exact(self) -> bool:
        return self.kind == EXACT

    @property
    def is_latest(self) -> bool:
        return self.kind == LATEST

    @property
    def version(self) -> str:
        """完整版本字符串，仅对 exact 请求有意义。"""
        if self.kind == LATEST:
            return LATEST
        base = ".".join(str(p) for p in self.parts)
        if self.prerelease:
            return f"{base}-{self.prerelease}"
        return base

    def matches(self, version: str) -> bool:
        """
        判断给定的版本字符串是否满足本请求。

        参数:
            version: 候选版本字符串

        返回:
            满足返回 True
        """
        parsed = version_utils.split_version(version)
        if parsed is None:
            return False
        numbers, prerelease = parsed

        if self.kind == LATEST:
            return True
        if self.kind == EXACT:
            return numbers == self.parts and prerelease == self.prerelease
        return numbers[:len(self.parts)] == self.parts

    def __str__(self) -> str:
        return self.version
