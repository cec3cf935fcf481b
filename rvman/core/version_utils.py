"""
版本工具模块。

提供版本号解析、比较、排序等工具函数。
"""

import re
from typing import Callable, List, Optional, Tuple, TypeVar

T = TypeVar("T")

_VERSION_RE = re.compile(r"^(\d+(?:\.\d+)*)(?:[.-]?([A-Za-z][0-9A-Za-z.]*))?$")


def split_version(version_str: str) -> Optional[Tuple[Tuple[int, ...], Optional[str]]]:
    """
    将版本字符串拆分为数字部分和预发布标签。

    参数:
        version_str: 版本字符串，如 "3.4.5" 或 "3.5.0-preview1"

    返回:
        (数字元组, 预发布标签) 元组，无法解析返回 None
    """
    match = _VERSION_RE.match(version_str.strip())
    if not match:
        return None
    numbers = tuple(int(p) for p in match.group(1).split("."))
    return numbers, match.group(2)


def parse_version(version_str: str) -> tuple:
    """
    解析版本字符串为可比较的元组。

    正式版排在同号预发布版之后，即 3.5.0 > 3.5.0-preview1。

    参数:
        version_str: 版本字符串

    返回:
        可比较的版本元组
    """
    parsed = split_version(version_str)
    if parsed is None:
        parts = re.findall(r'\d+', version_str)
        return (tuple(int(p) for p in parts) if parts else (0,), 0, "")
    numbers, prerelease = parsed
    if prerelease is None:
        return (numbers, 1, "")
    return (numbers, 0, prerelease)


def is_prerelease(version_str: str) -> bool:
    """判断版本是否为预发布版。"""
    parsed = split_version(version_str)
    return parsed is not None and parsed[1] is not None


def sort_versions_desc(items: List[T], key: Callable[[T], str] = str) -> List[T]:
    """
    按版本号降序排列。

    参数:
        items: 待排序元素列表
        key: 从元素中取出版本字符串的函数

    返回:
        排序后的列表
    """
    return sorted(items, key=lambda item: parse_version(key(item)), reverse=True)
