"""
rv 工具模块。

提供日志记录、重试、输入验证和文件操作等工具功能。
"""

from .logger import get_logger, setup_logger
from .retry import RetryHandler
from .input_validator import InputValidator, InputValidationError
from .file_utils import atomic_write_text

__all__ = [
    "get_logger",
    "setup_logger",
    "RetryHandler",
    "InputValidator",
    "InputValidationError",
    "atomic_write_text",
]
