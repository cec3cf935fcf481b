"""
重试机制工具模块。

对同一 URL 的临时性失败按指数退避重试；404 之类的确定性错误立即放弃，
不会换用其他地址。
"""

import random
import time
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

import requests

from rvman.utils.logger import get_logger

logger = get_logger()

T = TypeVar("T")

RETRYABLE_STATUS_CODES = (408, 429)

TRANSIENT_REQUEST_ERRORS = (
    requests.exceptions.Timeout,
    requests.exceptions.ConnectionError,
    requests.exceptions.ChunkedEncodingError,
)


def _status_code(exception: Exception) -> Optional[int]:
    """取出 HTTPError 附带的状态码。"""
    response = getattr(exception, "response", None)
    return getattr(response, "status_code", None)


class RetryHandler:
    """
    重试处理器类。

    可重试的错误：超时、连接失败、传输中断、5xx、408、429，
    以及调用方通过 transient_errors 声明的异常（如下载不完整）。
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        backoff_factor: float = 2.0,
        jitter: bool = True,
        transient_errors: Tuple[Type[BaseException], ...] = (),
    ):
        """
        初始化重试处理器。

        参数:
            max_retries: 首次尝试之后的最大重试次数
            base_delay: 基础延迟时间（秒）
            max_delay: 单次等待的上限（秒），也限制服务端 Retry-After
            backoff_factor: 退避因子
            jitter: 是否添加随机抖动
            transient_errors: 额外视为临时性错误的异常类型
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter
        self.transient_errors = tuple(transient_errors)

    def _calculate_delay(self, attempt: int, exception: Optional[Exception] = None) -> float:
        """
        计算第 attempt 次重试前的等待时间。

        429/503 响应带有数字形式的 Retry-After 时优先采用。

        参数:
            attempt: 重试次数（从 0 开始）
            exception: 本次失败的异常

        返回:
            延迟时间（秒）
        """
        retry_after = self._retry_after(exception)
        if retry_after is not None:
            return min(retry_after, self.max_delay)

        delay = min(self.base_delay * (self.backoff_factor ** attempt), self.max_delay)
        if self.jitter:
            delay = delay * (0.5 + random.random() * 0.5)
        return delay

    def _retry_after(self, exception: Optional[Exception]) -> Optional[float]:
        response = getattr(exception, "response", None)
        headers = getattr(response, "headers", None)
        if not headers:
            return None
        value = headers.get("Retry-After")
        if isinstance(value, str) and value.strip().isdigit():
            return float(value.strip())
        return None

    def is_retryable(self, exception: Exception) -> bool:
        """
        判断错误是否值得在同一 URL 上重试。

        参数:
            exception: 异常对象

        返回:
            可重试返回 True
        """
        if self.transient_errors and isinstance(exception, self.transient_errors):
            return True
        if isinstance(exception, requests.exceptions.HTTPError):
            status_code = _status_code(exception)
            return status_code is not None and (
                status_code >= 500 or status_code in RETRYABLE_STATUS_CODES
            )
        return isinstance(exception, TRANSIENT_REQUEST_ERRORS)

    def execute(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        执行函数，临时性失败时重试。

        参数:
            func: 要执行的函数，每次尝试都必须从头开始
            *args: 函数位置参数
            **kwargs: 函数关键字参数

        返回:
            函数执行结果

        抛出:
            不可重试的错误立即抛出；重试用尽后抛出最后一次的异常
        """
        attempts = self.max_retries + 1
        for attempt in range(attempts):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if not self.is_retryable(e):
                    logger.debug(f"不可重试的错误: {e}")
                    raise
                if attempt + 1 >= attempts:
                    logger.error(f"已重试 {self.max_retries} 次仍然失败: {e}")
                    raise

                delay = self._calculate_delay(attempt, e)
                logger.warning(
                    f"请求失败 (尝试 {attempt + 1}/{attempts}): {e}，{delay:.2f} 秒后重试..."
                )
                time.sleep(delay)

        raise RuntimeError("max_retries 不能为负数")
