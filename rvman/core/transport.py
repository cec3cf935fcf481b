"""
网络传输模块。

负责获取发行版索引和流式下载发行包，区分 404 与临时性网络错误。
"""

from pathlib import Path
from typing import Any, Optional

import requests

from rvman.core.exceptions import (
    HttpStatusError,
    IncompleteDownloadError,
    NetworkError,
    ReleaseMetadataError,
    ReleaseNotFoundError,
)
from rvman.core.interfaces import ITransport
from rvman.utils.logger import get_logger
from rvman.utils.retry import RetryHandler

logger = get_logger()

CHUNK_SIZE = 64 * 1024
USER_AGENT = "rv (ruby version manager)"

# 在同一 URL 上从头重新下载的错误
TRANSIENT_ERRORS = (IncompleteDownloadError,)


class HttpTransport(ITransport):
    """
    基于 requests 的 HTTP 传输实现。

    响应体以流的方式直接写入目标文件，不在内存中缓冲整个压缩包。
    临时性错误在同一 URL 上按退避策略重试，404 不重试。
    """

    def __init__(self, timeout: float = 30, retry_handler: Optional[RetryHandler] = None):
        """
        初始化传输层。

        参数:
            timeout: 单次请求的连接/读取超时（秒）
            retry_handler: 重试处理器，默认重试 3 次；下载不完整也视为临时性错误
        """
        self.timeout = timeout
        self.retry_handler = retry_handler or RetryHandler(transient_errors=TRANSIENT_ERRORS)
        self.headers = {"User-Agent": USER_AGENT}

    def _check_status(self, response: requests.Response) -> None:
        """非 200 响应统一转为 HTTPError，由重试处理器判断是否重试。"""
        if response.status_code != 200:
            raise requests.exceptions.HTTPError(
                f"HTTP {response.status_code}", response=response
            )

    def _translate_error(self, url: str, error: requests.exceptions.RequestException) -> Exception:
        """把 requests 异常转换为核心传输异常。"""
        if isinstance(error, requests.exceptions.HTTPError) and error.response is not None:
            status_code = error.response.status_code
            if status_code == 404:
                return ReleaseNotFoundError(url)
            return HttpStatusError(url, status_code)
        return NetworkError(f"网络请求失败 {url}: {error}", url)

    def _download_once(self, url: str, dest: Path) -> int:
        """
        执行一次下载，每次尝试都从头覆盖写入 dest。

        参数:
            url: 下载地址
            dest: 目标文件路径

        返回:
            写入的字节数
        """
        response = requests.get(url, headers=self.headers, stream=True, timeout=self.timeout)
        try:
            self._check_status(response)

            expected = None
            if "content-encoding" not in {k.lower() for k in response.headers}:
                length = response.headers.get("content-length")
                if length is not None and str(length).isdigit():
                    expected = int(length)

            written = 0
            with open(dest, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
                        written += len(chunk)

            if expected is not None and written != expected:
                raise IncompleteDownloadError(url, expected, written)
            return written
        finally:
            response.close()

    def download(self, url: str, dest: Path) -> int:
        """
        下载 url 到 dest。

        参数:
            url: 下载地址
            dest: 目标文件路径

        返回:
            写入的字节数

        抛出:
            ReleaseNotFoundError: HTTP 404
            HttpStatusError: 其他非 200 状态码
            NetworkError: 连接失败、超时、传输中断
            IncompleteDownloadError: 响应体短于 Content-Length
        """
        logger.info(f"正在下载 {url}")
        try:
            written = self.retry_handler.execute(self._download_once, url, dest)
        except requests.exceptions.RequestException as e:
            raise self._translate_error(url, e) from e
        logger.info(f"下载完成: {url} ({written} 字节)")
        return written

    def _fetch_json_once(self, url: str) -> Any:
        response = requests.get(url, headers=self.headers, timeout=self.timeout)
        try:
            self._check_status(response)
            try:
                return response.json()
            except ValueError as e:
                raise ReleaseMetadataError(f"发行版索引不是有效的 JSON {url}: {e}", url) from e
        finally:
            response.close()

    def fetch_json(self, url: str) -> Any:
        """
        获取 JSON 文档。

        参数:
            url: 文档地址

        返回:
            解码后的 JSON 数据

        抛出:
            ReleaseMetadataError: 响应不是有效 JSON
        """
        logger.debug(f"获取发行版索引: {url}")
        try:
            return self.retry_handler.execute(self._fetch_json_once, url)
        except requests.exceptions.RequestException as e:
            raise self._translate_error(url, e) from e
