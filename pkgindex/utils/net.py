"""网络工具 — URL 校验与文本下载"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from urllib.parse import urlparse

from pkgindex.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = frozenset(("http", "https"))

DEFAULT_TIMEOUT = 60  # 秒


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 仅使用 http/https，防止 file:// 等非预期协议访问

    Raises:
        ValidationError: URL scheme 不在白名单内
    """
    parsed = urlparse(url)
    if parsed.scheme not in _ALLOWED_SCHEMES:
        label = f" ({context})" if context else ""
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )


def fetch_text(url: str, *, timeout: int = DEFAULT_TIMEOUT, context: str = "") -> str:
    """下载 URL 内容并按 UTF-8 解码

    Raises:
        ValidationError: URL 协议不合法
        ConnectionError: 请求失败或超时
    """
    validate_url_scheme(url, context=context)
    logger.debug("下载: %s", url)
    try:
        with urllib.request.urlopen(url, timeout=timeout) as resp:  # nosec B310
            body: bytes = resp.read()
    except (urllib.error.HTTPError, urllib.error.URLError, OSError) as e:
        raise ConnectionError(f"下载失败: {url} - {e}") from e
    return body.decode("utf-8", errors="replace")
