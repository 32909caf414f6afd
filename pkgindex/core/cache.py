"""拉取结果持久化缓存

以拉取器 key 为键，每个键一个 JSON 文件，进程重启后仍可命中。
拉取器只依赖 get / put / close 三个操作。
"""

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Any

from pkgindex.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)


class FetchCache:
    """本地文件系统 KV 缓存"""

    def __init__(self, base_dir: str = "") -> None:
        if not base_dir:
            from pkgindex.core.config import get_config
            base_dir = get_config().cache_dir
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._closed = False

    def _path(self, key: str) -> Path:
        # 安全处理 key，避免路径穿越
        safe_key = key.replace("/", "_").replace("..", "_")
        return self.base_dir / f"{safe_key}.json"

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"缓存已关闭: {self.base_dir}")

    def put(self, key: str, data: dict[str, Any]) -> None:
        """写入数据，附带写入时间戳"""
        self._check_open()
        payload = {"_key": key, "_stored_at": time.time(), **data}
        with self._lock:
            atomic_write(self._path(key), json.dumps(payload, ensure_ascii=False))
        logger.debug("缓存写入: %s", key)

    def get(self, key: str) -> dict[str, Any] | None:
        """读取数据，不存在或文件损坏时返回 None"""
        self._check_open()
        path = self._path(key)
        if not path.exists():
            return None
        try:
            result: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("缓存文件损坏，忽略: %s", path)
            return None
        return result

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> FetchCache:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
