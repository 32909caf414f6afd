"""pkgindex 日志配置

两种输出：
  - 文本: 带线程名，后台刷新时可区分调度线程与 worker
  - JSON: 每行一条记录，供日志采集

环境变量（CLI 入口读取）:
  PKGINDEX_LOG_LEVEL  日志级别，默认 INFO
  PKGINDEX_LOG_JSON   为 "1" 时输出 JSON
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone

LOG_LEVEL_ENV = "PKGINDEX_LOG_LEVEL"
LOG_JSON_ENV = "PKGINDEX_LOG_JSON"

TEXT_FORMAT = "%(asctime)s [%(levelname)-7s] %(threadName)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """一行一条 JSON 记录

        {"timestamp": "...", "level": "WARNING", "logger": "pkgindex.core.db.database",
         "thread": "refresh-worker-0", "message": "...", "exception": "..."}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "thread": record.threadName,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """为根日志器安装唯一一个 stderr handler

    示例:
        >>> setup_logging("DEBUG")
        >>> setup_logging("INFO", json_output=True)
    """
    reset_logging()
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if json_output else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)


def setup_logging_from_env() -> None:
    setup_logging(
        level=os.getenv(LOG_LEVEL_ENV, "INFO"),
        json_output=os.getenv(LOG_JSON_ENV, "") == "1",
    )


def reset_logging() -> None:
    """移除根日志器上的全部 handler"""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
