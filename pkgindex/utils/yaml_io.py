"""YAML / 文件读写工具

集中管理配置、清单、包列表文件的读取，以及缓存文件的原子写入。
统一 encoding="utf-8"、空值保护、大小限制。
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# 单个 YAML 文档最大大小 (64MB)，仓库包列表可能较大
MAX_YAML_SIZE = 64 * 1024 * 1024


def atomic_write(path: Path, content: str) -> None:
    """原子写入文件：先写同目录临时文件再 rename

    并发刷新时多个 worker 可能同时写缓存，rename 保证读者
    只会看到完整的旧文件或完整的新文件。
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp, str(path))
    except Exception:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise


def parse_yaml(text: str, source: str = "<string>") -> Any:
    """解析 YAML 文本，返回原始文档（可能是 dict / list / None）

    异常:
        ValueError: 文本超过 MAX_YAML_SIZE
        yaml.YAMLError: 格式错误
    """
    if len(text) > MAX_YAML_SIZE:
        raise ValueError(
            f"YAML 文档过大: {source} ({len(text)} 字节), 超过限制 {MAX_YAML_SIZE} 字节"
        )
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        logger.error("解析 YAML 失败: %s, 错误: %s", source, e)
        raise


def load_yaml(path: str | Path) -> dict[str, Any]:
    """安全读取 YAML 文件

    返回:
        dict: 文件不存在、为空、或顶层不是字典时返回空字典

    异常:
        yaml.YAMLError: YAML 格式错误
        OSError: IO 错误
        ValueError: 文件过大

    示例:
        >>> data = load_yaml("configs/pkgindex.yml")
        >>> interval = data.get("refresh_interval", 3600)
    """
    p = Path(path)
    if not p.exists():
        return {}

    file_size = p.stat().st_size
    if file_size > MAX_YAML_SIZE:
        raise ValueError(
            f"YAML 文件过大: {p} ({file_size} 字节), 超过限制 {MAX_YAML_SIZE} 字节"
        )

    try:
        result = parse_yaml(p.read_text(encoding="utf-8"), source=str(p))
    except (PermissionError, OSError) as e:
        logger.error("读取文件失败: %s, 错误: %s", path, e)
        raise

    if result is None:
        return {}
    if not isinstance(result, dict):
        logger.warning(
            "%s 内容不是字典类型 (实际类型: %s)，返回空字典",
            path, type(result).__name__,
        )
        return {}
    return result
