"""服务容器 — 统一持有配置、缓存与软件包数据库

CLI 和 Web 层均通过 get_container() 获取数据库，而非直接构造，
同一容器内的实例共享索引和缓存。

依赖关系（→ 表示依赖）:
  database → cache, config.manifest

用法:
    container = ServiceContainer()
    db = container.database          # 懒加载：创建缓存、加载清单

    cfg = Config.from_file("configs/pkgindex.yml")
    container = ServiceContainer(config=cfg)
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pkgindex.core.cache import FetchCache
    from pkgindex.core.config import Config
    from pkgindex.core.db.database import PackageDatabase

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(self, config: Config | None = None) -> None:
        self._instances: dict[str, object] = {}
        self._lock = threading.Lock()
        if config is None:
            from pkgindex.core.config import get_config
            config = get_config()
        self._config = config

    @property
    def config(self) -> Config:
        return self._config

    @property
    def cache(self) -> FetchCache:
        if "cache" not in self._instances:
            from pkgindex.core.cache import FetchCache
            self._instances["cache"] = FetchCache(self._config.cache_dir)
        return self._instances["cache"]  # type: ignore[return-value]

    @property
    def database(self) -> PackageDatabase:
        with self._lock:
            if "database" not in self._instances:
                self._instances["database"] = self._build_database()
        return self._instances["database"]  # type: ignore[return-value]

    def _build_database(self) -> PackageDatabase:
        from pkgindex.core.db.database import PackageDatabase
        from pkgindex.core.db.manifest import load_manifest

        cfg = self._config
        db = PackageDatabase(
            cache=self.cache,
            allow_local=cfg.allow_local,
            force_refresh=cfg.force_refresh,
            no_parallel=cfg.no_parallel,
        )
        if Path(cfg.manifest).exists():
            load_manifest(db, cfg.manifest, default_expire=cfg.cache_expire)
        else:
            logger.warning("清单文件不存在，数据库为空: %s", cfg.manifest)
        return db

    def close(self) -> None:
        db = self._instances.get("database")
        if db is not None:
            db.stop_auto_refresh()  # type: ignore[attr-defined]
        cache = self._instances.get("cache")
        if cache is not None:
            cache.close()  # type: ignore[attr-defined]
        self._instances.clear()


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局 ServiceContainer 单例（线程安全）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def set_container(container: ServiceContainer) -> None:
    """替换全局容器（CLI 按命令行参数构造后注入）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = container


def reset_container() -> None:
    """关闭并重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        if _global is not None:
            _global.close()
        _global = None
