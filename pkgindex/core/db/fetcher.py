"""仓库拉取器

职责:
- 调用注册的拉取回调，得到该仓库的完整软件包列表
- 持久化缓存（未强制刷新且缓存新鲜时跳过回调）
- 维护状态、更新时间、计数器
- 按发行版 / 架构做廉价预过滤

不变量: packages 只在拉取成功后整体替换，失败时保留旧列表。
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Sequence

from pkgindex.core.exceptions import FetchError, PkgIndexError
from pkgindex.core.models import FetcherState, FetcherStatus, Package, PackageName

if TYPE_CHECKING:
    from pkgindex.core.protocols import CacheStore

logger = logging.getLogger(__name__)

# 拉取回调: (key, force, *args) -> list[Package]
FetchCallback = Callable[..., Sequence[Package]]


def _callback_identity(func: Callable[..., Any], args: Sequence[Any]) -> str:
    module = getattr(func, "__module__", "") or ""
    qualname = getattr(func, "__qualname__", "") or repr(func)
    return f"{module}.{qualname}{tuple(args)!r}"


class RepositoryFetcher:
    """单个软件包来源的拉取器"""

    def __init__(
        self,
        distro: str,
        func: FetchCallback,
        args: Sequence[Any] = (),
        *,
        source: str = "",
        cache: CacheStore | None = None,
        expire: int = 0,
    ) -> None:
        """
        参数:
            distro: 发行版范围，空字符串表示不限
            func: 拉取回调
            args: 追加传给回调的参数
            source: 来源标识（URL / 路径），用于生成稳定的缓存 key
            cache: 持久化缓存，None 表示不缓存
            expire: 缓存新鲜期（秒），0 表示永不过期
        """
        self.distro = distro
        self.func = func
        self.args = tuple(args)
        self.source = source or _callback_identity(func, self.args)
        self.cache = cache
        self.expire = expire

        self.status = FetcherState.UNFETCHED
        self.packages: tuple[Package, ...] = ()
        self.distributions: frozenset[str] = frozenset()
        self.architectures: frozenset[str] = frozenset()
        self.last_updated: datetime | None = None
        self.last_update_time: float = 0.0
        self.counter = 0

        # 同一拉取器的拉取严格串行
        self._fetch_lock = threading.Lock()

    def key(self) -> str:
        """确定性的缓存 key，跨进程重启稳定"""
        digest = hashlib.sha256(f"{self.distro}\0{self.source}".encode()).hexdigest()
        return digest[:32]

    def __str__(self) -> str:
        label = self.distro or "*"
        return f"RepositoryFetcher{{{label} {self.source}}}"

    # ------------------------------------------------------------------
    # 预过滤
    # ------------------------------------------------------------------

    def matches(self, query: PackageName) -> bool:
        """该拉取器是否可能满足查询，False 时搜索直接跳过"""
        if query.distribution:
            if self.distro and self.distro != query.distribution:
                return False
            if self.distributions and query.distribution not in self.distributions:
                return False
        # 与 PackageName.matches 一致：查询指定架构时，空架构的软件包也不匹配
        if query.architecture and self.architectures:
            if query.architecture not in self.architectures:
                return False
        return True

    # ------------------------------------------------------------------
    # 拉取
    # ------------------------------------------------------------------

    def fetch(self, force: bool = False) -> None:
        self.fetch_with_key(self.key(), force)

    def fetch_with_key(self, key: str, force: bool) -> None:
        """拉取并替换软件包列表，失败时抛出 FetchError 且保留旧列表"""
        with self._fetch_lock:
            if not force and self._load_cached(key):
                return

            self.status = FetcherState.FETCHING
            start = time.monotonic()
            try:
                result = self.func(key, force, *self.args)
                packages = self._validate(result)
            except Exception as e:  # noqa: BLE001 回调来自注册方，任意异常都视为拉取失败
                self.status = FetcherState.FAILED
                logger.debug("拉取失败: %s", self, exc_info=True)
                raise FetchError(str(self), e) from e

            self._replace(packages, time.monotonic() - start)
            self.status = FetcherState.FRESH
            logger.info(
                "拉取完成: %s (%d 个软件包, %.2f秒)",
                self, len(packages), self.last_update_time,
            )
            self._store_cached(key)

    def _validate(self, result: Any) -> tuple[Package, ...]:
        if not isinstance(result, (list, tuple)):
            raise TypeError(f"拉取回调必须返回软件包列表，实际: {type(result).__name__}")
        for item in result:
            if not isinstance(item, Package):
                raise TypeError(f"拉取回调返回了非软件包对象: {item!r}")
        return tuple(result)

    def _set_packages(self, packages: tuple[Package, ...]) -> None:
        names = [n for p in packages for n in (p.name, *p.aliases)]
        self.packages = packages
        self.distributions = frozenset(n.distribution for n in names)
        self.architectures = frozenset(n.architecture for n in names)

    def _replace(self, packages: tuple[Package, ...], duration: float) -> None:
        self._set_packages(packages)
        self.last_updated = datetime.now(timezone.utc)
        self.last_update_time = duration
        self.counter += 1

    # ------------------------------------------------------------------
    # 缓存
    # ------------------------------------------------------------------

    def _load_cached(self, key: str) -> bool:
        """缓存命中且新鲜时加载并返回 True"""
        if self.cache is None:
            return False
        entry = self.cache.get(key)
        if entry is None:
            return False
        stored_at = float(entry.get("_stored_at", 0))
        if self.expire and time.time() - stored_at > self.expire:
            logger.debug("缓存已过期: %s", self)
            return False
        try:
            packages = tuple(Package.from_dict(p) for p in entry.get("packages", []))
        except (PkgIndexError, TypeError, ValueError, KeyError, AttributeError) as e:
            logger.warning("缓存内容无效，重新拉取: %s - %s", self, e)
            return False

        self._set_packages(packages)
        self.last_updated = datetime.fromtimestamp(stored_at, tz=timezone.utc)
        self.status = FetcherState.CACHED
        logger.info("缓存命中: %s (%d 个软件包)", self, len(packages))
        return True

    def _store_cached(self, key: str) -> None:
        if self.cache is None:
            return
        try:
            self.cache.put(key, {
                "source": self.source,
                "packages": [p.to_dict() for p in self.packages],
            })
        except (OSError, RuntimeError) as e:
            # 缓存写入失败不影响本次拉取结果
            logger.warning("缓存写入失败: %s - %s", self, e)

    def snapshot(self) -> FetcherStatus:
        return FetcherStatus(
            key=self.key(),
            name=str(self),
            status=self.status,
            package_count=len(self.packages),
            last_updated=self.last_updated,
            last_update_time=self.last_update_time,
        )
