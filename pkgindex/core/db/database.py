"""软件包数据库

编排所有仓库拉取器与搜索提供者，持有合并后的 name → Package 索引。

两种填充索引的方式:
  - fetch_all():          一次性全量拉取，全部成功后从零重建索引；
                          首个失败立即返回，索引保持调用前状态
  - start_auto_refresh(): 常驻后台刷新，每个拉取器一个调度线程，
                          固定数量 worker 通过有界队列消费刷新请求，
                          成功后只合并该拉取器自己的软件包

索引是唯一的共享可变状态，所有读写都持有同一把锁。

用法:
    db = PackageDatabase(cache=FetchCache("data/fetch_cache"))
    db.register_repository_fetcher("alpine", fetch_alpine, ("v3.19",))
    db.fetch_all()
    plan = db.make_installation_plan(["alpine/bash"])
"""

from __future__ import annotations

import json
import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import TYPE_CHECKING, Any, Callable, Iterable, Sequence

from pkgindex.core.db.fetcher import FetchCallback, RepositoryFetcher
from pkgindex.core.db.planner import InstallationPlan, make_installation_plan
from pkgindex.core.db.search import ScriptFetcher, SearchCallback, SearchProvider
from pkgindex.core.exceptions import ConfigError, FetchError, ScriptNotFoundError
from pkgindex.core.models import BuildScript, FetcherStatus, Package, PackageName

if TYPE_CHECKING:
    from pkgindex.core.protocols import CacheStore, TextSink

logger = logging.getLogger(__name__)

# 后台线程轮询停止信号的间隔（秒）
_POLL_INTERVAL = 0.1

RefreshRequest = tuple[RepositoryFetcher, bool]


class PackageDatabase:
    """软件包数据库：拉取编排 + 索引 + 搜索 + 安装计划"""

    def __init__(
        self,
        *,
        cache: CacheStore | None = None,
        allow_local: bool = False,
        force_refresh: bool = False,
        no_parallel: bool = False,
    ) -> None:
        self.cache = cache
        self.allow_local = allow_local
        self.force_refresh = force_refresh
        self.no_parallel = no_parallel

        # 注册顺序决定搜索顺序，必须是有序列表
        self.fetchers: list[RepositoryFetcher] = []
        self.script_fetchers: list[ScriptFetcher] = []
        self.search_providers: list[SearchProvider] = []

        self._index: dict[str, Package] = {}
        self._index_lock = threading.Lock()

        self._refresh_stop = threading.Event()
        self._refresh_threads: list[threading.Thread] = []

    # ------------------------------------------------------------------
    # 注册
    # ------------------------------------------------------------------

    def register_repository_fetcher(
        self,
        distro: str,
        func: FetchCallback,
        args: Sequence[Any] = (),
        *,
        source: str = "",
        expire: int = 0,
    ) -> RepositoryFetcher:
        fetcher = RepositoryFetcher(
            distro, func, args, source=source, cache=self.cache, expire=expire,
        )
        self.fetchers.append(fetcher)
        logger.debug("注册拉取器: %s", fetcher)
        return fetcher

    def register_script_fetcher(
        self, name: str, func: Callable[..., Any], args: Sequence[Any] = (),
    ) -> ScriptFetcher:
        fetcher = ScriptFetcher(name, func, args)
        self.script_fetchers.append(fetcher)
        return fetcher

    def register_search_provider(
        self, distribution: str, func: SearchCallback, args: Sequence[Any] = (),
    ) -> SearchProvider:
        provider = SearchProvider(distribution, func, args)
        self.search_providers.append(provider)
        return provider

    # ------------------------------------------------------------------
    # 全量拉取
    # ------------------------------------------------------------------

    def fetch_all(self) -> None:
        """拉取全部仓库，全部成功后重建索引

        首个失败立即抛出 FetchError，不等待其余拉取；
        其余拉取在线程池中自然结束，结果留在各自的 future 中被丢弃。
        """
        total = len(self.fetchers)
        logger.info("开始全量拉取: %d 个拉取器 (force=%s)", total, self.force_refresh)

        if self.no_parallel:
            for done, fetcher in enumerate(self.fetchers, start=1):
                fetcher.fetch_with_key(fetcher.key(), self.force_refresh)
                logger.info("拉取进度: %d/%d %s", done, total, fetcher)
        else:
            executor = ThreadPoolExecutor(
                max_workers=max(1, total), thread_name_prefix="fetch",
            )
            try:
                futures = {
                    executor.submit(f.fetch_with_key, f.key(), self.force_refresh): f
                    for f in self.fetchers
                }
                done = 0
                for future in as_completed(futures):
                    exc = future.exception()
                    if exc is not None:
                        logger.error("全量拉取失败: %s", exc)
                        raise exc
                    done += 1
                    logger.info("拉取进度: %d/%d %s", done, total, futures[future])
            finally:
                executor.shutdown(wait=False)

        self._rebuild_index()

    def _rebuild_index(self) -> None:
        """按注册顺序从零重建索引，不再被列出的软件包随之移除"""
        index: dict[str, Package] = {}
        for fetcher in self.fetchers:
            for pkg in fetcher.packages:
                index[pkg.key] = pkg
        with self._index_lock:
            self._index = index
        logger.info("索引已重建: %d 个软件包", len(index))

    def _merge_index(self, fetcher: RepositoryFetcher) -> None:
        """只写入该拉取器的软件包，其他拉取器的条目不变"""
        packages = fetcher.packages
        with self._index_lock:
            for pkg in packages:
                self._index[pkg.key] = pkg
        logger.debug("索引已合并: %s (%d 个软件包)", fetcher, len(packages))

    # ------------------------------------------------------------------
    # 后台自动刷新
    # ------------------------------------------------------------------

    def start_auto_refresh(
        self,
        max_parallel_fetchers: int,
        refresh_interval: float,
        force_refresh: bool = False,
    ) -> None:
        """启动后台刷新服务，立即返回

        每个拉取器先发出一次刷新请求（遵循 force_refresh），
        之后每隔 refresh_interval 秒发出一次强制刷新请求。
        请求进入容量为 max_parallel_fetchers 的队列，由同样数量的 worker 消费，
        从而限制同时进行的拉取数。
        """
        if max_parallel_fetchers < 1:
            raise ConfigError(f"max_parallel_fetchers 必须 >= 1: {max_parallel_fetchers}")
        if refresh_interval <= 0:
            raise ConfigError(f"refresh_interval 必须 > 0: {refresh_interval}")
        if self._refresh_threads:
            raise ConfigError("自动刷新已在运行")

        with self._index_lock:
            self._index = {}

        # 每轮刷新独立的停止信号，遗留线程不会被下一轮 start 重新唤醒
        stop = threading.Event()
        self._refresh_stop = stop
        requests: queue.Queue[RefreshRequest] = queue.Queue(maxsize=max_parallel_fetchers)

        for i, fetcher in enumerate(self.fetchers):
            self._spawn(
                f"refresh-scheduler-{i}", self._schedule_refresh,
                fetcher, requests, stop, refresh_interval, force_refresh,
            )
        for i in range(max_parallel_fetchers):
            self._spawn(f"refresh-worker-{i}", self._refresh_worker, requests, stop)

        logger.info(
            "自动刷新已启动: %d 个拉取器, %d 个 worker, 间隔 %s 秒",
            len(self.fetchers), max_parallel_fetchers, refresh_interval,
        )

    def stop_auto_refresh(self, timeout: float = 5.0) -> None:
        """通知全部后台线程退出并等待

        正在执行的拉取回调无法中断，超时后线程以 daemon 形式遗留。
        """
        self._refresh_stop.set()
        for t in self._refresh_threads:
            t.join(timeout)
            if t.is_alive():
                logger.warning("后台线程未在 %.1f 秒内退出: %s", timeout, t.name)
        self._refresh_threads = []
        logger.info("自动刷新已停止")

    @property
    def auto_refresh_running(self) -> bool:
        return bool(self._refresh_threads) and not self._refresh_stop.is_set()

    def _spawn(self, name: str, target: Callable[..., None], *args: Any) -> None:
        t = threading.Thread(target=target, args=args, name=name, daemon=True)
        self._refresh_threads.append(t)
        t.start()

    def _enqueue(
        self,
        requests: queue.Queue[RefreshRequest],
        item: RefreshRequest,
        stop: threading.Event,
    ) -> bool:
        """阻塞入队，队列满时等待；收到停止信号返回 False"""
        while not stop.is_set():
            try:
                requests.put(item, timeout=_POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def _schedule_refresh(
        self,
        fetcher: RepositoryFetcher,
        requests: queue.Queue[RefreshRequest],
        stop: threading.Event,
        interval: float,
        force_refresh: bool,
    ) -> None:
        force = force_refresh
        while self._enqueue(requests, (fetcher, force), stop):
            force = True
            if stop.wait(interval):
                return

    def _refresh_worker(
        self, requests: queue.Queue[RefreshRequest], stop: threading.Event,
    ) -> None:
        while not stop.is_set():
            try:
                fetcher, force = requests.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                continue
            try:
                fetcher.fetch_with_key(fetcher.key(), force)
            except FetchError as e:
                logger.warning("后台刷新失败: %s - %s", fetcher, e.cause)
                continue
            except Exception:  # noqa: BLE001 worker 不能因单个拉取器退出
                logger.exception("后台刷新异常: %s", fetcher)
                continue
            finally:
                requests.task_done()
            if stop.is_set():
                # 已停止的一轮不再写索引
                return
            self._merge_index(fetcher)

    # ------------------------------------------------------------------
    # 搜索与查询
    # ------------------------------------------------------------------

    def search(self, query: PackageName, max_results: int = 0) -> list[Package]:
        """按注册顺序扫描拉取器，max_results 为 0 表示不限

        本地无结果时回退到发行版匹配的第一个搜索提供者。
        """
        logger.debug("搜索: %s (max=%d)", query, max_results)
        results: list[Package] = []

        for fetcher in self.fetchers:
            if not fetcher.matches(query):
                continue
            for pkg in fetcher.packages:
                if pkg.matches(query):
                    results.append(pkg)
                    if max_results and len(results) >= max_results:
                        return results

        if results:
            return results
        return self._search_with_providers(query, max_results)

    def _search_with_providers(self, query: PackageName, max_results: int) -> list[Package]:
        for provider in self.search_providers:
            if provider.distribution != query.distribution:
                continue
            return provider.search(query, max_results)
        return []

    def get(self, key: str) -> Package | None:
        """按索引键（完整名称字符串）查找"""
        with self._index_lock:
            return self._index.get(key)

    def index_size(self) -> int:
        with self._index_lock:
            return len(self._index)

    def make_installation_plan(self, names: Iterable[PackageName | str]) -> InstallationPlan:
        return make_installation_plan(self, names)

    def get_build_script(self, script: BuildScript) -> Any:
        for fetcher in self.script_fetchers:
            if fetcher.name == script.name:
                return fetcher.call(script.args)
        raise ScriptNotFoundError(script.name)

    # ------------------------------------------------------------------
    # 内省
    # ------------------------------------------------------------------

    def count(self) -> int:
        return sum(len(f.packages) for f in self.fetchers)

    def fetcher_status(self) -> list[FetcherStatus]:
        return [f.snapshot() for f in self.fetchers]

    def get_fetcher(self, key: str) -> RepositoryFetcher:
        for fetcher in self.fetchers:
            if fetcher.key() == key:
                return fetcher
        raise ConfigError(f"拉取器不存在: {key}")

    def all_names(self) -> list[PackageName]:
        return [pkg.name for f in self.fetchers for pkg in f.packages]

    def write_names(self, sink: TextSink) -> None:
        """逐行输出全部名称与别名（每行一条 JSON 记录）"""
        for fetcher in self.fetchers:
            for pkg in fetcher.packages:
                for name in (pkg.name, *pkg.aliases):
                    sink.write(json.dumps(name.to_dict(), ensure_ascii=False) + "\n")

    def distribution_list(self) -> list[str]:
        names = {""}
        for fetcher in self.fetchers:
            names.update(fetcher.distributions)
        return sorted(names)

    def architecture_list(self) -> list[str]:
        names = {""}
        for fetcher in self.fetchers:
            names.update(fetcher.architectures)
        return sorted(names)
