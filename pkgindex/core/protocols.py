"""领域协议定义

集中定义引擎与外部协作方之间的接口契约（Protocol），
使拉取器、数据库、安装计划只依赖抽象而非具体实现。

使用 typing.Protocol 而非 ABC，测试中的桩对象无需继承即可满足协议。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from pkgindex.core.models import Package, PackageName


# =========================================================================
# 持久化缓存协议
# =========================================================================

class CacheStore(Protocol):
    """按 key 存取的持久化缓存

    get 返回的字典需包含写入时间戳 "_stored_at"（epoch 秒）。
    """

    def get(self, key: str) -> dict[str, Any] | None:
        ...

    def put(self, key: str, data: dict[str, Any]) -> None:
        ...

    def close(self) -> None:
        ...


# =========================================================================
# 搜索协议
# =========================================================================

class PackageSearcher(Protocol):
    """安装计划解析所依赖的搜索能力

    max_results 为 0 表示不限数量。
    """

    def search(self, query: PackageName, max_results: int = 0) -> list[Package]:
        ...


# =========================================================================
# 名称输出协议
# =========================================================================

class TextSink(Protocol):
    """write_names 的输出目标（文件、StringIO、HTTP 流等）"""

    def write(self, text: str) -> Any:
        ...
