"""搜索提供者与构建脚本拉取器

两者都是无状态委托：只持有回调和附加参数。
  - SearchProvider: 本地索引无结果时按发行版回退查询
  - ScriptFetcher:  按名称提供构建脚本
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Sequence

from pkgindex.core.exceptions import FetchError
from pkgindex.core.models import Package, PackageName

logger = logging.getLogger(__name__)

# 搜索回调: (query, max_results, *args) -> list[Package]
SearchCallback = Callable[..., Sequence[Package]]


class SearchProvider:
    """按发行版注册的回退搜索委托"""

    def __init__(
        self, distribution: str, func: SearchCallback, args: Sequence[Any] = (),
    ) -> None:
        self.distribution = distribution
        self.func = func
        self.args = tuple(args)

    def __str__(self) -> str:
        return f"SearchProvider{{{self.distribution or '*'}}}"

    def search(self, query: PackageName, max_results: int) -> list[Package]:
        logger.info("回退搜索: %s -> %s", query, self)
        result = self.func(query, max_results, *self.args)
        if not isinstance(result, (list, tuple)):
            raise FetchError(
                str(self), f"搜索回调必须返回软件包列表，实际: {type(result).__name__}",
            )
        for item in result:
            if not isinstance(item, Package):
                raise FetchError(str(self), f"搜索回调返回了非软件包对象: {item!r}")
        return list(result)


class ScriptFetcher:
    """命名构建脚本拉取器"""

    def __init__(self, name: str, func: Callable[..., Any], args: Sequence[Any] = ()) -> None:
        self.name = name
        self.func = func
        self.args = tuple(args)

    def __str__(self) -> str:
        return f"ScriptFetcher{{{self.name}}}"

    def call(self, script_args: Sequence[str]) -> Any:
        """回调签名: func(fetcher, *注册参数, *脚本参数)"""
        return self.func(self, *self.args, *script_args)
