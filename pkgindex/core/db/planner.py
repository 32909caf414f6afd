"""安装计划解析

把一组软件包名解析为依赖完整、拓扑有序的安装序列。

算法（深度优先，先标记后展开，后序追加）:
  1. 短名已标记 → 直接视为满足（去重、终止环、菱形依赖只装一次）
  2. search(name, 1) 必须恰好一个结果
  3. 展开依赖前标记主名和全部别名为已安装（断环）
  4. 按顺序处理依赖组：组内候选依次尝试，
     PackageNotFoundError → 试下一个；其他异常 → 整体中止；
     全部候选都不存在 → NoCandidateError
  5. 依赖全部满足后追加自身，保证每个包都排在其传递依赖之后

已访问集合（installed）和待展开路径（_Frame 栈）都是显式状态，
依赖链深度不受 Python 递归限制。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable

from pkgindex.core.exceptions import (
    AmbiguousPackageError,
    NoCandidateError,
    PackageNotFoundError,
)
from pkgindex.core.models import Package, PackageName

if TYPE_CHECKING:
    from pkgindex.core.protocols import PackageSearcher

logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    """正在展开依赖的软件包：当前依赖组下标 + 组内下一个候选下标"""

    package: Package
    group: int = 0
    option: int = 0


class InstallationPlan:
    """一次性安装计划，由调用方持有并在使用后丢弃"""

    def __init__(self, searcher: PackageSearcher) -> None:
        self._searcher = searcher
        self.installed: set[str] = set()
        self.packages: list[Package] = []

    def is_installed(self, name: PackageName) -> bool:
        return name.short_name() in self.installed

    def _resolve(self, query: PackageName) -> Package:
        results = self._searcher.search(query, 1)
        if not results:
            raise PackageNotFoundError(query)
        if len(results) > 1:
            raise AmbiguousPackageError(query, len(results))
        return results[0]

    def _enter(self, pkg: Package) -> _Frame:
        for name in (pkg.name, *pkg.aliases):
            self.installed.add(name.short_name())
        return _Frame(pkg)

    def add_package(self, query: PackageName) -> None:
        """解析单个软件包及其依赖，成功后追加到 packages"""
        if self.is_installed(query):
            return

        stack = [self._enter(self._resolve(query))]
        while stack:
            frame = stack[-1]
            depends = frame.package.depends

            if frame.group == len(depends):
                stack.pop()
                self.packages.append(frame.package)
                logger.debug("加入安装计划: %s", frame.package.name)
                continue

            group = depends[frame.group]
            if frame.option == len(group):
                raise NoCandidateError(group)

            option = group[frame.option]
            frame.option += 1
            if self.is_installed(option):
                frame.group, frame.option = frame.group + 1, 0
                continue

            try:
                dep = self._resolve(option)
            except PackageNotFoundError:
                logger.debug(
                    "候选不存在，尝试下一个: %s (依赖方 %s)", option, frame.package.name,
                )
                continue

            # 子包展开中的任何失败都是致命的，候选一旦找到即视为该组已满足
            frame.group, frame.option = frame.group + 1, 0
            stack.append(self._enter(dep))

    def names(self) -> list[str]:
        return [str(p.name) for p in self.packages]

    def __len__(self) -> int:
        return len(self.packages)


def make_installation_plan(
    searcher: PackageSearcher, names: Iterable[PackageName | str],
) -> InstallationPlan:
    """构建安装计划，任一致命错误都会抛出，调用方拿不到半成品计划"""
    plan = InstallationPlan(searcher)
    for name in names:
        query = PackageName.parse(name) if isinstance(name, str) else name
        plan.add_package(query)
    logger.info("安装计划已生成: %d 个软件包", len(plan))
    return plan
