"""共享 fixture — 软件包构造 + 静态拉取回调"""

from __future__ import annotations

from typing import Callable, Iterator

import pytest

from pkgindex.core.db.database import PackageDatabase
from pkgindex.core.models import Package, PackageName


def make_pkg(
    name: str,
    *depends: list[str],
    aliases: tuple[str, ...] = (),
) -> Package:
    """构造软件包: make_pkg("x", ["y", "z"], ["w"]) 表示依赖 (y 或 z) 且 w"""
    return Package(
        name=PackageName.parse(name),
        aliases=tuple(PackageName.parse(a) for a in aliases),
        depends=tuple(tuple(PackageName.parse(o) for o in group) for group in depends),
    )


def static_fetch(*packages: Package) -> Callable[..., list[Package]]:
    """返回固定软件包列表的拉取回调，并记录调用次数"""

    def _fetch(key: str, force: bool) -> list[Package]:
        _fetch.calls.append((key, force))  # type: ignore[attr-defined]
        return list(packages)

    _fetch.calls = []  # type: ignore[attr-defined]
    return _fetch


@pytest.fixture()
def db() -> Iterator[PackageDatabase]:
    database = PackageDatabase()
    yield database
    database.stop_auto_refresh()
