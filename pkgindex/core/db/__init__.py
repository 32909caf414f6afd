"""软件包数据库模块

拆分说明:
- fetcher.py:  仓库拉取器（缓存、状态、预过滤）
- search.py:   搜索提供者 / 构建脚本拉取器
- database.py: 数据库编排（全量拉取、后台刷新、索引、搜索）
- planner.py:  安装计划解析
- manifest.py: YAML 清单注册
"""

from pkgindex.core.db.database import PackageDatabase
from pkgindex.core.db.fetcher import RepositoryFetcher
from pkgindex.core.db.manifest import load_manifest
from pkgindex.core.db.planner import InstallationPlan, make_installation_plan
from pkgindex.core.db.search import ScriptFetcher, SearchProvider

__all__ = [
    "PackageDatabase",
    "RepositoryFetcher",
    "SearchProvider",
    "ScriptFetcher",
    "InstallationPlan",
    "make_installation_plan",
    "load_manifest",
]
