"""YAML 仓库清单

从清单文件注册仓库拉取器。清单格式:

    repositories:
      - distro: alpine
        path: alpine.yml          # 本地文件（相对清单目录），需 allow_local
      - distro: debian
        url: https://example.org/debian/packages.yml
        expire: 7200              # 可选，缓存新鲜期（秒）

包列表文件格式:

    packages:
      - name: bash
        version: "5.2"
        architecture: x86_64
        aliases: [sh]
        depends:
          - [libc, musl]          # 组内"或"
          - readline              # 单候选组可省略列表
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pkgindex.core.exceptions import ConfigError, ValidationError
from pkgindex.core.models import Package
from pkgindex.utils.net import fetch_text, validate_url_scheme
from pkgindex.utils.yaml_io import load_yaml, parse_yaml

if TYPE_CHECKING:
    from pkgindex.core.db.database import PackageDatabase

logger = logging.getLogger(__name__)


def parse_package_list(text: str, source: str, distribution: str = "") -> list[Package]:
    """解析包列表文档，顶层可以是 {packages: [...]} 或直接是列表"""
    doc = parse_yaml(text, source=source)
    if doc is None:
        return []
    entries = doc.get("packages") if isinstance(doc, dict) else doc
    if entries is None:
        return []
    if not isinstance(entries, list):
        raise ValueError(f"包列表格式无效 (需要列表): {source}")
    return [
        Package.from_dict({"name": e} if isinstance(e, str) else e, distribution)
        for e in entries if e
    ]


def fetch_local_file(key: str, force: bool, path: str, distro: str) -> list[Package]:
    """拉取回调：读取本地包列表文件"""
    p = Path(path)
    logger.info("读取本地包列表: %s (key=%s)", p, key)
    return parse_package_list(p.read_text(encoding="utf-8"), str(p), distro)


def fetch_url(key: str, force: bool, url: str, distro: str) -> list[Package]:
    """拉取回调：下载远端包列表"""
    logger.info("下载包列表: %s (key=%s, force=%s)", url, key, force)
    return parse_package_list(fetch_text(url, context=f"repository {distro}"), url, distro)


class RepositoryManifest:
    """仓库清单：把清单条目注册为拉取器"""

    def __init__(self, manifest_path: str | Path) -> None:
        self.manifest_path = Path(manifest_path)

    def entries(self) -> list[dict[str, Any]]:
        if not self.manifest_path.exists():
            raise ConfigError(f"清单文件不存在: {self.manifest_path}")
        data = load_yaml(self.manifest_path)
        repos = data.get("repositories") or []
        if not isinstance(repos, list):
            raise ConfigError(f"清单 repositories 必须是列表: {self.manifest_path}")
        return [r for r in repos if r]

    def load(self, db: PackageDatabase, default_expire: int = 0) -> int:
        """注册全部仓库，返回注册数量"""
        count = 0
        for i, entry in enumerate(self.entries()):
            if not isinstance(entry, dict):
                raise ConfigError(f"清单第 {i + 1} 项格式无效: {entry!r}")
            distro = str(entry.get("distro", "") or "")
            expire = int(entry.get("expire", default_expire) or 0)

            if entry.get("url"):
                url = str(entry["url"])
                try:
                    validate_url_scheme(url, context=f"manifest entry {i + 1}")
                except ValidationError as e:
                    raise ConfigError(str(e)) from e
                db.register_repository_fetcher(
                    distro, fetch_url, (url, distro), source=url, expire=expire,
                )
            elif entry.get("path"):
                if not db.allow_local:
                    raise ConfigError(
                        f"清单第 {i + 1} 项使用本地文件，需要开启 allow_local: {entry['path']}"
                    )
                path = Path(str(entry["path"]))
                if not path.is_absolute():
                    path = self.manifest_path.parent / path
                db.register_repository_fetcher(
                    distro, fetch_local_file, (str(path), distro),
                    source=str(path.resolve()), expire=expire,
                )
            else:
                raise ConfigError(f"清单第 {i + 1} 项缺少 url 或 path")
            count += 1

        logger.info("已从清单注册 %d 个仓库: %s", count, self.manifest_path)
        return count


def load_manifest(db: PackageDatabase, path: str | Path, default_expire: int = 0) -> int:
    return RepositoryManifest(path).load(db, default_expire)
