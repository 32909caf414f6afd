"""核心数据模型

所有核心数据类集中定义，拉取器 / 数据库 / 安装计划统一从此处导入。

  - PackageName:  软件包标识（名称 + 发行版 / 架构 / 版本限定）
  - Package:      单个可解析的软件包（别名 + 依赖组）
  - BuildScript:  按名称查找的构建脚本请求
  - FetcherState: 仓库拉取器状态
  - FetcherStatus: 拉取器状态快照，供看板 / CLI 展示
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pkgindex.core.exceptions import ValidationError

# =========================================================================
# 软件包标识
# =========================================================================


@dataclass(frozen=True)
class PackageName:
    """软件包标识

    字符串形式: [distribution/]name[:architecture][@version]
    限定字段为空表示"不限"。
    """

    name: str
    distribution: str = ""
    architecture: str = ""
    version: str = ""

    @classmethod
    def parse(cls, text: str) -> PackageName:
        """从字符串形式解析，格式见类说明"""
        raw = text.strip()
        version = architecture = distribution = ""
        if "@" in raw:
            raw, version = raw.rsplit("@", 1)
        if ":" in raw:
            raw, architecture = raw.rsplit(":", 1)
        if "/" in raw:
            distribution, raw = raw.split("/", 1)
        if not raw:
            raise ValidationError(f"无法解析软件包名: '{text}'")
        return cls(
            name=raw, distribution=distribution,
            architecture=architecture, version=version,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any] | str) -> PackageName:
        if isinstance(data, str):
            return cls.parse(data)
        if not data.get("name"):
            raise ValidationError(f"软件包名缺少 name 字段: {data}")
        return cls(
            name=str(data["name"]),
            distribution=str(data.get("distribution", "") or ""),
            architecture=str(data.get("architecture", "") or ""),
            version=str(data.get("version", "") or ""),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "distribution": self.distribution,
            "architecture": self.architecture,
            "version": self.version,
        }

    def short_name(self) -> str:
        """安装计划的去重键：只取名称，忽略全部限定字段"""
        return self.name

    def matches(self, query: PackageName) -> bool:
        """名称必须相同，query 中非空的限定字段必须一致"""
        if query.name != self.name:
            return False
        if query.distribution and query.distribution != self.distribution:
            return False
        if query.architecture and query.architecture != self.architecture:
            return False
        if query.version and query.version != self.version:
            return False
        return True

    def __str__(self) -> str:
        text = self.name
        if self.distribution:
            text = f"{self.distribution}/{text}"
        if self.architecture:
            text = f"{text}:{self.architecture}"
        if self.version:
            text = f"{text}@{self.version}"
        return text


def _as_list(value: Any, field_name: str) -> list[Any]:
    """单个值可省略列表，"aliases: sh" 等价于 "aliases: [sh]"

    异常:
        ValidationError: 既不是列表也不是单个名称
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, (str, dict)):
        return [value]
    raise ValidationError(f"{field_name} 字段类型无效: {value!r}")


@dataclass(frozen=True)
class Package:
    """单个软件包

    depends 为依赖组序列：组内为"或"（按顺序取第一个可用候选），
    组间为"且"（每组都必须满足）。
    """

    name: PackageName
    aliases: tuple[PackageName, ...] = ()
    depends: tuple[tuple[PackageName, ...], ...] = ()
    description: str = ""

    def matches(self, query: PackageName) -> bool:
        if self.name.matches(query):
            return True
        return any(alias.matches(query) for alias in self.aliases)

    @property
    def key(self) -> str:
        """索引键"""
        return str(self.name)

    @classmethod
    def from_dict(cls, data: dict[str, Any], distribution: str = "") -> Package:
        """从字典构建，未指定 distribution 的名称继承仓库的发行版"""

        def _name(value: Any) -> PackageName:
            pn = PackageName.from_dict(value)
            if distribution and not pn.distribution:
                pn = PackageName(pn.name, distribution, pn.architecture, pn.version)
            return pn

        raw = data.get("name")
        if not raw:
            raise ValidationError(f"软件包缺少 name 字段: {data}")
        if isinstance(raw, dict):
            name = _name(raw)
        else:
            parsed = PackageName.parse(str(raw))
            name = _name({
                "name": parsed.name,
                "distribution": data.get("distribution") or parsed.distribution,
                "architecture": data.get("architecture") or parsed.architecture,
                "version": data.get("version") or parsed.version,
            })

        depends = []
        for group in _as_list(data.get("depends"), "depends"):
            options = _as_list(group, "depends")
            # 依赖不继承发行版，交由搜索范围决定
            depends.append(tuple(PackageName.from_dict(o) for o in options))

        return cls(
            name=name,
            aliases=tuple(_name(a) for a in _as_list(data.get("aliases"), "aliases")),
            depends=tuple(depends),
            description=str(data.get("description", "") or ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name.to_dict(),
            "aliases": [a.to_dict() for a in self.aliases],
            "depends": [[o.to_dict() for o in group] for group in self.depends],
            "description": self.description,
        }


@dataclass
class BuildScript:
    """构建脚本请求：按名称匹配已注册的脚本拉取器"""

    name: str
    args: list[str] = field(default_factory=list)


# =========================================================================
# 拉取器状态
# =========================================================================


class FetcherState(str, Enum):
    """仓库拉取器状态"""
    UNFETCHED = "unfetched"
    FETCHING = "fetching"
    CACHED = "cached"
    FRESH = "fresh"
    FAILED = "failed"


@dataclass
class FetcherStatus:
    """拉取器状态快照"""

    key: str
    name: str
    status: FetcherState
    package_count: int = 0
    last_updated: datetime | None = None
    last_update_time: float = 0.0  # 秒

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "status": self.status.value,
            "package_count": self.package_count,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
            "last_update_time": round(self.last_update_time, 3),
        }
