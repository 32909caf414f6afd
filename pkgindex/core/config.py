"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 编程式覆盖。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field

from pkgindex.core.exceptions import ConfigError
from pkgindex.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """全局配置"""

    # 清单与缓存
    manifest: str = "repos/manifest.yml"
    cache_dir: str = "data/fetch_cache"
    cache_expire: int = 3600          # 秒，缓存新鲜期，0 表示缓存永不过期

    # 拉取
    max_parallel_fetchers: int = 4
    refresh_interval: int = 3600      # 秒
    force_refresh: bool = False
    no_parallel: bool = False
    allow_local: bool = False

    # HTTP 服务
    host: str = "127.0.0.1"
    port: int = 8990

    # 自定义扩展 (放不到字段里的配置项)
    extra: dict = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_parallel_fetchers < 1:
            raise ConfigError(f"max_parallel_fetchers 必须 >= 1: {self.max_parallel_fetchers}")
        if self.refresh_interval <= 0:
            raise ConfigError(f"refresh_interval 必须 > 0: {self.refresh_interval}")

    @classmethod
    def from_file(cls, path: str = "configs/pkgindex.yml") -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        data = load_yaml(path)
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        try:
            cfg = cls(**matched)
        except TypeError as e:
            raise ConfigError(f"配置文件无效: {path} - {e}") from e
        cfg.extra = extra
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = "configs/pkgindex.yml") -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
