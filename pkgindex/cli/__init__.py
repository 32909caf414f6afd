"""pkgindex 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import functools
from typing import Any, Callable

import click

from pkgindex import __version__
from pkgindex.core.exceptions import PkgIndexError
from pkgindex.utils.logger import setup_logging_from_env


def _db() -> Any:
    """获取全局容器中数据库的快捷方式"""
    from pkgindex.services.container import get_container
    return get_container().database


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """业务异常转为 ClickException，输出友好提示并以非零码退出"""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except PkgIndexError as e:
            raise click.ClickException(f"[{e.code}] {e}") from e

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", "config_path", default="configs/pkgindex.yml", help="配置文件路径")
@click.option("--manifest", default=None, help="仓库清单路径（覆盖配置）")
@click.option("--force-refresh", is_flag=True, default=False, help="忽略缓存强制拉取")
@click.option("--no-parallel", is_flag=True, default=False, help="顺序拉取（调试用）")
@click.option("--allow-local", is_flag=True, default=False, help="允许清单引用本地文件")
def main(
    config_path: str, manifest: str | None,
    force_refresh: bool, no_parallel: bool, allow_local: bool,
) -> None:
    """pkgindex - 软件包元数据库与安装计划生成器"""
    setup_logging_from_env()
    from pkgindex.core.config import init_config
    from pkgindex.services.container import ServiceContainer, set_container

    try:
        cfg = init_config(config_path)
    except PkgIndexError as e:
        raise click.ClickException(f"[{e.code}] {e}") from e
    if manifest:
        cfg.manifest = manifest
    cfg.force_refresh = cfg.force_refresh or force_refresh
    cfg.no_parallel = cfg.no_parallel or no_parallel
    cfg.allow_local = cfg.allow_local or allow_local
    set_container(ServiceContainer(config=cfg))


# 注册各领域子命令
from pkgindex.cli.cmd_index import register as _reg_index  # noqa: E402
from pkgindex.cli.cmd_serve import register as _reg_serve  # noqa: E402

_reg_index(main)
_reg_serve(main)
