"""CLI — 常驻服务（后台自动刷新 + 查询 API）"""

from __future__ import annotations

import click

from pkgindex.cli import _db, handle_errors


def register(group: click.Group) -> None:
    group.add_command(serve)


@click.command()
@click.option("--host", default=None, help="监听地址（覆盖配置）")
@click.option("--port", default=None, type=int, help="监听端口（覆盖配置）")
@click.option("--workers", default=None, type=int, help="最大并行拉取数（覆盖配置）")
@click.option("--interval", default=None, type=int, help="刷新间隔秒数（覆盖配置）")
@handle_errors
def serve(host: str | None, port: int | None, workers: int | None, interval: int | None) -> None:
    """启动后台自动刷新与查询 API"""
    from pkgindex.core.config import get_config
    from pkgindex.web.app import run_server

    cfg = get_config()
    db = _db()
    db.start_auto_refresh(
        workers or cfg.max_parallel_fetchers,
        interval or cfg.refresh_interval,
        cfg.force_refresh,
    )
    try:
        run_server(port=port or cfg.port, host=host or cfg.host)
    finally:
        db.stop_auto_refresh()
