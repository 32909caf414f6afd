"""CLI — 拉取、搜索、安装计划、状态、名称导出"""

from __future__ import annotations

import click

from pkgindex.cli import _db, handle_errors
from pkgindex.core.models import PackageName


class _EchoSink:
    """把 write_names 的输出转交给 click.echo"""

    def write(self, text: str) -> None:
        click.echo(text, nl=False)


def register(group: click.Group) -> None:
    group.add_command(fetch)
    group.add_command(search)
    group.add_command(plan)
    group.add_command(status)
    group.add_command(names)


@click.command()
@handle_errors
def fetch() -> None:
    """全量拉取全部仓库"""
    db = _db()
    db.fetch_all()
    click.echo(f"拉取完成: {len(db.fetchers)} 个仓库, {db.count()} 个软件包")


@click.command()
@click.argument("query")
@click.option("--max", "max_results", default=0, help="最大结果数（0 表示不限）")
@handle_errors
def search(query: str, max_results: int) -> None:
    """搜索软件包，QUERY 格式: [distro/]name[:arch][@version]"""
    db = _db()
    db.fetch_all()
    results = db.search(PackageName.parse(query), max_results)
    if not results:
        click.echo(f"未找到: {query}")
        return
    for pkg in results:
        aliases = ", ".join(str(a) for a in pkg.aliases)
        alias_info = f"  (别名: {aliases})" if aliases else ""
        click.echo(f"  {str(pkg.name):40s}{alias_info}")


@click.command()
@click.argument("packages", nargs=-1, required=True)
@handle_errors
def plan(packages: tuple[str, ...]) -> None:
    """生成安装计划，按安装顺序输出"""
    db = _db()
    db.fetch_all()
    result = db.make_installation_plan([PackageName.parse(p) for p in packages])
    for i, pkg in enumerate(result.packages, start=1):
        click.echo(f"  {i:4d}. {pkg.name}")


@click.command()
@click.option("--fetch/--no-fetch", "do_fetch", default=False, help="查看前先全量拉取")
@handle_errors
def status(do_fetch: bool) -> None:
    """查看拉取器状态"""
    db = _db()
    if do_fetch:
        db.fetch_all()
    snapshots = db.fetcher_status()
    if not snapshots:
        click.echo("没有已注册的仓库。")
        return
    for s in snapshots:
        updated = s.last_updated.strftime("%Y-%m-%d %H:%M:%S") if s.last_updated else "-"
        click.echo(
            f"  [{s.status.value:9s}] {s.name}  "
            f"packages={s.package_count} updated={updated} ({s.last_update_time:.2f}秒)"
        )


@click.command()
@handle_errors
def names() -> None:
    """逐行输出全部软件包名与别名（JSON 记录）"""
    db = _db()
    db.fetch_all()
    db.write_names(_EchoSink())
