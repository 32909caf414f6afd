"""CLI 端到端测试 — 清单 + 本地包列表 + click 命令"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

import pytest
from click.testing import CliRunner

import pkgindex.core.config as cfgmod
from pkgindex import __version__
from pkgindex.cli import main
from pkgindex.services.container import reset_container

ALPINE = """\
packages:
  - name: bash
    aliases: [sh]
    depends:
      - [musl, glibc]
      - readline
  - name: readline
    depends: [musl]
  - musl
"""


@pytest.fixture()
def workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """临时配置 + 清单，结束后恢复全局状态"""
    (tmp_path / "alpine.yml").write_text(ALPINE, encoding="utf-8")
    (tmp_path / "manifest.yml").write_text(
        "repositories:\n  - distro: alpine\n    path: alpine.yml\n",
        encoding="utf-8",
    )
    config = tmp_path / "pkgindex.yml"
    config.write_text(
        f"manifest: {tmp_path / 'manifest.yml'}\n"
        f"cache_dir: {tmp_path / 'cache'}\n",
        encoding="utf-8",
    )
    monkeypatch.setattr(cfgmod, "_current", None)
    root = logging.getLogger()
    saved = (root.level, root.handlers[:])
    yield config
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    root.setLevel(saved[0])
    for handler in saved[1]:
        root.addHandler(handler)
    reset_container()


def _invoke(config: Path, *args: str):
    return CliRunner().invoke(main, ["-c", str(config), "--allow-local", *args])


class TestCli:
    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_fetch(self, workspace: Path) -> None:
        result = _invoke(workspace, "fetch")
        assert result.exit_code == 0, result.output
        assert "1 个仓库, 3 个软件包" in result.output

    def test_plan(self, workspace: Path) -> None:
        result = _invoke(workspace, "plan", "alpine/bash")
        assert result.exit_code == 0, result.output
        lines = re.findall(r"^\s+\d+\. (\S+)$", result.output, re.MULTILINE)
        assert lines == ["alpine/musl", "alpine/readline", "alpine/bash"]

    def test_plan_unknown_package(self, workspace: Path) -> None:
        result = _invoke(workspace, "plan", "zsh")
        assert result.exit_code != 0
        assert "PACKAGE_NOT_FOUND" in result.output

    def test_search(self, workspace: Path) -> None:
        result = _invoke(workspace, "search", "sh")
        assert result.exit_code == 0, result.output
        assert "alpine/bash" in result.output
        assert "别名: alpine/sh" in result.output

    def test_search_no_match(self, workspace: Path) -> None:
        result = _invoke(workspace, "search", "zsh")
        assert result.exit_code == 0
        assert "未找到: zsh" in result.output

    def test_status(self, workspace: Path) -> None:
        result = _invoke(workspace, "status")
        assert "unfetched" in result.output
        result = _invoke(workspace, "status", "--fetch")
        assert result.exit_code == 0, result.output
        assert "packages=3" in result.output

    def test_names(self, workspace: Path) -> None:
        result = _invoke(workspace, "names")
        assert result.exit_code == 0, result.output
        records = [json.loads(line) for line in result.output.splitlines() if line.startswith("{")]
        assert [r["name"] for r in records] == ["bash", "sh", "readline", "musl"]

    def test_local_manifest_requires_flag(self, workspace: Path) -> None:
        result = CliRunner().invoke(main, ["-c", str(workspace), "fetch"])
        assert result.exit_code != 0
        assert "CONFIG_ERROR" in result.output

    def test_invalid_config(self, tmp_path: Path, workspace: Path) -> None:
        bad = tmp_path / "bad.yml"
        bad.write_text("max_parallel_fetchers: 0\n", encoding="utf-8")
        result = CliRunner().invoke(main, ["-c", str(bad), "status"])
        assert result.exit_code != 0
        assert "CONFIG_ERROR" in result.output

    def test_serve_runs_refresh_around_server(
        self, workspace: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        import pkgindex.web.app as webapp
        from pkgindex.services.container import get_container

        seen = {}

        def fake_run_server(port, host):
            db = get_container().database
            seen.update(port=port, host=host, running=db.auto_refresh_running)

        monkeypatch.setattr(webapp, "run_server", fake_run_server)
        result = _invoke(workspace, "serve", "--port", "9123", "--workers", "2")
        assert result.exit_code == 0, result.output
        assert seen == {"port": 9123, "host": "127.0.0.1", "running": True}
        assert not get_container().database.auto_refresh_running
