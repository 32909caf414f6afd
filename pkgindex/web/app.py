"""查询与状态 API（基于 Flask）

提供：拉取器状态、软件包搜索、按键查询、安装计划、名称导出、
      发行版 / 架构列表。

启动方式: pkgindex serve --port 8990
"""

from __future__ import annotations

import io
import logging
from typing import Any

from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException

from pkgindex.core.exceptions import (
    ConfigError,
    PackageNotFoundError,
    PkgIndexError,
    ResolutionError,
    ValidationError,
)
from pkgindex.core.models import PackageName

logger = logging.getLogger(__name__)

app = Flask(__name__)


def _db() -> Any:
    from pkgindex.services.container import get_container
    return get_container().database


def _safe_int(value: Any, default: int, lo: int = 0, hi: int = 10000) -> int:
    """安全的整数转换，带范围校验"""
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return max(lo, min(n, hi))


# =========================================================================
# 全局 JSON 错误处理
# =========================================================================


@app.errorhandler(HTTPException)
def handle_http_exception(exc):
    """将所有 HTTP 异常统一返回 JSON"""
    return jsonify(error=exc.description), exc.code


@app.errorhandler(PkgIndexError)
def handle_pkgindex_error(exc: PkgIndexError):
    """业务异常按类型映射状态码"""
    if isinstance(exc, PackageNotFoundError):
        status = 404
    elif isinstance(exc, ResolutionError):
        status = 422
    elif isinstance(exc, (ValidationError, ConfigError)):
        status = 400
    else:
        status = 502
    return jsonify(error=str(exc), code=exc.code), status


@app.errorhandler(Exception)
def handle_generic_exception(exc):  # noqa: ARG001
    """捕获未处理异常，返回 500 JSON"""
    logger.exception("未处理的异常")
    return jsonify(error="服务器内部错误"), 500


# =========================================================================
# API
# =========================================================================


@app.route("/api/status")
def api_status():
    """拉取器状态快照"""
    db = _db()
    fetchers = [s.to_dict() for s in db.fetcher_status()]
    return jsonify(
        count=db.count(),
        indexed=db.index_size(),
        auto_refresh=db.auto_refresh_running,
        fetchers=fetchers,
    )


@app.route("/api/search")
def api_search():
    """搜索软件包: /api/search?q=alpine/bash&max=10"""
    q = request.args.get("q", "").strip()
    if not q:
        return jsonify(error="需要提供查询参数 q"), 400
    query = PackageName.parse(q)
    max_results = _safe_int(request.args.get("max", 0), default=0)
    results = _db().search(query, max_results)
    return jsonify(query=str(query), results=[p.to_dict() for p in results])


@app.route("/api/packages/<path:key>")
def api_package(key: str):
    """按索引键查询软件包"""
    pkg = _db().get(key)
    if pkg is None:
        return jsonify(error=f"软件包不存在: {key}"), 404
    return jsonify(pkg.to_dict())


@app.route("/api/plan", methods=["POST"])
def api_plan():
    """生成安装计划: {"names": ["alpine/bash", "curl"]}"""
    body = request.get_json(silent=True) or {}
    names = body.get("names")
    if not isinstance(names, list) or not names:
        return jsonify(error="需要提供非空的 names 列表"), 400
    queries = [PackageName.parse(str(n)) for n in names]
    plan = _db().make_installation_plan(queries)
    return jsonify(
        names=plan.names(),
        packages=[p.to_dict() for p in plan.packages],
    )


@app.route("/api/names")
def api_names():
    """导出全部名称与别名（NDJSON）"""
    buf = io.StringIO()
    _db().write_names(buf)
    return Response(buf.getvalue(), mimetype="application/x-ndjson")


@app.route("/api/distributions")
def api_distributions():
    return jsonify(distributions=_db().distribution_list())


@app.route("/api/architectures")
def api_architectures():
    return jsonify(architectures=_db().architecture_list())


def run_server(port: int = 8990, debug: bool = False, host: str = "127.0.0.1") -> None:
    logger.info("pkgindex API 已启动: http://%s:%d", host, port)
    app.run(host=host, port=port, debug=debug, use_reloader=False)
