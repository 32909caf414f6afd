"""拉取缓存测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from pkgindex.core.cache import FetchCache


class TestFetchCache:
    def test_put_get(self, tmp_path: Path) -> None:
        cache = FetchCache(str(tmp_path / "cache"))
        cache.put("abc", {"packages": [{"name": "bash"}]})

        data = cache.get("abc")
        assert data is not None
        assert data["packages"] == [{"name": "bash"}]
        assert data["_key"] == "abc"
        assert "_stored_at" in data

    def test_get_missing(self, tmp_path: Path) -> None:
        cache = FetchCache(str(tmp_path / "cache"))
        assert cache.get("nothing") is None

    def test_survives_reopen(self, tmp_path: Path) -> None:
        with FetchCache(str(tmp_path / "cache")) as cache:
            cache.put("k", {"x": 1})
        assert FetchCache(str(tmp_path / "cache")).get("k")["x"] == 1

    def test_corrupt_file_ignored(self, tmp_path: Path) -> None:
        cache = FetchCache(str(tmp_path / "cache"))
        (tmp_path / "cache" / "bad.json").write_text("{not json", encoding="utf-8")
        assert cache.get("bad") is None

    def test_key_path_traversal_is_neutralised(self, tmp_path: Path) -> None:
        cache = FetchCache(str(tmp_path / "cache"))
        cache.put("../escape", {"x": 1})
        assert not (tmp_path / "escape.json").exists()
        assert cache.get("../escape")["x"] == 1

    def test_closed_cache_rejects_access(self, tmp_path: Path) -> None:
        cache = FetchCache(str(tmp_path / "cache"))
        cache.close()
        with pytest.raises(RuntimeError, match="已关闭"):
            cache.get("k")
