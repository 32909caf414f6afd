"""YAML 读取与原子写入测试"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from pkgindex.utils import yaml_io
from pkgindex.utils.yaml_io import atomic_write, load_yaml, parse_yaml


class TestLoadYaml:
    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_yaml(tmp_path / "nope.yml") == {}

    def test_empty_file(self, tmp_path: Path) -> None:
        p = tmp_path / "empty.yml"
        p.write_text("", encoding="utf-8")
        assert load_yaml(p) == {}

    def test_non_dict_returns_empty(self, tmp_path: Path) -> None:
        p = tmp_path / "list.yml"
        p.write_text("- a\n- b\n", encoding="utf-8")
        assert load_yaml(p) == {}

    def test_dict(self, tmp_path: Path) -> None:
        p = tmp_path / "cfg.yml"
        p.write_text("port: 8990\n", encoding="utf-8")
        assert load_yaml(p) == {"port": 8990}

    def test_syntax_error(self, tmp_path: Path) -> None:
        p = tmp_path / "bad.yml"
        p.write_text("key: [unclosed\n", encoding="utf-8")
        with pytest.raises(yaml.YAMLError):
            load_yaml(p)


class TestParseYaml:
    def test_list_document(self) -> None:
        assert parse_yaml("- a\n") == ["a"]

    def test_size_limit(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(yaml_io, "MAX_YAML_SIZE", 4)
        with pytest.raises(ValueError, match="过大"):
            parse_yaml("key: value\n", source="big.yml")


class TestAtomicWrite:
    def test_creates_parents(self, tmp_path: Path) -> None:
        p = tmp_path / "a" / "b" / "out.json"
        atomic_write(p, "{}")
        assert p.read_text(encoding="utf-8") == "{}"

    def test_replaces_without_temp_leftovers(self, tmp_path: Path) -> None:
        p = tmp_path / "out.json"
        atomic_write(p, "old")
        atomic_write(p, "new")
        assert p.read_text(encoding="utf-8") == "new"
        assert list(tmp_path.iterdir()) == [p]
