"""数据模型测试 — 名称解析、匹配、序列化"""

from __future__ import annotations

import pytest

from pkgindex.core.exceptions import ValidationError
from pkgindex.core.models import FetcherState, FetcherStatus, Package, PackageName


class TestPackageName:
    @pytest.mark.parametrize("text,expected", [
        ("bash", PackageName("bash")),
        ("alpine/bash", PackageName("bash", distribution="alpine")),
        ("bash:x86_64", PackageName("bash", architecture="x86_64")),
        ("bash@5.2", PackageName("bash", version="5.2")),
        ("debian/libc6:amd64@2.36", PackageName("libc6", "debian", "amd64", "2.36")),
        ("debian/tzdata@1:2024a", PackageName("tzdata", "debian", version="1:2024a")),
    ])
    def test_parse(self, text: str, expected: PackageName) -> None:
        assert PackageName.parse(text) == expected

    def test_str_is_inverse_of_parse(self) -> None:
        text = "debian/libc6:amd64@2.36"
        assert str(PackageName.parse(text)) == text

    @pytest.mark.parametrize("text", ["", "alpine/", "@1.0"])
    def test_parse_rejects_empty_name(self, text: str) -> None:
        with pytest.raises(ValidationError):
            PackageName.parse(text)

    def test_short_name_ignores_qualifiers(self) -> None:
        a = PackageName("bash", "alpine", "x86_64", "5.2")
        b = PackageName("bash", "debian")
        assert a.short_name() == b.short_name() == "bash"
        assert str(a) != str(b)

    def test_matches_empty_qualifiers_are_wildcards(self) -> None:
        name = PackageName("bash", "alpine", "x86_64", "5.2")
        assert name.matches(PackageName("bash"))
        assert name.matches(PackageName("bash", distribution="alpine"))
        assert name.matches(PackageName("bash", "alpine", "x86_64", "5.2"))

    @pytest.mark.parametrize("query", [
        PackageName("zsh"),
        PackageName("bash", distribution="debian"),
        PackageName("bash", architecture="aarch64"),
        PackageName("bash", version="5.1"),
    ])
    def test_matches_rejects_mismatch(self, query: PackageName) -> None:
        assert not PackageName("bash", "alpine", "x86_64", "5.2").matches(query)

    def test_from_dict_accepts_string(self) -> None:
        assert PackageName.from_dict("alpine/bash") == PackageName("bash", "alpine")

    def test_from_dict_requires_name(self) -> None:
        with pytest.raises(ValidationError):
            PackageName.from_dict({"distribution": "alpine"})


class TestPackage:
    def test_matches_alias(self) -> None:
        pkg = Package(PackageName("bash"), aliases=(PackageName("sh"),))
        assert pkg.matches(PackageName("sh"))
        assert pkg.matches(PackageName("bash"))
        assert not pkg.matches(PackageName("zsh"))

    def test_from_dict_inherits_distribution(self) -> None:
        pkg = Package.from_dict(
            {"name": "bash", "version": "5.2", "aliases": ["sh"], "depends": [["musl", "glibc"], "readline"]},
            distribution="alpine",
        )
        assert pkg.name == PackageName("bash", "alpine", version="5.2")
        assert pkg.aliases == (PackageName("sh", "alpine"),)
        assert pkg.depends == (
            (PackageName("musl"), PackageName("glibc")),
            (PackageName("readline"),),
        )

    def test_from_dict_keeps_explicit_distribution(self) -> None:
        pkg = Package.from_dict({"name": "debian/bash"}, distribution="alpine")
        assert pkg.name.distribution == "debian"

    def test_from_dict_requires_name(self) -> None:
        with pytest.raises(ValidationError):
            Package.from_dict({"version": "1.0"})

    def test_dict_round_trip(self) -> None:
        pkg = Package(
            PackageName("bash", "alpine", "x86_64", "5.2"),
            aliases=(PackageName("sh", "alpine"),),
            depends=((PackageName("musl"),),),
            description="GNU shell",
        )
        assert Package.from_dict(pkg.to_dict()) == pkg

    def test_key_is_full_name(self) -> None:
        assert Package(PackageName("bash", "alpine")).key == "alpine/bash"


class TestFetcherStatus:
    def test_to_dict(self) -> None:
        s = FetcherStatus(key="k", name="n", status=FetcherState.FRESH, package_count=3)
        data = s.to_dict()
        assert data["status"] == "fresh"
        assert data["package_count"] == 3
        assert data["last_updated"] is None
