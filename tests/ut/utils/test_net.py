"""URL 校验与下载测试"""

from __future__ import annotations

import io
import urllib.error

import pytest

from pkgindex.core.exceptions import ValidationError
from pkgindex.utils import net
from pkgindex.utils.net import fetch_text, validate_url_scheme


class TestValidateUrlScheme:
    def test_http_ok(self) -> None:
        validate_url_scheme("http://example.com/packages.yml")

    def test_https_ok(self) -> None:
        validate_url_scheme("https://example.com/packages.yml")

    def test_file_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            validate_url_scheme("file:///etc/passwd")

    def test_empty_scheme_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            validate_url_scheme("/local/path")

    def test_context_in_error(self) -> None:
        with pytest.raises(ValidationError, match="repository alpine"):
            validate_url_scheme("ftp://x", context="repository alpine")


class TestFetchText:
    def test_decodes_body(self, monkeypatch: pytest.MonkeyPatch) -> None:
        seen = {}

        def fake_urlopen(url, timeout):
            seen["url"], seen["timeout"] = url, timeout
            return io.BytesIO("packages: []\n".encode())

        monkeypatch.setattr(net.urllib.request, "urlopen", fake_urlopen)
        assert fetch_text("https://example.com/a.yml", timeout=5) == "packages: []\n"
        assert seen == {"url": "https://example.com/a.yml", "timeout": 5}

    def test_network_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_urlopen(url, timeout):
            raise urllib.error.URLError("no route to host")

        monkeypatch.setattr(net.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(ConnectionError, match="下载失败"):
            fetch_text("https://example.com/a.yml")

    def test_scheme_checked_before_request(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_urlopen(url, timeout):
            raise AssertionError("should not be called")

        monkeypatch.setattr(net.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(ValidationError):
            fetch_text("file:///etc/passwd")
