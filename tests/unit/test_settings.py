from __future__ import annotations

import ssl
from typing import TYPE_CHECKING, cast

import pytest
from pydantic import ValidationError

from reportexport.exceptions import SettingsError
from reportexport.settings import (
    DEFAULT_SECTIONS,
    Settings,
    build_httpx_client_kwargs,
    build_ssl_context,
    ensure_env_file_exists,
    get_settings,
)
from reportexport.typing.enums import PageFormat

if TYPE_CHECKING:
    from pathlib import Path


class _SettingsStub:
    def __init__(self, cert_path: str | None) -> None:
        self.cert_path = cert_path


class _FakeContext:
    def __init__(self) -> None:
        self.verify_mode: int | None = None
        self.minimum_version: ssl.TLSVersion | None = None


def test_settings_load_from_env_file(tmp_path: Path, monkeypatch) -> None:
    env_file = tmp_path / ".env"
    env_payload = (
        "APP_ENV=test\n"
        "LOG_LEVEL=DEBUG\n"
        "LOG_JSON=false\n"
        "CHUNK_HEIGHT=2000\n"
        "PAGE_FORMAT=a4\n"
        'REPORT_SECTIONS=["hero","footer"]\n'
        'BACKGROUND_COLOR="#FFFFFF"\n'
    )
    env_file.write_text(env_payload, encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    settings = Settings()

    assert settings.app_env == "test"
    assert settings.log_level == "DEBUG"
    assert settings.log_json is False
    assert settings.chunk_height == 2000
    assert settings.page_format == PageFormat.A4
    assert settings.report_sections == ["hero", "footer"]
    assert settings.background_color == "#ffffff"


def test_settings_defaults(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)

    settings = Settings()

    assert settings.capture_width == 1400
    assert settings.chunk_height == 4000
    assert settings.device_scale_factor == pytest.approx(1.2)
    assert settings.load_timeout_s == 30
    assert settings.page_format == PageFormat.LETTER
    assert tuple(settings.report_sections) == DEFAULT_SECTIONS


def test_settings_rejects_plain_http_report_url_outside_localhost(monkeypatch) -> None:
    monkeypatch.setenv("REPORT_URL", "http://reports.example.com/")
    with pytest.raises(ValidationError, match="must use https outside local development"):
        Settings()


def test_settings_allows_plain_http_content_url_for_localhost(monkeypatch) -> None:
    monkeypatch.setenv("CONTENT_API_BASE_URL", " http://localhost:4000 ")
    settings = Settings()
    assert settings.content_api_base_url == "http://localhost:4000"


@pytest.mark.parametrize("url", ["ftp://localhost/", "https://", "localhost:4000"])
def test_settings_rejects_malformed_urls(monkeypatch, url: str) -> None:
    monkeypatch.setenv("CONTENT_API_BASE_URL", url)
    with pytest.raises(ValidationError):
        Settings()


def test_settings_rejects_bad_background_color(monkeypatch) -> None:
    monkeypatch.setenv("BACKGROUND_COLOR", "navy")
    with pytest.raises(ValidationError, match="#rrggbb"):
        Settings()


def test_get_settings_uses_environment(monkeypatch) -> None:
    get_settings.cache_clear()
    monkeypatch.setenv("APP_ENV", "ci")

    settings = get_settings()
    assert settings.app_env == "ci"

    get_settings.cache_clear()


def test_get_settings_retries_after_env_template_on_missing(monkeypatch) -> None:
    get_settings.cache_clear()

    attempts = {"count": 0}

    class _DummySettings:
        app_env = "ci"

    def _fake_settings():
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise ValueError("missing")
        return _DummySettings()

    copied = {"done": 0}

    def _mark_env_copied(**kwargs: object) -> None:
        _ = kwargs
        copied["done"] += 1

    monkeypatch.setattr("reportexport.settings.Settings", _fake_settings)
    monkeypatch.setattr("reportexport.settings._is_missing_settings_error", lambda exc: True)
    monkeypatch.setattr("reportexport.settings.ensure_env_file_exists", _mark_env_copied)

    settings = get_settings()
    assert copied["done"] == 1
    assert attempts["count"] == 2
    assert settings.app_env == "ci"

    get_settings.cache_clear()


def test_get_settings_wraps_env_copy_error_on_missing(monkeypatch) -> None:
    get_settings.cache_clear()

    def _fake_settings():
        raise ValueError("missing")

    def _raise_io_error(**kwargs: object) -> None:
        _ = kwargs
        raise OSError("cannot write .env")

    monkeypatch.setattr("reportexport.settings.Settings", _fake_settings)
    monkeypatch.setattr("reportexport.settings._is_missing_settings_error", lambda exc: True)
    monkeypatch.setattr("reportexport.settings.ensure_env_file_exists", _raise_io_error)

    with pytest.raises(SettingsError):
        get_settings()

    get_settings.cache_clear()


def test_ensure_env_file_exists_copies_template(tmp_path: Path) -> None:
    template = tmp_path / ".env.template"
    env_file = tmp_path / ".env"
    template.write_text("REPORT_URL=https://reports.example.test/\n", encoding="utf-8")

    ensure_env_file_exists(env_path=env_file, template_path=template)

    assert env_file.exists()
    assert "REPORT_URL" in env_file.read_text(encoding="utf-8")


def test_build_ssl_context_enforces_tls() -> None:
    context = build_ssl_context(Settings())
    assert context.verify_mode == ssl.CERT_REQUIRED
    assert context.minimum_version == ssl.TLSVersion.TLSv1_2


def test_build_ssl_context_falls_back_to_certifi_when_host_store_empty(monkeypatch) -> None:
    calls: list[str | None] = []

    def _fake_create_default_context(*, cafile: str | None = None) -> _FakeContext:
        calls.append(cafile)
        return _FakeContext()

    monkeypatch.setattr("reportexport.settings.ssl.create_default_context", _fake_create_default_context)
    monkeypatch.setattr("reportexport.settings._cert_store_has_ca", lambda _ctx: False)
    monkeypatch.setattr("reportexport.settings._get_certifi_cafile", lambda: "/path/certifi.pem")

    _ = build_ssl_context(cast("Settings", _SettingsStub(None)))

    assert calls == [None, "/path/certifi.pem"]


def test_build_ssl_context_uses_cert_path_when_provided(monkeypatch) -> None:
    calls: list[str | None] = []

    def _fake_create_default_context(*, cafile: str | None = None) -> _FakeContext:
        calls.append(cafile)
        return _FakeContext()

    monkeypatch.setattr("reportexport.settings.ssl.create_default_context", _fake_create_default_context)

    _ = build_ssl_context(cast("Settings", _SettingsStub("/path/internal-ca.pem")))

    assert calls == ["/path/internal-ca.pem"]


def test_build_httpx_client_kwargs_uses_proxy(monkeypatch) -> None:
    monkeypatch.setenv("HTTPS_PROXY", "http://proxy.local:8080")
    settings = Settings()

    kwargs = build_httpx_client_kwargs(settings, target_url="https://cms.example.test")

    assert kwargs["timeout"] == settings.timeout
    assert kwargs["proxy"] == "http://proxy.local:8080"


@pytest.mark.parametrize(
    ("no_proxy", "target", "bypassed"),
    [
        (".internal.local", "https://api.internal.local/x", True),
        (".internal.local", "https://internal.local/x", False),
        ("internal.local", "https://api.internal.local/x", True),
        ("api.internal.local:8443", "https://api.internal.local:8443/x", True),
        ("10.0.0.0/8", "http://10.1.2.3/x", True),
        ("*", "https://anything.test", True),
        (".internal.local", "https://api.external.local/x", False),
    ],
)
def test_build_httpx_client_kwargs_respects_no_proxy(monkeypatch, no_proxy: str, target: str, bypassed: bool) -> None:
    monkeypatch.setenv("HTTPS_PROXY", "http://proxy.local:8080")
    monkeypatch.setenv("NO_PROXY", no_proxy)

    kwargs = build_httpx_client_kwargs(Settings(), target_url=target)

    assert ("proxy" not in kwargs) is bypassed
