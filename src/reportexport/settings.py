"""Runtime settings loaded from `.env` and environment variables."""

from __future__ import annotations

import ipaddress
import logging
import re
import ssl
from functools import lru_cache
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import certifi
import httpx
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from reportexport.exceptions import SettingsError
from reportexport.typing.enums import PageFormat
from reportexport.typing.models.content import IMAGE_KEYS, REDACTION_PLACEHOLDER

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")
_LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})

DEFAULT_SECTIONS: tuple[str, ...] = (
    "defaults",
    "hero",
    "mission",
    "population",
    "financial",
    "method",
    "curriculum",
    "impactSection",
    "hearOurImpact",
    "testimonials",
    "nationalImpact",
    "flexA",
    "flexB",
    "flexC",
    "impactLevels",
    "partners",
    "footer",
)


class Settings(BaseSettings):
    """Package settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    project_name: str = "reportexport"
    app_env: str = Field(
        default="dev",
        validation_alias="APP_ENV",
        description="Application environment, e.g. 'dev', 'prod'.",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level, e.g. 'INFO', 'DEBUG'.",
    )
    log_json: bool = Field(
        default=True,
        validation_alias="LOG_JSON",
        description="Enable JSON formatted logs.",
    )
    log_file: str | None = Field(
        default=None,
        validation_alias="LOG_FILE",
        description="File path for log output.",
    )

    http_proxy: str | None = Field(default=None, validation_alias="HTTP_PROXY", description="HTTP proxy URL.")
    https_proxy: str | None = Field(
        default=None,
        validation_alias="HTTPS_PROXY",
        description="HTTPS proxy URL.",
    )
    all_proxy: str | None = Field(default=None, validation_alias="ALL_PROXY", description="All proxy URL.")
    no_proxy: str | None = Field(
        default=None,
        validation_alias="NO_PROXY",
        description="Comma-separated list of hosts to bypass proxy.",
    )
    cert_path: str | None = Field(
        default=None,
        validation_alias="CERT_PATH",
        description="Path to SSL certificate.",
    )
    timeout: float = Field(
        default=30.0,
        validation_alias="TIMEOUT",
        description="Content API request timeout in seconds.",
    )
    max_connections: int = Field(
        default=20,
        validation_alias="MAX_CONNECTIONS",
        description="Maximum number of concurrent content API connections.",
    )

    report_url: str = Field(
        default="http://localhost:5173/",
        validation_alias="REPORT_URL",
        description="URL of the rendered impact report.",
    )
    content_api_base_url: str = Field(
        default="http://localhost:4000",
        validation_alias="CONTENT_API_BASE_URL",
        description="Base URL of the content API serving report sections.",
    )
    report_sections: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SECTIONS),
        validation_alias="REPORT_SECTIONS",
        description="Report sections fetched for the data dump, in output order.",
    )

    capture_width: int = Field(
        default=1400,
        ge=1,
        validation_alias="CAPTURE_WIDTH",
        description="Width of the render surface in CSS pixels.",
    )
    initial_viewport_height: int = Field(
        default=900,
        ge=1,
        validation_alias="INITIAL_VIEWPORT_HEIGHT",
        description="Surface height used while the report loads.",
    )
    chunk_height: int = Field(
        default=4000,
        ge=1,
        validation_alias="CHUNK_HEIGHT",
        description="Maximum height of one raster capture in CSS pixels.",
    )
    device_scale_factor: float = Field(
        default=1.2,
        gt=0,
        validation_alias="DEVICE_SCALE_FACTOR",
        description="Device pixel ratio used for rasterization.",
    )
    background_color: str = Field(
        default="#0f1118",
        validation_alias="BACKGROUND_COLOR",
        description="Report background colour used under every capture.",
    )
    load_timeout_s: float = Field(
        default=30.0,
        gt=0,
        validation_alias="LOAD_TIMEOUT_S",
        description="Report page load timeout in seconds.",
    )
    load_settle_s: float = Field(
        default=3.0,
        ge=0,
        validation_alias="LOAD_SETTLE_S",
        description="Wait after load for lazy content and animations.",
    )
    resize_settle_s: float = Field(
        default=0.5,
        ge=0,
        validation_alias="RESIZE_SETTLE_S",
        description="Wait after resizing the surface to the full height.",
    )
    scroll_settle_s: float = Field(
        default=0.3,
        ge=0,
        validation_alias="SCROLL_SETTLE_S",
        description="Wait after each scroll before capturing a chunk.",
    )
    headless: bool = Field(default=True, validation_alias="HEADLESS", description="Run Chromium headless.")

    page_format: PageFormat = Field(
        default=PageFormat.LETTER,
        validation_alias="PAGE_FORMAT",
        description="Output page format.",
    )
    jpeg_quality: int = Field(
        default=90,
        ge=1,
        le=100,
        validation_alias="JPEG_QUALITY",
        description="JPEG quality of image pages.",
    )
    output_dir: str = Field(
        default="exports",
        validation_alias="OUTPUT_DIR",
        description="Directory receiving exported documents.",
    )
    report_title: str = Field(
        default="Impact Report",
        validation_alias="REPORT_TITLE",
        description="Title printed on the first page.",
    )
    filename_prefix: str = Field(
        default="Impact-Report",
        validation_alias="FILENAME_PREFIX",
        description="Prefix of exported file names.",
    )

    redacted_keys: list[str] = Field(
        default_factory=lambda: list(IMAGE_KEYS),
        validation_alias="REDACTED_KEYS",
        description="Key substrings elided from the data dump (case-insensitive).",
    )
    redaction_max_depth: int = Field(
        default=10,
        ge=0,
        validation_alias="REDACTION_MAX_DEPTH",
        description="Nesting depth past which content is dumped unfiltered.",
    )
    redaction_placeholder: str = Field(
        default=REDACTION_PLACEHOLDER,
        validation_alias="REDACTION_PLACEHOLDER",
        description="Token replacing redacted non-empty values.",
    )

    @field_validator("report_url", "content_api_base_url", mode="before")
    @classmethod
    def _validate_service_url(cls, value: object) -> object:
        """Require an http(s) URL with a host, and https outside local development.

        Args:
            value: Raw URL.

        Raises:
            ValueError: If the URL is not acceptable.

        Returns:
            object: Stripped URL.
        """
        if not isinstance(value, str):
            return value
        url = value.strip()
        parsed = urlparse(url)
        if parsed.scheme not in {"http", "https"}:
            raise ValueError("URL must use http or https")  # noqa: TRY003
        if not parsed.hostname:
            raise ValueError("URL must include a hostname")  # noqa: TRY003
        if parsed.scheme == "http" and not _is_local_host(parsed.hostname):
            raise ValueError("URL must use https outside local development")  # noqa: TRY003
        return url

    @field_validator("background_color")
    @classmethod
    def _validate_background_color(cls, value: str) -> str:
        """Require a `#rrggbb` colour.

        Args:
            value: Raw colour.

        Raises:
            ValueError: If the colour is malformed.

        Returns:
            str: Normalized lower-case colour.
        """
        if not _HEX_COLOR.fullmatch(value.strip()):
            raise ValueError("background color must look like #rrggbb")  # noqa: TRY003
        return value.strip().lower()

    def should_bypass_proxy(self, target_url: str | None) -> bool:
        """Return whether the URL should bypass proxies."""
        return _is_no_proxy_target(target_url, self.no_proxy)


def _is_local_host(hostname: str) -> bool:
    host = hostname.lower().strip("[]")
    return host in _LOCAL_HOSTS or host.endswith(".localhost")


def _cert_store_has_ca(context: ssl.SSLContext) -> bool:
    """Return whether the TLS context loaded at least one CA certificate."""
    return bool(context.cert_store_stats().get("x509_ca"))


def _get_certifi_cafile() -> str:
    """Return the certifi CA bundle path."""
    return certifi.where()


def build_ssl_context(settings: Settings) -> ssl.SSLContext:
    """Build a strict SSL context from settings.

    Falls back to the certifi bundle when no `CERT_PATH` is configured and the
    host trust store is empty (slim containers).

    Args:
        settings (Settings): Runtime settings.

    Returns:
        ssl.SSLContext: Configured TLS context.
    """
    ssl_context = ssl.create_default_context(cafile=settings.cert_path)
    if settings.cert_path is None and not _cert_store_has_ca(ssl_context):
        ssl_context = ssl.create_default_context(cafile=_get_certifi_cafile())
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.minimum_version = ssl.TLSVersion.TLSv1_2
    return ssl_context


def _iter_no_proxy_entries(no_proxy: str | None) -> list[str]:
    """Split NO_PROXY into normalized entries.

    Args:
        no_proxy (str | None): Raw NO_PROXY value.

    Returns:
        list[str]: Normalized entries.
    """
    if not no_proxy:
        return []
    return [entry.strip().lower() for entry in no_proxy.split(",") if entry.strip()]


def _is_no_proxy_target(target_url: str | None, no_proxy: str | None) -> bool:
    """Return whether the target URL matches a NO_PROXY entry.

    Entries may be `*`, a host (matching itself and its subdomains), a
    `.domain` (subdomains only), a `host:port` or a CIDR network.

    Args:
        target_url (str | None): Target request URL.
        no_proxy (str | None): Raw NO_PROXY value.

    Returns:
        bool: True when proxy must be bypassed.
    """
    hostname = urlparse(target_url).hostname if target_url else None
    if not hostname:
        return False
    host = hostname.lower().strip("[]")

    for entry in _iter_no_proxy_entries(no_proxy):
        if entry == "*":
            return True
        try:
            network = ipaddress.ip_network(entry, strict=False)
        except ValueError:
            pass
        else:
            try:
                if ipaddress.ip_address(host) in network:
                    return True
            except ValueError:
                pass
            continue

        pattern = (urlparse(f"//{entry}").hostname or entry).strip("[]")
        if entry.startswith("."):
            if host.endswith(f".{pattern.removeprefix('.')}"):
                return True
        elif host == pattern or host.endswith(f".{pattern}"):
            return True
    return False


def build_httpx_client_kwargs(
    settings: Settings,
    *,
    target_url: str | None = None,
) -> dict[str, Any]:
    """Build kwargs used for `httpx.AsyncClient`.

    Args:
        settings (Settings): Runtime settings.
        target_url (str | None): Optional target URL used for NO_PROXY evaluation.

    Returns:
        dict[str, Any]: Arguments for client constructors.
    """
    proxy_url = settings.https_proxy or settings.http_proxy or settings.all_proxy

    kwargs: dict[str, Any] = {
        "verify": build_ssl_context(settings),
        "timeout": settings.timeout,
        "limits": httpx.Limits(max_connections=settings.max_connections),
    }
    if proxy_url and not settings.should_bypass_proxy(target_url):
        kwargs["proxy"] = proxy_url
    return kwargs


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance.

    Raises:
        SettingsError: If settings cannot be loaded or validated.

    Returns:
        Settings: The loaded settings instance.
    """
    try:
        return Settings()
    except Exception as exc:
        if _is_missing_settings_error(exc):
            try:
                ensure_env_file_exists()
                return Settings()
            except Exception as retry_exc:
                raise SettingsError(exc=retry_exc) from retry_exc
        raise SettingsError(exc=exc) from exc


def ensure_env_file_exists(
    *,
    env_path: Path = Path(".env"),
    template_path: Path = Path(".env.template"),
) -> None:
    """Create `.env` from template when missing.

    Args:
        env_path (Path): Target environment file path.
        template_path (Path): Template file path.
    """
    if env_path.exists() or not template_path.exists():
        return
    env_path.write_text(template_path.read_text(encoding="utf-8"), encoding="utf-8")
    logger.info(
        "Created environment file from template",
        extra={"env_path": str(env_path), "template_path": str(template_path)},
    )


def _is_missing_settings_error(exc: Exception) -> bool:
    """Return whether the settings failure is due to missing values.

    Args:
        exc (Exception): Caught settings initialization error.

    Returns:
        bool: True when the error represents missing settings values.
    """
    if not isinstance(exc, ValidationError):
        return False
    return any(error.get("type") == "missing" for error in exc.errors())
