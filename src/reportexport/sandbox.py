"""Off-screen Chromium surface rendering the impact report."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Self
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from reportexport.cancellation import guarded, settle
from reportexport.exceptions import CaptureFailure, SandboxAccessDenied, SandboxLoadTimeout
from reportexport.logging import get_logger
from reportexport.typing.models import SurfaceSize

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from types import TracebackType

    from reportexport.cancellation import CancelToken
    from reportexport.settings import Settings

logger = get_logger(__name__)

REPORT_ROOT_SELECTOR = ".impact-report"
SKIP_INTRO_PARAM = "skipIntro"

# Any single layout metric can under-report the rendered height, so take the max.
_HEIGHT_SCRIPT = """
(rootSelector) => {
  const body = document.body;
  const html = document.documentElement;
  if (!body || !html) {
    return null;
  }
  const metrics = [
    body.scrollHeight,
    body.offsetHeight,
    html.clientHeight,
    html.scrollHeight,
    html.offsetHeight,
  ];
  const root = document.querySelector(rootSelector);
  if (root) {
    metrics.push(Math.ceil(root.getBoundingClientRect().bottom + window.scrollY));
  }
  return Math.max(...metrics);
}
"""

_SCROLL_SCRIPT = """
(offset) => {
  window.scrollTo(0, offset);
  return Math.round(window.scrollY);
}
"""


def build_report_url(report_url: str, *, skip_intro: bool) -> str:
    """Return the report URL carrying the intro-suppression flag.

    Args:
        report_url (str): Base report URL.
        skip_intro (bool): Whether the entrance animation must be skipped.

    Returns:
        str: URL to navigate to.
    """
    parsed = urlparse(report_url)
    query = [
        (key, value)
        for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        if key != SKIP_INTRO_PARAM
    ]
    if skip_intro:
        query.append((SKIP_INTRO_PARAM, "true"))
    return urlunparse(parsed._replace(query=urlencode(query)))


class PlaywrightSandbox:
    """Isolated headless browser page sized to the full report height.

    Use as an async context manager: the browser is released on exit whatever
    happened inside the block, including a `prepare()` that failed half-way.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        skip_intro: bool = True,
        cancel_token: CancelToken | None = None,
        driver_factory: Callable[[], Any] = async_playwright,
    ) -> None:
        """Initialize sandbox.

        Args:
            settings (Settings): Runtime settings.
            skip_intro (bool): Suppress the report's entrance animation.
            cancel_token (CancelToken | None): Optional cancellation signal.
            driver_factory (Callable[[], Any]): Playwright entry point, replaceable in tests.
        """
        self._settings = settings
        self._url = build_report_url(settings.report_url, skip_intro=skip_intro)
        self._cancel_token = cancel_token
        self._driver_factory = driver_factory

        self._driver: Any = None
        self._browser: Any = None
        self._context: Any = None
        self._page: Any = None
        self._size: SurfaceSize | None = None
        self._scroll_y = 0
        self._disposed = False

    @property
    def url(self) -> str:
        """Return the URL the sandbox navigates to."""
        return self._url

    @property
    def disposed(self) -> bool:
        """Return whether the sandbox was released."""
        return self._disposed

    async def prepare(self) -> SurfaceSize:
        """Load the report, wait for it to settle and resize to the full content height.

        Raises:
            SandboxLoadTimeout: If the page does not load within `LOAD_TIMEOUT_S`.
            SandboxAccessDenied: If the browser or the document cannot be reached.

        Returns:
            SurfaceSize: Full content width and height in CSS pixels.
        """
        if self._disposed:
            raise SandboxAccessDenied(message="Render surface was already disposed")

        settings = self._settings
        try:
            self._driver = await self._driver_factory().start()
            self._browser = await self._driver.chromium.launch(headless=settings.headless)
            self._context = await self._browser.new_context(
                viewport={"width": settings.capture_width, "height": settings.initial_viewport_height},
                device_scale_factor=settings.device_scale_factor,
            )
            self._page = await self._context.new_page()
        except PlaywrightError as exc:
            raise SandboxAccessDenied(message=f"Unable to start render surface: {exc}") from exc

        await self._navigate()
        await settle(settings.load_settle_s, self._cancel_token, stage="sandbox settle")

        height = await self._discover_height()
        logger.info("Report dimensions discovered", extra={"width": settings.capture_width, "height": height})

        try:
            await self._page.set_viewport_size({"width": settings.capture_width, "height": max(height, 1)})
        except PlaywrightError as exc:
            raise SandboxAccessDenied(message=f"Unable to resize render surface: {exc}") from exc
        await settle(settings.resize_settle_s, self._cancel_token, stage="sandbox resize")

        self._size = SurfaceSize(width=settings.capture_width, height=height)
        return self._size

    async def _navigate(self) -> None:
        timeout_s = self._settings.load_timeout_s
        logger.info("Loading report page", extra={"url": self._url})
        try:
            response = await guarded(
                self._page.goto(self._url, wait_until="load", timeout=timeout_s * 1000),
                self._cancel_token,
                stage="sandbox load",
            )
        except PlaywrightTimeoutError as exc:
            raise SandboxLoadTimeout(timeout_s=timeout_s, url=self._url) from exc
        except PlaywrightError as exc:
            raise SandboxAccessDenied(message=f"Failed to load impact report page: {exc}") from exc

        if response is not None and not response.ok:
            raise SandboxAccessDenied(message=f"Report page answered with status {response.status}")

    async def _discover_height(self) -> int:
        try:
            height = await self._page.evaluate(_HEIGHT_SCRIPT, REPORT_ROOT_SELECTOR)
        except PlaywrightError as exc:
            raise SandboxAccessDenied(message=f"Cannot access report document: {exc}") from exc
        if height is None:
            raise SandboxAccessDenied(message="Cannot access report document")
        return max(int(height), 0)

    def _require_prepared(self) -> SurfaceSize:
        if self._disposed or self._page is None or self._size is None:
            raise SandboxAccessDenied(message="Render surface is not prepared")
        return self._size

    async def scroll_to(self, offset: int) -> int:
        """Scroll the page to a vertical offset.

        Args:
            offset (int): Target offset in CSS pixels.

        Raises:
            SandboxAccessDenied: If the surface is not prepared or cannot be scripted.

        Returns:
            int: Scroll position actually reached (0 when the viewport holds the whole report).
        """
        self._require_prepared()
        try:
            self._scroll_y = int(await self._page.evaluate(_SCROLL_SCRIPT, offset))
        except PlaywrightError as exc:
            raise SandboxAccessDenied(message=f"Unable to scroll render surface: {exc}") from exc
        return self._scroll_y

    async def capture(self, offset: int, height: int) -> bytes:
        """Rasterize `[offset, offset + height)` of the report as PNG.

        Args:
            offset (int): Interval start in CSS pixels.
            height (int): Interval height in CSS pixels.

        Raises:
            CaptureFailure: If the screenshot cannot be taken.

        Returns:
            bytes: PNG bytes at the device scale factor.
        """
        size = self._require_prepared()
        clip = {"x": 0, "y": offset - self._scroll_y, "width": size.width, "height": height}
        try:
            return await self._page.screenshot(type="png", clip=clip, animations="disabled")
        except PlaywrightError as exc:
            raise CaptureFailure(message=f"Screenshot failed: {exc}", offset=offset) from exc

    async def dispose(self) -> None:
        """Close page, context, browser and driver. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True

        closers: list[tuple[str, Callable[[], Awaitable[object]] | None]] = [
            ("page", getattr(self._page, "close", None)),
            ("context", getattr(self._context, "close", None)),
            ("browser", getattr(self._browser, "close", None)),
            ("driver", getattr(self._driver, "stop", None)),
        ]
        for resource, close in closers:
            if close is None:
                continue
            try:
                await close()
            except Exception:
                logger.warning("Failed to close render surface resource", extra={"resource": resource})

        self._page = self._context = self._browser = self._driver = None
        logger.debug("Render surface disposed")

    async def __aenter__(self) -> Self:
        """Acquire the sandbox."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Dispose the sandbox on every exit path."""
        await self.dispose()
