"""Concurrent retrieval of report sections from the content API."""

from __future__ import annotations

import asyncio
import re
from typing import TYPE_CHECKING, Self

import httpx

from reportexport.cancellation import guarded
from reportexport.exceptions import ContentFetchFailure, ExportCancelled
from reportexport.logging import get_logger
from reportexport.settings import build_httpx_client_kwargs
from reportexport.typing.enums import SectionStatus

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from types import TracebackType

    from reportexport.cancellation import CancelToken
    from reportexport.settings import Settings
    from reportexport.typing.models import ContentRecord, ContentValue
    from reportexport.typing.protocol import ContentStore

logger = get_logger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def section_slug(name: str) -> str:
    """Return the API path segment of a section (`impactSection` -> `impact-section`).

    Args:
        name (str): Section name.

    Returns:
        str: Kebab-case slug.
    """
    return _CAMEL_BOUNDARY.sub("-", name).lower()


class HttpContentStore:
    """Content store reading sections from `GET /api/impact/<slug>`."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        """Initialize store.

        Args:
            settings (Settings): Runtime settings.
            client (httpx.AsyncClient | None): Client to reuse; one is created and owned otherwise.
        """
        self._base_url = settings.content_api_base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            **build_httpx_client_kwargs(settings, target_url=self._base_url),
        )

    def section_url(self, name: str) -> str:
        """Return the URL serving one section."""
        return f"{self._base_url}/api/impact/{section_slug(name)}"

    async def fetch_section(self, name: str) -> ContentValue:
        """Fetch one section payload.

        Args:
            name (str): Section name.

        Raises:
            ContentFetchFailure: On transport errors, error statuses other than 404, or invalid JSON.

        Returns:
            ContentValue: The `data` member of the response, or None when the section does not exist yet.
        """
        url = self.section_url(name)
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise ContentFetchFailure(message=f"Request for section '{name}' failed: {exc}") from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            logger.info("Section not created yet", extra={"section": name})
            return None
        if response.is_error:
            raise ContentFetchFailure(
                message=f"Request for section '{name}' failed with status {response.status_code}",
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ContentFetchFailure(message=f"Section '{name}' returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ContentFetchFailure(message=f"Section '{name}' returned an unexpected payload")
        return payload.get("data")

    async def aclose(self) -> None:
        """Close the HTTP client when this store created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        """Enter async context."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close owned resources."""
        await self.aclose()


async def fetch_all_sections(
    store: ContentStore,
    sections: Sequence[str],
    *,
    cancel_token: CancelToken | None = None,
) -> ContentRecord:
    """Fetch every section concurrently and join them into one record.

    The join fails fast: the first failing fetch cancels the others.

    Args:
        store (ContentStore): Section source.
        sections (Sequence[str]): Section names, in output order.
        cancel_token (CancelToken | None): Optional cancellation signal.

    Raises:
        ContentFetchFailure: If any fetch fails; `statuses` maps every section to its outcome.
        ExportCancelled: If cancellation is requested while fetches are outstanding.

    Returns:
        ContentRecord: Section payloads keyed by name, in `sections` order.
    """
    names = list(dict.fromkeys(sections))
    if not names:
        return {}

    logger.info("Fetching report sections", extra={"sections": len(names)})
    tasks = {name: asyncio.create_task(store.fetch_section(name), name=f"fetch-section:{name}") for name in names}

    try:
        _, pending = await guarded(
            asyncio.wait(tasks.values(), return_when=asyncio.FIRST_EXCEPTION),
            cancel_token,
            stage="content fetch",
        )
    except ExportCancelled:
        await _cancel_all(tasks.values())
        raise
    await _cancel_all(pending)

    statuses: dict[str, str] = {}
    first_error: BaseException | None = None
    for name, task in tasks.items():
        if task.cancelled():
            statuses[name] = SectionStatus.CANCELLED.to_str()
            continue
        error = task.exception()
        if error is None:
            statuses[name] = SectionStatus.OK.to_str()
            continue
        statuses[name] = f"{SectionStatus.FAILED}: {error}"
        first_error = first_error or error

    if first_error is not None:
        logger.warning("Report section fetch failed", extra={"statuses": statuses})
        raise ContentFetchFailure(message="Unable to fetch configuration data", statuses=statuses) from first_error

    logger.info("Report sections fetched", extra={"sections": len(names)})
    return {name: tasks[name].result() for name in names}


async def _cancel_all(tasks: Iterable[asyncio.Task[ContentValue]]) -> None:
    pending = [task for task in tasks if not task.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
