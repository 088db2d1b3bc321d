"""Export orchestration: capture, pagination and data dump into one document."""

from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import uuid4

from reportexport.compositor import compose_chunks
from reportexport.content import HttpContentStore, fetch_all_sections
from reportexport.document import ReportDocument, build_output_path
from reportexport.exceptions import CaptureFailure, ContentFetchFailure, ExportCancelled, SandboxError
from reportexport.logging import bind_run_context, get_logger
from reportexport.paginator import paginate_composite
from reportexport.progress import ProgressReporter
from reportexport.rasterizer import capture_chunks
from reportexport.redaction import policy_from_settings, redact_record
from reportexport.sandbox import PlaywrightSandbox
from reportexport.settings import get_settings
from reportexport.text_layout import layout_sections
from reportexport.typing.models import CaptureSession

if TYPE_CHECKING:
    from collections.abc import Callable

    from reportexport.cancellation import CancelToken
    from reportexport.progress import ProgressScope
    from reportexport.settings import Settings
    from reportexport.typing.models import ContentRecord, ExportOptions
    from reportexport.typing.protocol import ContentStore, RenderSandbox

    type SandboxFactory = Callable[[Settings, CancelToken | None], RenderSandbox]

logger = get_logger(__name__)

CAPTURE_ERROR_LINES = (
    "Unable to capture the full visual report.",
    "This may be due to CORS restrictions on images.",
    "Please view the impact report directly in your browser.",
)
FETCH_ERROR_LINES = ("Unable to fetch configuration data.",)


def _default_sandbox_factory(settings: Settings, cancel_token: CancelToken | None) -> RenderSandbox:
    return PlaywrightSandbox(settings, skip_intro=True, cancel_token=cancel_token)


async def export_document(
    options: ExportOptions,
    *,
    settings: Settings | None = None,
    sandbox_factory: SandboxFactory | None = None,
    content_store: ContentStore | None = None,
) -> None:
    """Render the report and its configuration dump into a PDF on disk.

    The function never raises. Capture and fetch failures become error pages;
    cancellation or an unexpected error saves the document built so far.

    Args:
        options (ExportOptions): Export request.
        settings (Settings | None): Runtime settings; loaded from the environment by default.
        sandbox_factory (SandboxFactory | None): Builds the render surface; Playwright by default.
        content_store (ContentStore | None): Section source; the HTTP content API by default.
    """
    reporter = ProgressReporter(options.on_progress)
    with bind_run_context(run_id=uuid4().hex, title_label=options.title_label):
        try:
            settings = settings or get_settings()
        except Exception:
            logger.exception("Export aborted: settings could not be loaded")
            return

        owned_store: HttpContentStore | None = None
        if content_store is None:
            owned_store = content_store = HttpContentStore(settings)
        try:
            await _run_export(
                options,
                settings,
                reporter,
                sandbox_factory or _default_sandbox_factory,
                content_store,
            )
        except Exception:
            logger.exception("Unexpected error during export")
        finally:
            if owned_store is not None:
                await owned_store.aclose()


async def _run_export(
    options: ExportOptions,
    settings: Settings,
    reporter: ProgressReporter,
    sandbox_factory: SandboxFactory,
    content_store: ContentStore,
) -> None:
    token = options.cancel_token
    generated_at = datetime.now().astimezone()
    output_path = build_output_path(
        options.output_dir or Path(settings.output_dir),
        prefix=settings.filename_prefix,
        title_label=options.title_label,
        day=generated_at.date(),
    )
    logger.info("Export started", extra={"output_path": str(output_path)})

    with ReportDocument(settings.page_format) as document:
        document.add_title_page(
            title=settings.report_title,
            title_label=options.title_label,
            generated_on=generated_at.date(),
        )
        fetch_task = asyncio.create_task(
            fetch_all_sections(content_store, settings.report_sections, cancel_token=token),
        )
        try:
            await _capture_report(document, settings, reporter.scoped(2, 50), sandbox_factory, token)

            reporter.emit(52, "Fetching configuration data...")
            record = await _collect_content(fetch_task, document)
            if record is not None:
                reporter.emit(65, "Processing configuration data...")
                _append_data_dump(
                    document,
                    record,
                    settings,
                    reporter.scoped(70, 95),
                    options.title_label,
                    generated_at,
                )
        except ExportCancelled as exc:
            logger.warning("Export cancelled, saving partial document", extra={"stage": exc.stage})
            document.save(output_path)
            reporter.emit(reporter.report.percent, "Cancelled")
            return
        except Exception:
            logger.exception("Unexpected error during export, saving partial document")
        finally:
            await _discard(fetch_task)

        reporter.emit(97, "Saving PDF...")
        document.save(output_path)
        reporter.finish()
        logger.info("Export completed", extra={"output_path": str(output_path), "pages": document.page_count})


async def _capture_report(
    document: ReportDocument,
    settings: Settings,
    progress: ProgressScope,
    sandbox_factory: SandboxFactory,
    cancel_token: CancelToken | None,
) -> None:
    """Append the captured report as image pages, or one error page when capture fails.

    Image pages added before a failure are removed so the report is either
    complete or replaced by the error page.
    """
    progress.update(0, "Preparing report for capture...")
    session = CaptureSession(
        width=settings.capture_width,
        chunk_height=settings.chunk_height,
        scale=settings.device_scale_factor,
    )
    first_page = document.page_count
    try:
        async with sandbox_factory(settings, cancel_token) as sandbox:
            size = await sandbox.prepare()
            session.height = size.height
            await capture_chunks(
                sandbox,
                session,
                scroll_settle_s=settings.scroll_settle_s,
                progress=progress.scoped(0, 60),
                cancel_token=cancel_token,
            )

        with compose_chunks(session, background=settings.background_color) as composite:
            for page_slice in paginate_composite(
                composite,
                page_width=document.page_width,
                page_height=document.page_height,
                background=settings.background_color,
                jpeg_quality=settings.jpeg_quality,
                progress=progress.scoped(60, 100),
            ):
                document.add_image_page(page_slice)
    except ExportCancelled:
        raise
    except (SandboxError, CaptureFailure) as exc:
        logger.warning("Report capture failed", extra={"error": str(exc)})
        _replace_with_error_page(document, first_page, str(exc))
    except Exception as exc:
        logger.exception("Unexpected error during report capture")
        _replace_with_error_page(document, first_page, str(exc) or type(exc).__name__)


def _replace_with_error_page(document: ReportDocument, first_page: int, detail: str) -> None:
    document.truncate(first_page)
    document.add_error_page(CAPTURE_ERROR_LINES, detail=detail)


async def _collect_content(
    fetch_task: asyncio.Task[ContentRecord],
    document: ReportDocument,
) -> ContentRecord | None:
    """Wait for the section fetch; on failure append an error page and return None."""
    try:
        return await fetch_task
    except ContentFetchFailure as exc:
        logger.warning("Configuration fetch failed", extra={"error": str(exc), "statuses": exc.statuses})
        document.add_error_page(FETCH_ERROR_LINES, detail=str(exc))
        return None


def _append_data_dump(
    document: ReportDocument,
    record: ContentRecord,
    settings: Settings,
    progress: ProgressScope,
    title_label: str,
    generated_at: datetime,
) -> None:
    redacted = redact_record(record, policy_from_settings(settings))
    document.add_dump_header_page(title_label=title_label, generated_at=generated_at)
    for page in layout_sections(redacted, document.text_layout, progress=progress):
        document.add_text_page(page)


async def _discard(task: asyncio.Task[ContentRecord]) -> None:
    if not task.done():
        task.cancel()
    await asyncio.wait({task})
    if not task.cancelled() and task.exception() is not None:
        logger.debug("Discarded content fetch failed", extra={"error": str(task.exception())})
