"""CLI entry point for ReportExport."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from pydantic import ValidationError

from reportexport import __version__, logger
from reportexport.dependencies import ensure_cli_dependencies_for_export
from reportexport.exceptions import PackageError
from reportexport.logging import configure_logging
from reportexport.pipeline import export_document
from reportexport.settings import Settings, get_settings
from reportexport.typing.enums import PageFormat
from reportexport.typing.models import ExportOptions


def _page_format_from_cli(value: str) -> PageFormat:
    """Convert `--page-format` CLI value into a page format.

    Args:
        value (str): CLI value.

    Raises:
        argparse.ArgumentTypeError: If value is not supported.

    Returns:
        PageFormat: Selected page format.
    """
    try:
        return PageFormat.from_str(value)
    except ValueError as exc:
        choices = ", ".join(item.value for item in PageFormat)
        raise argparse.ArgumentTypeError(f"--page-format must be one of: {choices}") from exc  # noqa: TRY003


def build_parser() -> argparse.ArgumentParser:
    """Create the command-line parser.

    Returns:
        argparse.ArgumentParser: The configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="reportexport")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command")

    export_parser = subparsers.add_parser("export", help="Export the impact report and its data dump to PDF")
    export_parser.add_argument("--title", default=None, dest="title_label")
    export_parser.add_argument("--output-dir", type=Path, default=None, dest="output_dir")
    export_parser.add_argument("--report-url", default=None, dest="report_url")
    export_parser.add_argument("--content-url", default=None, dest="content_url")
    export_parser.add_argument("--page-format", type=_page_format_from_cli, default=None, dest="page_format")

    return parser


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return settings with CLI overrides applied and re-validated.

    Args:
        settings (Settings): Settings loaded from the environment.
        args (argparse.Namespace): Parsed CLI args.

    Returns:
        Settings: Settings used by the export.
    """
    overrides = {
        "REPORT_URL": args.report_url,
        "CONTENT_API_BASE_URL": args.content_url,
        "PAGE_FORMAT": args.page_format,
    }
    values = {key: value for key, value in overrides.items() if value is not None}
    if not values:
        return settings
    current = {
        field.validation_alias if isinstance(field.validation_alias, str) else name: getattr(settings, name)
        for name, field in Settings.model_fields.items()
    }
    return Settings.model_validate({**current, **values})


def _log_progress(percent: float, status: str) -> None:
    logger.info(status, extra={"percent": round(percent)})


def main() -> int:
    """Run the CLI.

    Returns:
        int: Exit code (0 for success, 1 for error, 130 when interrupted).
    """
    settings = get_settings()
    configure_logging(settings=settings)

    parser = build_parser()
    args = parser.parse_args()

    if args.command != "export":
        parser.print_help()
        return 0

    try:
        ensure_cli_dependencies_for_export()
        settings = _apply_overrides(settings, args)
        options = ExportOptions(on_progress=_log_progress, output_dir=args.output_dir)
        if args.title_label:
            options.title_label = args.title_label
        asyncio.run(export_document(options, settings=settings))
    except (PackageError, ValidationError):
        logger.exception("Export failed")
        return 1
    except KeyboardInterrupt:
        logger.info("Export aborted by user")
        return 130
    except Exception:
        logger.exception("Unexpected error during export")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
