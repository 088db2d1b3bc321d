from __future__ import annotations

import pytest

from reportexport.progress import ProgressReporter


def test_reporter_never_decreases() -> None:
    seen: list[float] = []
    reporter = ProgressReporter(lambda percent, status: seen.append(percent))

    reporter.emit(40, "a")
    reporter.emit(10, "b")
    reporter.emit(60, "c")

    assert seen == [40, 40, 60]
    assert reporter.report.status == "c"


def test_reporter_clamps_to_hundred_and_finishes() -> None:
    reporter = ProgressReporter()

    reporter.emit(150, "over")
    assert reporter.report.percent == 100.0

    reporter.finish()
    assert reporter.report.percent == 100.0
    assert reporter.report.status == "Complete!"


def test_scopes_map_local_progress_into_their_range() -> None:
    seen: list[float] = []
    reporter = ProgressReporter(lambda percent, status: seen.append(percent))
    capture = reporter.scoped(2, 50)
    pages = capture.scoped(60, 100)

    capture.update(0, "start")
    capture.update(50, "half")
    pages.update(100, "done")

    assert seen == pytest.approx([2, 26, 50])


def test_callback_failure_does_not_abort(mocker) -> None:
    callback = mocker.Mock(side_effect=RuntimeError("ui gone"))
    reporter = ProgressReporter(callback)

    reporter.emit(10, "x")
    reporter.emit(20, "y")

    assert callback.call_count == 2
    assert reporter.report.percent == 20
