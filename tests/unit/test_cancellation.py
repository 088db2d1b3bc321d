from __future__ import annotations

import asyncio

import pytest

from reportexport.cancellation import CancelToken, guarded, settle
from reportexport.exceptions import ExportCancelled


def test_raise_if_cancelled_names_stage() -> None:
    token = CancelToken()
    token.raise_if_cancelled("capture")

    token.cancel()

    assert token.cancelled
    with pytest.raises(ExportCancelled, match="during capture"):
        token.raise_if_cancelled("capture")


def test_sleep_is_interrupted_by_cancel() -> None:
    async def _run() -> None:
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel)
        await token.sleep(30, stage="settle")

    with pytest.raises(ExportCancelled):
        asyncio.run(asyncio.wait_for(_run(), timeout=5))


def test_guard_returns_result_when_not_cancelled() -> None:
    async def _value() -> int:
        return 7

    async def _run() -> int:
        return await CancelToken().guard(_value(), stage="fetch")

    assert asyncio.run(_run()) == 7


def test_guard_cancels_pending_operation() -> None:
    started = {"cancelled": False}

    async def _forever() -> None:
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            started["cancelled"] = True
            raise

    async def _run() -> None:
        token = CancelToken()
        asyncio.get_running_loop().call_later(0.01, token.cancel)
        await token.guard(_forever(), stage="load")

    with pytest.raises(ExportCancelled, match="load"):
        asyncio.run(asyncio.wait_for(_run(), timeout=5))
    assert started["cancelled"]


def test_helpers_work_without_token() -> None:
    async def _value() -> str:
        return "ok"

    async def _run() -> str:
        await settle(0, None, stage="settle")
        return await guarded(_value(), None, stage="fetch")

    assert asyncio.run(_run()) == "ok"
