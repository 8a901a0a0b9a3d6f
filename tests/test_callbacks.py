import asyncio

import pytest

from ble_errors import BLEError, BLEErrorKind, BLEResult
from callbacks import call_callback, track_task


class CountingOperation:
    """An awaitable operation that counts how often it actually runs."""

    def __init__(self, result):
        self.result = result
        self.runs = 0

    async def __call__(self):
        self.runs += 1
        return self.result


def test_no_callback_returns_result():
    op = CountingOperation(BLEResult.success(5))

    result = asyncio.run(call_callback(op()))

    assert result.value == 5
    assert op.runs == 1


def test_callback_receives_identical_result():
    failure = BLEResult.failure(BLEError(BLEErrorKind.OPERATION_FAILED, "rejected"))
    op = CountingOperation(failure)
    received = []

    result = asyncio.run(call_callback(op(), received.append))

    assert received == [failure]
    assert result is failure
    assert op.runs == 1


def test_async_callback_is_awaited():
    received = []

    async def callback(result):
        await asyncio.sleep(0)
        received.append(result.value)

    asyncio.run(call_callback(CountingOperation(BLEResult.success("v"))(), callback))

    assert received == ["v"]


def test_operation_exceptions_propagate():
    async def broken():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        asyncio.run(call_callback(broken(), lambda result: None))


def test_track_task_logs_failure_and_forgets_task(caplog):
    tasks = set()

    async def failing():
        raise RuntimeError("handler broke")

    async def scenario():
        track_task(failing(), tasks, "Test")
        assert len(tasks) == 1
        for _ in range(3):
            await asyncio.sleep(0)

    asyncio.run(scenario())

    assert tasks == set()
    assert "[BLE] Test handler failed" in caplog.text
    assert "handler broke" in caplog.text
