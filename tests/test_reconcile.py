from __future__ import annotations

import pytest

from todosync.reconcile import FailurePolicy, OptimisticCommand, Reconciler
from todosync.remote import RemoteStoreError
from todosync.schema import CommandOutcome


class Recorder:
    def __init__(self):
        self.events: list[str] = []

    def command(self, *, fail: Exception | None = None, result=None, **kwargs) -> OptimisticCommand:
        async def remote():
            self.events.append("remote")
            if fail is not None:
                raise fail
            return result

        return OptimisticCommand(
            name="test",
            apply=lambda: self.events.append("apply"),
            remote=remote,
            revert=lambda: self.events.append("revert"),
            confirm=lambda value: self.events.append(f"confirm:{value}"),
            **kwargs,
        )


@pytest.mark.asyncio
async def test_success_confirms_with_server_result():
    recorder = Recorder()
    outcome = await Reconciler().run(recorder.command(result=7))
    assert outcome is CommandOutcome.CONFIRMED
    assert recorder.events == ["apply", "remote", "confirm:7"]


@pytest.mark.asyncio
async def test_failure_rolls_back_by_default():
    recorder = Recorder()
    outcome = await Reconciler().run(recorder.command(fail=RemoteStoreError("down")))
    assert outcome is CommandOutcome.ROLLED_BACK
    assert recorder.events == ["apply", "remote", "revert"]


@pytest.mark.asyncio
async def test_failure_keeps_local_state_for_creative_commands():
    recorder = Recorder()
    outcome = await Reconciler().run(
        recorder.command(fail=RemoteStoreError("down"), on_failure=FailurePolicy.KEEP)
    )
    assert outcome is CommandOutcome.KEPT_LOCAL
    assert recorder.events == ["apply", "remote"]


@pytest.mark.asyncio
async def test_non_remote_errors_propagate():
    recorder = Recorder()
    with pytest.raises(KeyError):
        await Reconciler().run(recorder.command(fail=KeyError("bug")))
    assert "revert" not in recorder.events


@pytest.mark.asyncio
async def test_confirm_without_callback_keeps_optimistic_state():
    async def remote():
        return None

    applied = []
    command = OptimisticCommand(name="ack only", apply=lambda: applied.append(True), remote=remote)
    assert await Reconciler().run(command) is CommandOutcome.CONFIRMED
    assert applied == [True]
