"""
Tests for client-side status polling.
"""

import asyncio

from app.client.status_poller import StatusPoller
from app.schemas.model import ProviderStatus, TrainingStatusReport


def report(model_id, status, provider_status=ProviderStatus.TRAINING):
    return TrainingStatusReport(model_id=model_id, status=status, provider_status=provider_status)


def test_polls_until_terminal():
    statuses = iter(["training", "training", "deploying", "completed", "completed"])
    seen = []

    async def fetch(model_id):
        return report(model_id, next(statuses))

    async def scenario():
        poller = StatusPoller(fetch, interval=0)
        task = poller.start("m1", seen.append)
        await asyncio.wait_for(task, timeout=1)
        return poller

    poller = asyncio.run(scenario())

    assert [r.status for r in seen] == ["training", "training", "deploying", "completed"]
    assert not poller.is_polling("m1")


def test_fetch_errors_do_not_stop_polling():
    calls = []

    async def fetch(model_id):
        calls.append(model_id)
        if len(calls) < 3:
            raise RuntimeError("network blip")
        return report(model_id, "failed", ProviderStatus.FAILED)

    seen = []

    async def scenario():
        poller = StatusPoller(fetch, interval=0)
        await asyncio.wait_for(poller.start("m1", seen.append), timeout=1)

    asyncio.run(scenario())

    assert len(calls) == 3
    assert [r.status for r in seen] == ["failed"]


def test_stop_cancels_polling():
    async def fetch(model_id):
        return report(model_id, "training")

    async def scenario():
        poller = StatusPoller(fetch, interval=0.01)
        poller.start("m1", lambda r: None)
        await asyncio.sleep(0.03)
        assert poller.is_polling("m1")
        await poller.stop("m1")
        return poller

    poller = asyncio.run(scenario())
    assert not poller.is_polling("m1")


def test_start_replaces_existing_poll():
    first_updates = []
    second_updates = []

    async def fetch(model_id):
        return report(model_id, "training")

    async def scenario():
        poller = StatusPoller(fetch, interval=0.01)
        first = poller.start("m1", first_updates.append)
        await asyncio.sleep(0.03)
        poller.start("m1", second_updates.append)
        await asyncio.sleep(0.03)
        assert first.cancelled() or first.done()
        assert poller.is_polling("m1")
        await poller.stop_all()
        return poller

    poller = asyncio.run(scenario())

    assert first_updates
    assert second_updates
    assert not poller.is_polling("m1")


def test_stop_all_with_several_models():
    async def fetch(model_id):
        return report(model_id, "training")

    async def scenario():
        poller = StatusPoller(fetch, interval=0.01)
        for model_id in ("a", "b", "c"):
            poller.start(model_id, lambda r: None)
        await asyncio.sleep(0.02)
        await poller.stop_all()
        return poller

    poller = asyncio.run(scenario())
    assert not any(poller.is_polling(m) for m in ("a", "b", "c"))


def test_callback_errors_do_not_stop_polling():
    statuses = iter(["training", "training", "completed"])
    seen = []

    async def fetch(model_id):
        return report(model_id, next(statuses))

    def on_update(r):
        seen.append(r.status)
        if len(seen) == 1:
            raise RuntimeError("render failed")

    async def scenario():
        poller = StatusPoller(fetch, interval=0)
        task = poller.start("m1", on_update)
        await asyncio.wait_for(task, timeout=1)
        return task

    task = asyncio.run(scenario())

    assert seen == ["training", "training", "completed"]
    assert task.exception() is None
