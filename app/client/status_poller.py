"""
Status Poller
Cancellable periodic polling of model training status, one task per model.

Starting a poll for a model that is already being polled replaces the old
task. A poll stops by itself once the model reaches a terminal status.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from app.core.config import settings
from app.models.model import TERMINAL_STATUSES
from app.schemas.model import TrainingStatusReport

logger = logging.getLogger(__name__)

TERMINAL_VALUES = frozenset(status.value for status in TERMINAL_STATUSES)

FetchFn = Callable[[str], Awaitable[TrainingStatusReport]]
UpdateFn = Callable[[TrainingStatusReport], None]


class StatusPoller:
    """Keyed registry of asyncio polling tasks."""

    def __init__(self, fetch: FetchFn, interval: Optional[float] = None):
        self.fetch = fetch
        self.interval = interval if interval is not None else settings.STATUS_POLL_INTERVAL
        self._tasks: Dict[str, asyncio.Task] = {}

    def start(self, model_id: str, on_update: UpdateFn) -> asyncio.Task:
        """Begin polling a model. Must be called from a running event loop."""
        self._cancel(model_id)
        task = asyncio.get_running_loop().create_task(self._run(model_id, on_update))
        self._tasks[model_id] = task
        return task

    async def stop(self, model_id: str):
        task = self._cancel(model_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def stop_all(self):
        tasks = [self._cancel(model_id) for model_id in list(self._tasks)]
        await asyncio.gather(*[t for t in tasks if t is not None], return_exceptions=True)

    def is_polling(self, model_id: str) -> bool:
        task = self._tasks.get(model_id)
        return task is not None and not task.done()

    def _cancel(self, model_id: str) -> Optional[asyncio.Task]:
        task = self._tasks.pop(model_id, None)
        if task is not None and not task.done():
            task.cancel()
        return task

    async def _run(self, model_id: str, on_update: UpdateFn):
        try:
            while True:
                try:
                    report = await self.fetch(model_id)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.warning(f"[Poller] Status fetch for model {model_id} failed: {e}")
                else:
                    try:
                        on_update(report)
                    except Exception:
                        logger.exception(f"[Poller] Update callback for model {model_id} failed")
                    if report.status in TERMINAL_VALUES:
                        logger.info(f"[Poller] Model {model_id} reached {report.status}; stopping")
                        return
                await asyncio.sleep(self.interval)
        finally:
            if self._tasks.get(model_id) is asyncio.current_task():
                del self._tasks[model_id]
