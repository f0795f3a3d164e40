"""
Async executor for bulk operation jobs.

Each submitted job runs as its own asyncio task, owned by the worker rather
than by the request that submitted it. Jobs run concurrently; there is no
global queue. Cancellation is cooperative: the engine checks the flag
between items.

Finished results are kept only until someone waits for them, and at most
``max_results`` of them; the operation record is the durable outcome.
"""
import asyncio
import logging
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Dict, Optional, Set

logger = logging.getLogger(__name__)

JobFactory = Callable[[], Awaitable[Dict[str, Any]]]

DEFAULT_MAX_RESULTS = 256


class BulkOperationWorker:
    """Tracks running bulk job tasks and their unclaimed results."""

    def __init__(self, max_results: int = DEFAULT_MAX_RESULTS):
        self.max_results = max_results
        self._running_tasks: Dict[str, asyncio.Task] = {}
        self._task_results: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        self._cancel_requested: Set[str] = set()

    def submit(self, operation_id: str, job: JobFactory) -> asyncio.Task:
        """Schedule a job on the running loop and return its handle immediately."""
        task = asyncio.create_task(job(), name=f"bulk-operation-{operation_id}")
        self._running_tasks[operation_id] = task
        task.add_done_callback(
            lambda t, op_id=operation_id: self._on_task_complete(op_id, t)
        )
        return task

    @staticmethod
    def _result_of(operation_id: str, task: asyncio.Task) -> Dict[str, Any]:
        if task.cancelled():
            return {"status": "cancelled"}
        error = task.exception()
        if error is not None:
            logger.error(f"Bulk task {operation_id} failed with exception: {error}")
            return {"status": "failed", "error": str(error)}
        return task.result()

    def _on_task_complete(self, operation_id: str, task: asyncio.Task) -> None:
        if self._running_tasks.get(operation_id) is not task:
            # Already settled by wait()
            return
        try:
            self._task_results[operation_id] = self._result_of(operation_id, task)
            while len(self._task_results) > self.max_results:
                self._task_results.popitem(last=False)
        finally:
            self._running_tasks.pop(operation_id, None)
            self._cancel_requested.discard(operation_id)

    async def wait(self, operation_id: str) -> Optional[Dict[str, Any]]:
        """Wait for a job to finish and claim its result (None if unknown or already claimed)."""
        task = self._running_tasks.get(operation_id)
        if task is not None:
            await asyncio.wait({task})
            self._on_task_complete(operation_id, task)
        return self._task_results.pop(operation_id, None)

    def request_cancel(self, operation_id: str) -> bool:
        """Flag a running job for cancellation; False when no task is live."""
        if operation_id not in self._running_tasks:
            return False
        self._cancel_requested.add(operation_id)
        return True

    def cancel_requested(self, operation_id: str) -> bool:
        return operation_id in self._cancel_requested

    def running_count(self) -> int:
        return len(self._running_tasks)

    async def shutdown(self) -> None:
        """Wait for outstanding jobs; called when the app stops."""
        tasks = list(self._running_tasks.values())
        if tasks:
            logger.info("bulk_worker_shutdown: waiting for %d job(s)", self.running_count())
            await asyncio.gather(*tasks, return_exceptions=True)
