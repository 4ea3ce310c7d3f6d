"""BatchRunner: sequential processing of independent work items.

Isolation is an explicit flag rather than exception suppression:
- continue_on_fail=True: an item's error becomes that item's failure outcome
  and the batch moves on;
- continue_on_fail=False: the first error aborts the batch and propagates,
  tagged with the failing item's index; no partial list is returned.

Outcomes come back in input order, one per item.
"""

from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence, Set

from vocant.core.exceptions import OrchestrationCancelledError
from vocant.core.managers.job_orchestrator import JobOrchestrator
from vocant.core.models.outcome import Outcome
from vocant.core.models.work_item import WorkItem
from vocant.core.settings import logger


class BatchRunner:
    def __init__(self, orchestrator: JobOrchestrator, continue_on_fail: bool = False) -> None:
        self._orchestrator = orchestrator
        self.continue_on_fail = continue_on_fail
        self._tasks: Set[asyncio.Task] = set()
        self._shutdown = False

    async def run(
        self,
        items: Sequence[WorkItem],
        continue_on_fail: Optional[bool] = None,
    ) -> List[Outcome]:
        isolate = self.continue_on_fail if continue_on_fail is None else continue_on_fail
        outcomes: List[Outcome] = []
        logger.info(f"[batch] start items={len(items)} continue_on_fail={isolate}")

        for item in items:
            if self._shutdown:
                raise OrchestrationCancelledError(item.index, completed=outcomes)

            task = asyncio.create_task(self._orchestrator.process(item))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

            try:
                outcome = await task
            except asyncio.CancelledError:
                current = asyncio.current_task()
                if current is not None and current.cancelling():
                    # our own caller is cancelling us: stop the item and propagate
                    task.cancel()
                    raise
                logger.warning(f"[batch] item cancelled by shutdown index={item.index}")
                raise OrchestrationCancelledError(item.index, completed=outcomes)
            except Exception as exc:
                if not isolate:
                    exc.item_index = item.index
                    logger.error(f"[batch] aborting at index={item.index} err={type(exc).__name__}: {exc}")
                    raise
                logger.warning(f"[batch] item failed index={item.index} err={type(exc).__name__}: {exc}")
                outcome = Outcome.failure(item.index, item.operation, exc)

            outcomes.append(outcome)

        failed = sum(1 for o in outcomes if not o.success)
        logger.info(f"[batch] done items={len(outcomes)} failed={failed}")
        return outcomes

    async def shutdown(self) -> None:
        """Cancel the in-flight item; `run` then raises OrchestrationCancelledError."""
        self._shutdown = True
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
