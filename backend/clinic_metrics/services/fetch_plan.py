# fetch plan — ordered stages of named record store fetches
# fetches inside a stage are independent and run concurrently; stages run in order
# so a later stage can read what an earlier one produced

import asyncio
import logging
from typing import Any, Awaitable, Callable

from clinic_metrics.errors import FetchError

logger = logging.getLogger(__name__)

# a fetch receives the results gathered so far and returns its own result
Fetch = Callable[[dict[str, Any]], Awaitable[Any]]


class FetchPlan:
    """small task graph: [stage1{name: fetch, ...}, stage2{...}, ...]"""

    def __init__(self, context: str):
        self.context = context
        self.stages: list[dict[str, Fetch]] = []

    def stage(self, **fetches: Fetch) -> "FetchPlan":
        """append a stage of concurrent fetches"""
        if not fetches:
            raise ValueError("a fetch plan stage needs at least one fetch")
        self.stages.append(fetches)
        return self

    async def run(self) -> dict[str, Any]:
        """execute all stages. the first failing fetch aborts the plan with a FetchError
        carrying the plan context; no partial results are returned."""
        results: dict[str, Any] = {}
        for index, fetches in enumerate(self.stages, 1):
            names = list(fetches)
            tasks = [asyncio.ensure_future(fetches[name](results)) for name in names]
            try:
                values = await asyncio.gather(*tasks)
            except FetchError as e:
                logger.error(f"{self.context}: stage {index} fetch failed: {e.message}")
                raise e.with_context(self.context) from e
            finally:
                await _cancel_pending(tasks)
            results.update(zip(names, values))
        return results


async def _cancel_pending(tasks: list[asyncio.Future]):
    """stop sibling fetches still querying the store once the stage has failed"""
    pending = [task for task in tasks if not task.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
