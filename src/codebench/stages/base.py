# src/codebench/stages/base.py

from __future__ import annotations

import time
from abc import ABC, abstractmethod

from ..data.context import SessionContext
from ..data.pattern_store import PatternStore
from ..data.workbench import Workbench
from ..errors import CodebenchError, StageFailure


class BaseStage(ABC):
    """Defines the common execution contract for pipeline stages.

    The base class provides:
    - stable identity (name/version/tags); `name` doubles as the step label
    - a single entrypoint (__call__) that checks cancellation/deadline, wraps
      run() with timing and turns crashes into StageFailure

    Stages read the shared PatternStore but never mutate it; they only write
    into the session's Workbench.
    """

    name: str = "base_stage"
    version: str = "0.1.0"
    tags: tuple[str, ...] = ()

    @abstractmethod
    def run(
        self,
        *,
        workbench: Workbench,
        store: PatternStore,
        ctx: SessionContext,
    ) -> dict[str, object]:
        """Runs the stage implementation."""
        raise NotImplementedError

    def __call__(
        self,
        *,
        workbench: Workbench,
        store: PatternStore,
        ctx: SessionContext,
    ) -> dict[str, object]:
        """Executes the stage with consistent timing and error handling."""
        ctx.check()
        t0 = time.perf_counter()
        try:
            out = self.run(workbench=workbench, store=store, ctx=ctx)
            if not isinstance(out, dict):
                raise StageFailure(
                    f"{self.name} returned non-dict output",
                    data={"stage": self.name, "type": str(type(out))},
                )

            return {
                **out,
                "_meta": {
                    "stage": self.name,
                    "version": self.version,
                    "tags": list(self.tags),
                    "session_id": ctx.session_id,
                    "step": ctx.step,
                    "duration_ms": int((time.perf_counter() - t0) * 1000),
                },
            }
        except CodebenchError:
            raise
        except Exception as e:
            raise StageFailure(
                "Stage crashed",
                data={
                    "stage": self.name,
                    "error": f"{type(e).__name__}: {e}",
                    "session_id": ctx.session_id,
                    "step": ctx.step,
                },
            ) from e

    def _default_ctx(self) -> SessionContext:
        return SessionContext.start().with_step(self.name)
