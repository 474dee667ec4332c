"""
UploadPipeline — the orchestrator that runs upload steps sequentially.

Responsibilities:
    - Ask the registry which steps apply to the upload
    - Execute each step in priority order with timing and logging
    - Thread the updated context from one step into the next
    - Stop at the first failure or at the first terminal success
    - Turn exceptions escaping a step into a failed result

There are no retries: one run is one pass over the steps.
"""

from __future__ import annotations

import time

import structlog

from mediahub.pipeline.context import UploadContext
from mediahub.pipeline.registry import StepRegistry
from mediahub.pipeline.result import UploadResult


class UploadPipeline:
    """
    Runs the applicable steps of a StepRegistry against one UploadContext.

    Usage::

        pipeline = UploadPipeline(StepRegistry(services))
        result = await pipeline.run(ctx)
        if result.success:
            media = result.record
    """

    def __init__(self, registry: StepRegistry) -> None:
        self.registry = registry
        self.logger = structlog.get_logger("pipeline.engine")

    async def run(self, ctx: UploadContext) -> UploadResult:
        steps = self.registry.applicable_steps(ctx)

        log = self.logger.bind(
            session_id=ctx.session_id,
            filename=ctx.original_filename,
            total_steps=len(steps),
        )
        log.info("Upload pipeline started", steps=[s.name for s in steps])

        if not steps:
            log.info("No applicable upload steps")
            return UploadResult.succeeded("No upload steps to run", context=ctx)

        started = time.perf_counter()
        current = ctx
        result: UploadResult | None = None

        for index, step in enumerate(steps):
            step_log = log.bind(step_name=step.name, step_index=index + 1)
            step_log.info(f"Step {index + 1}/{len(steps)}: {step.description}")
            step_started = time.perf_counter()

            try:
                result = await step.execute(current)
            except Exception as exc:
                # Steps return failures; anything raised here is a bug in the step
                step_log.exception("Unexpected error in upload step", error=str(exc))
                return UploadResult.failed(
                    f"Step '{step.name}' failed unexpectedly: {exc}",
                    [{"exception": str(exc), "step": step.name}],
                    current,
                )

            duration_ms = int((time.perf_counter() - step_started) * 1000)

            if not result.success:
                step_log.error(
                    "Step failed, pipeline stopping",
                    message=result.message,
                    errors=len(result.errors),
                    duration_ms=duration_ms,
                )
                return result

            if not result.should_continue():
                step_log.info(
                    "Step finished the upload",
                    message=result.message,
                    duration_ms=duration_ms,
                )
                self._log_finished(log, started, result)
                return result

            step_log.info("Step completed", duration_ms=duration_ms)
            current = result.updated_context()

        # Every step continued; the last result stands as the outcome
        self._log_finished(log, started, result)
        return result

    @staticmethod
    def _log_finished(
        log: structlog.BoundLogger,
        started: float,
        result: UploadResult,
    ) -> None:
        log.info(
            "Upload pipeline finished",
            success=result.success,
            record_id=getattr(result.record, "id", None),
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
