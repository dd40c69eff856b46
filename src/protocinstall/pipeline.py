"""Sequential step runner.

Steps run in order and the run halts at the first failure. A step marked
``best_effort`` may fail without stopping the steps after it.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from protocinstall.errors import CommandError, InstallError, PipelineError
from protocinstall.observability import StructuredLogger

StepStatus = Literal["ok", "skipped", "failed"]


@dataclass(frozen=True, slots=True)
class StepResult:
    name: str
    status: StepStatus
    detail: str = ""
    returncode: int | None = None
    error: InstallError | None = None

    @property
    def ok(self) -> bool:
        return self.status != "failed"


@dataclass(frozen=True, slots=True)
class Step:
    name: str
    action: Callable[[Any], StepResult]
    best_effort: bool = False


@dataclass(slots=True)
class PipelineResult:
    results: list[StepResult] = field(default_factory=list)
    halted: StepResult | None = None

    @property
    def ok(self) -> bool:
        return self.halted is None

    @property
    def failed_step(self) -> StepResult | None:
        """The step that halted the run, if any.

        Failures of best-effort steps are listed in ``failures`` but do not
        halt the run.
        """
        return self.halted

    @property
    def failures(self) -> list[StepResult]:
        return [result for result in self.results if result.status == "failed"]

    @property
    def exit_code(self) -> int:
        failed = self.failed_step
        if failed is None:
            return 0
        return failed.returncode or 1

    def result_for(self, name: str) -> StepResult | None:
        for result in self.results:
            if result.name == name:
                return result
        return None


def run_pipeline(
    steps: Sequence[Step],
    context: Any,
    *,
    logger: StructuredLogger,
) -> PipelineResult:
    names = [step.name for step in steps]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise PipelineError(
            "Step names must be unique.",
            context={"duplicates": ", ".join(duplicates)},
        )

    outcome = PipelineResult()
    for step in steps:
        logger.log(operation="install", step=step.name, message="starting")
        started = time.monotonic()
        try:
            result = step.action(context)
        except InstallError as exc:
            result = StepResult(
                name=step.name,
                status="failed",
                detail=exc.message,
                returncode=_returncode_of(exc),
                error=exc,
            )
        elapsed = time.monotonic() - started
        outcome.results.append(result)

        if result.ok:
            logger.log(
                operation="install",
                step=step.name,
                message=result.detail or result.status,
                duration=elapsed,
                extra={"status": result.status},
            )
            continue

        extra: dict[str, object] = {"status": result.status}
        if result.error is not None:
            extra["error"] = result.error.to_dict()
        if step.best_effort:
            logger.log(
                operation="install",
                step=step.name,
                level="warning",
                message=f"best-effort step failed, continuing: {result.detail}",
                returncode=result.returncode,
                duration=elapsed,
                extra=extra,
            )
            continue

        logger.log(
            operation="install",
            step=step.name,
            level="error",
            message=f"step failed, halting: {result.detail}",
            returncode=result.returncode,
            duration=elapsed,
            extra=extra,
        )
        outcome.halted = result
        break

    return outcome


def _returncode_of(exc: InstallError) -> int:
    if isinstance(exc, CommandError):
        return exc.returncode
    raw = exc.context.get("returncode", "")
    try:
        return int(raw) or 1
    except ValueError:
        return 1
