"""Workload runner.

Replays a WorkloadSpec against a fresh MemoryPool, records the outcome
of every step, and checks optional expectations. Mismatched expectations
are collected, not raised, so a whole workload can be inspected at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from poolsim.domain.errors import WorkloadError
from poolsim.domain.services import MemoryPool
from poolsim.domain.workload import (
    OP_ALLOC,
    OP_FREE,
    OP_REALLOC,
    OP_REPORT,
    OP_WRITE,
    REPORT_ACTIVE,
    REPORT_AVAILABLE,
    UNSET,
    WorkloadSpec,
    WorkloadStep,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class StepResult:
    """Outcome of a single workload step.

    Attributes:
        index: Position of the step in the workload.
        op: Operation name.
        outcome: Address (alloc/realloc), bool (free), or None.
        expected: Expected outcome, or UNSET when the step has none.
        output: Report text for report steps, empty otherwise.
    """

    index: int
    op: str
    outcome: object = None
    expected: object = UNSET
    output: str = ""

    @property
    def matched(self) -> bool:
        """True when there is no expectation or the outcome equals it."""
        return self.expected is UNSET or self.outcome == self.expected

    def describe(self) -> str:
        """One-line transcript entry."""
        line = f"[{self.index}] {self.op} -> {self.outcome}"
        if self.expected is not UNSET and not self.matched:
            line += f" (expected {self.expected})"
        return line


@dataclass
class WorkloadResult:
    """All step results plus the final reports of a workload run."""

    workload_id: str
    steps: list[StepResult] = field(default_factory=list)
    final_active: str = ""
    final_available: str = ""

    @property
    def mismatches(self) -> list[StepResult]:
        return [step for step in self.steps if not step.matched]

    @property
    def ok(self) -> bool:
        return not self.mismatches


class WorkloadRunner:
    """Executes a workload against its own MemoryPool.

    Labels bound by alloc steps are resolved to addresses when later steps
    target them. Bindings follow the allocation, not the step that named
    it: a free unbinds every label bound to the freed address, a moving
    realloc rebinds all of them, and a failed alloc unbinds its label. An
    unbound label behaves like a null handle: free returns False and
    realloc returns None.

    Example:
        >>> spec = load_workload(Path("workloads/first_fit_demo.yaml"))
        >>> result = WorkloadRunner(spec).run()
        >>> result.ok
        True
    """

    def __init__(self, workload: WorkloadSpec) -> None:
        self.workload = workload
        self.pool = MemoryPool(workload.capacity)
        self._labels: dict[str, int] = {}

    def run(self) -> WorkloadResult:
        """Execute every step in order.

        Returns:
            WorkloadResult with per-step outcomes and final reports.

        Raises:
            WorkloadError: If a write targets a label that is not bound.
            InvalidAddressError: If a write targets an address that is not
                a live allocation, or overflows it.
        """
        log = logger.bind(workload=self.workload.id, capacity=self.workload.capacity)
        log.info("workload_started", steps=len(self.workload.steps))

        result = WorkloadResult(workload_id=self.workload.id)
        for index, step in enumerate(self.workload.steps):
            step_result = self._execute(index, step)
            result.steps.append(step_result)
            log.debug(
                "workload_step",
                index=index,
                op=step.op,
                outcome=step_result.outcome,
                matched=step_result.matched,
            )
            if not step_result.matched:
                log.warning(
                    "workload_expectation_mismatch",
                    index=index,
                    op=step.op,
                    outcome=step_result.outcome,
                    expected=step_result.expected,
                )

        result.final_active = self.pool.report_active()
        result.final_available = self.pool.report_available()
        log.info(
            "workload_finished",
            mismatches=len(result.mismatches),
            allocations=self.pool.allocation_count(),
        )
        return result

    def _execute(self, index: int, step: WorkloadStep) -> StepResult:
        if step.op == OP_ALLOC:
            address = self.pool.allocate(step.size)
            if step.label is not None:
                if address is None:
                    self._labels.pop(step.label, None)
                else:
                    self._labels[step.label] = address
            return StepResult(index, step.op, address, step.expected)

        if step.op == OP_FREE:
            address = self._resolve(step.target)
            freed = self.pool.free(address)
            if freed:
                self._rebind(address, None)
            return StepResult(index, step.op, freed, step.expected)

        if step.op == OP_REALLOC:
            address = self._resolve(step.target)
            new_address = self.pool.resize(address, step.size)
            if new_address is not None and new_address != address:
                self._rebind(address, new_address)
            return StepResult(index, step.op, new_address, step.expected)

        if step.op == OP_WRITE:
            address = self._resolve(step.target)
            if address is None:
                raise WorkloadError(f"write at step {index} targets unbound label '{step.target}'")
            payload = step.data.encode("utf-8")
            self.pool.write(address, payload)
            return StepResult(index, step.op, len(payload))

        if step.op == OP_REPORT:
            output = ""
            if step.kind != REPORT_AVAILABLE:
                output += self.pool.report_active()
            if step.kind != REPORT_ACTIVE:
                output += self.pool.report_available()
            return StepResult(index, step.op, None, output=output)

        raise WorkloadError(f"unknown op '{step.op}' at step {index}")

    def _resolve(self, target: str | int | None) -> int | None:
        # A label whose alloc failed (or that was freed) resolves to the null handle
        if isinstance(target, str):
            return self._labels.get(target)
        return target

    def _rebind(self, old: int, new: int | None) -> None:
        """Point every label bound to ``old`` at ``new``, or unbind it when new is None."""
        for label in [name for name, bound in self._labels.items() if bound == old]:
            if new is None:
                del self._labels[label]
            else:
                self._labels[label] = new
