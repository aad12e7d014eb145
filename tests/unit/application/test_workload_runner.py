"""Unit tests for WorkloadRunner."""

from pathlib import Path

import pytest

from poolsim.adapters.config.workload_loader import load_workload
from poolsim.application.workload_runner import StepResult, WorkloadRunner
from poolsim.domain.errors import InvalidAddressError, WorkloadError
from poolsim.domain.workload import UNSET, WorkloadSpec, WorkloadStep

pytestmark = pytest.mark.unit


def _workload(*steps: WorkloadStep, capacity: int = 100) -> WorkloadSpec:
    return WorkloadSpec(id="test", title="Test", capacity=capacity, steps=tuple(steps))


class TestBundledWorkloads:
    def test_first_fit_demo_matches_expectations(self, workloads_dir: Path) -> None:
        result = WorkloadRunner(load_workload(workloads_dir / "first_fit_demo.yaml")).run()

        assert result.ok, [step.describe() for step in result.mismatches]
        assert result.final_active == "active: 0 [20], 30 [50]\n"
        assert result.final_available == "available: 20 [10], 80 [20]\n"

    def test_first_fit_demo_reports(self, workloads_dir: Path) -> None:
        result = WorkloadRunner(load_workload(workloads_dir / "first_fit_demo.yaml")).run()
        reports = [step.output for step in result.steps if step.op == "report"]

        assert reports == [
            "active: 0 [30], 30 [40]\navailable: 70 [30]\n",
            "active: 30 [40]\navailable: 0 [30], 70 [30]\n",
            "active: 0 [20], 30 [40]\navailable: 20 [10], 70 [30]\n",
            "active: 0 [20], 30 [50]\navailable: 20 [10], 80 [20]\n",
        ]

    def test_resize_move_carries_label_and_bytes(self, workloads_dir: Path) -> None:
        runner = WorkloadRunner(load_workload(workloads_dir / "resize_move.yaml"))
        result = runner.run()

        assert result.ok
        assert result.final_active == "active: none\n"
        assert result.final_available == "available: 0 [64]\n"
        active_report = next(step.output for step in result.steps if step.op == "report")
        assert active_report == "active: 0 [8], 16 [8], 24 [16]\n"


class TestRunnerSemantics:
    def test_mismatch_is_collected_not_raised(self) -> None:
        result = WorkloadRunner(
            _workload(
                WorkloadStep(op="alloc", size=10, expected=5),
                WorkloadStep(op="alloc", size=10, expected=10),
            )
        ).run()

        assert not result.ok
        assert [step.index for step in result.mismatches] == [0]
        assert result.mismatches[0].describe() == "[0] alloc -> 0 (expected 5)"

    def test_failed_alloc_leaves_label_unbound(self) -> None:
        result = WorkloadRunner(
            _workload(
                WorkloadStep(op="alloc", size=500, label="big", expected=None),
                WorkloadStep(op="free", target="big", expected=False),
                WorkloadStep(op="realloc", target="big", size=5, expected=None),
            )
        ).run()

        assert result.ok

    def test_free_unbinds_label(self) -> None:
        result = WorkloadRunner(
            _workload(
                WorkloadStep(op="alloc", size=10, label="a"),
                WorkloadStep(op="free", target="a", expected=True),
                WorkloadStep(op="free", target="a", expected=False),
            )
        ).run()

        assert result.ok

    def test_realloc_rebinds_label(self) -> None:
        runner = WorkloadRunner(
            _workload(
                WorkloadStep(op="alloc", size=10, label="a"),
                WorkloadStep(op="alloc", size=10),
                WorkloadStep(op="realloc", target="a", size=20, expected=20),
                WorkloadStep(op="free", target="a", expected=True),
            )
        )

        assert runner.run().ok
        assert runner.pool.report_active() == "active: 10 [10]\n"

    def test_failed_alloc_unbinds_reused_label(self) -> None:
        runner = WorkloadRunner(
            _workload(
                WorkloadStep(op="alloc", size=10, label="a", expected=0),
                WorkloadStep(op="alloc", size=1000, label="a", expected=None),
                WorkloadStep(op="free", target="a", expected=False),
            )
        )

        assert runner.run().ok
        assert runner.pool.report_active() == "active: 0 [10]\n"

    def test_free_by_address_unbinds_label(self) -> None:
        runner = WorkloadRunner(
            _workload(
                WorkloadStep(op="alloc", size=10, label="a", expected=0),
                WorkloadStep(op="free", target=0, expected=True),
                WorkloadStep(op="alloc", size=10, label="b", expected=0),
                WorkloadStep(op="free", target="a", expected=False),
                WorkloadStep(op="realloc", target="a", size=20, expected=None),
            )
        )

        assert runner.run().ok
        assert runner.pool.report_active() == "active: 0 [10]\n"

    def test_realloc_by_address_rebinds_label(self) -> None:
        runner = WorkloadRunner(
            _workload(
                WorkloadStep(op="alloc", size=10, label="a", expected=0),
                WorkloadStep(op="alloc", size=10, label="b", expected=10),
                WorkloadStep(op="realloc", target=0, size=30, expected=20),
                WorkloadStep(op="alloc", size=5, label="c", expected=0),
                WorkloadStep(op="free", target="a", expected=True),
            )
        )

        assert runner.run().ok
        assert runner.pool.report_active() == "active: 0 [5], 10 [10]\n"

    def test_raw_address_targets(self) -> None:
        result = WorkloadRunner(
            _workload(
                WorkloadStep(op="alloc", size=10),
                WorkloadStep(op="free", target=5, expected=False),
                WorkloadStep(op="free", target=0, expected=True),
            )
        ).run()

        assert result.ok

    def test_report_kinds(self) -> None:
        result = WorkloadRunner(
            _workload(
                WorkloadStep(op="report", kind="active"),
                WorkloadStep(op="report", kind="available"),
                WorkloadStep(op="report", kind="both"),
            )
        ).run()

        assert [step.output for step in result.steps] == [
            "active: none\n",
            "available: 0 [100]\n",
            "active: none\navailable: 0 [100]\n",
        ]

    def test_write_to_unbound_label_aborts(self) -> None:
        runner = WorkloadRunner(
            _workload(
                WorkloadStep(op="alloc", size=500, label="a"),
                WorkloadStep(op="write", target="a", data="x"),
            )
        )

        with pytest.raises(WorkloadError, match="unbound label 'a'"):
            runner.run()

    def test_write_overflow_aborts(self) -> None:
        runner = WorkloadRunner(
            _workload(
                WorkloadStep(op="alloc", size=2, label="a"),
                WorkloadStep(op="write", target="a", data="xyz"),
            )
        )

        with pytest.raises(InvalidAddressError):
            runner.run()

    def test_write_reports_byte_count(self) -> None:
        result = WorkloadRunner(
            _workload(
                WorkloadStep(op="alloc", size=8, label="a"),
                WorkloadStep(op="write", target="a", data="héllo"),
            )
        ).run()

        assert result.steps[1].outcome == 6


class TestStepResult:
    def test_matched_without_expectation(self) -> None:
        assert StepResult(index=0, op="alloc", outcome=None).matched

    def test_none_expectation_matches_failure(self) -> None:
        step = StepResult(index=0, op="alloc", outcome=None, expected=None)

        assert step.matched
        assert step.expected is not UNSET

    def test_bool_expectation(self) -> None:
        assert not StepResult(index=1, op="free", outcome=False, expected=True).matched
