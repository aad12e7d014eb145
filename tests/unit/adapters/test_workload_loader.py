from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from poolsim.adapters.config.workload_loader import (
    discover_workloads,
    load_workload,
    parse_workload,
)
from poolsim.domain.workload import UNSET, WorkloadSpec, WorkloadStep

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

MINIMAL_YAML = {
    "id": "tiny",
    "title": "Tiny workload",
    "capacity": 16,
    "steps": [
        {"op": "alloc", "size": 8, "label": "a", "expect": 0},
        {"op": "free", "target": "a", "expect": True},
    ],
}


def _write_yaml(path: Path, data: object) -> Path:
    path.write_text(yaml.dump(data, default_flow_style=False))
    return path


def _with_steps(*steps: dict) -> dict:
    return {**MINIMAL_YAML, "steps": list(steps)}


# ---------------------------------------------------------------------------
# load_workload: bundled YAML files
# ---------------------------------------------------------------------------


class TestLoadWorkloadRealFiles:
    def test_first_fit_demo(self, workloads_dir: Path):
        spec = load_workload(workloads_dir / "first_fit_demo.yaml")

        assert isinstance(spec, WorkloadSpec)
        assert spec.id == "first-fit-demo"
        assert spec.capacity == 100
        assert spec.steps[0] == WorkloadStep(op="alloc", size=30, label="a", expected=0)

    def test_resize_move(self, workloads_dir: Path):
        spec = load_workload(workloads_dir / "resize_move.yaml")

        assert spec.id == "resize-move"
        assert any(step.op == "write" for step in spec.steps)


# ---------------------------------------------------------------------------
# load_workload: synthetic files
# ---------------------------------------------------------------------------


class TestLoadWorkloadSynthetic:
    def test_minimal(self, tmp_path: Path):
        spec = load_workload(_write_yaml(tmp_path / "tiny.yaml", MINIMAL_YAML))

        assert spec.title == "Tiny workload"
        assert spec.description == ""
        assert len(spec.steps) == 2
        assert spec.steps[1].target == "a"
        assert spec.steps[1].expected is True

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_workload(tmp_path / "nope.yaml")

    def test_non_utf8_file(self, tmp_path: Path):
        path = tmp_path / "binary.yaml"
        path.write_bytes(b"id: x\xff\xfe\n")

        with pytest.raises(UnicodeDecodeError):
            load_workload(path)

    def test_invalid_yaml(self):
        with pytest.raises(yaml.YAMLError):
            parse_workload("id: [unclosed")

    def test_steps_are_tuples(self, tmp_path: Path):
        spec = load_workload(_write_yaml(tmp_path / "tiny.yaml", MINIMAL_YAML))

        assert isinstance(spec.steps, tuple)


# ---------------------------------------------------------------------------
# Validation rules
# ---------------------------------------------------------------------------


class TestStepValidation:
    def test_expect_absent_is_unset(self):
        spec = parse_workload(yaml.dump(_with_steps({"op": "alloc", "size": 4})))

        assert spec.steps[0].expected is UNSET
        assert spec.steps[0].has_expectation is False

    def test_expect_null_means_failure(self):
        spec = parse_workload(yaml.dump(_with_steps({"op": "alloc", "size": 99, "expect": None})))

        assert spec.steps[0].expected is None
        assert spec.steps[0].has_expectation is True

    def test_integer_target(self):
        spec = parse_workload(yaml.dump(_with_steps({"op": "free", "target": 0})))

        assert spec.steps[0].target == 0

    @pytest.mark.parametrize(
        "step",
        [
            {"op": "alloc"},
            {"op": "free"},
            {"op": "realloc", "target": 0},
            {"op": "realloc", "size": 4},
            {"op": "write", "target": 0},
        ],
    )
    def test_missing_required_field(self, step: dict):
        with pytest.raises(ValidationError, match="requires"):
            parse_workload(yaml.dump(_with_steps(step)))

    def test_unknown_op(self):
        with pytest.raises(ValidationError):
            parse_workload(yaml.dump(_with_steps({"op": "compact"})))

    def test_zero_size(self):
        with pytest.raises(ValidationError):
            parse_workload(yaml.dump(_with_steps({"op": "alloc", "size": 0})))

    def test_unknown_field(self):
        with pytest.raises(ValidationError):
            parse_workload(yaml.dump(_with_steps({"op": "alloc", "size": 4, "align": 8})))

    def test_label_only_on_alloc(self):
        with pytest.raises(ValidationError, match="only allowed"):
            parse_workload(yaml.dump(_with_steps({"op": "free", "target": 0, "label": "x"})))

    def test_free_expectation_must_be_bool(self):
        with pytest.raises(ValidationError, match="true or false"):
            parse_workload(yaml.dump(_with_steps({"op": "free", "target": 0, "expect": 0})))

    def test_alloc_expectation_must_not_be_bool(self):
        with pytest.raises(ValidationError, match="address or null"):
            parse_workload(yaml.dump(_with_steps({"op": "alloc", "size": 4, "expect": True})))

    def test_report_takes_no_expectation(self):
        with pytest.raises(ValidationError, match="do not take"):
            parse_workload(yaml.dump(_with_steps({"op": "report", "expect": None})))

    def test_report_kind(self):
        with pytest.raises(ValidationError):
            parse_workload(yaml.dump(_with_steps({"op": "report", "kind": "everything"})))


class TestWorkloadValidation:
    def test_label_must_be_bound_before_use(self):
        data = _with_steps(
            {"op": "free", "target": "a"},
            {"op": "alloc", "size": 4, "label": "a"},
        )

        with pytest.raises(ValidationError, match="before it is bound"):
            parse_workload(yaml.dump(data))

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValidationError):
            parse_workload(yaml.dump({**MINIMAL_YAML, "capacity": 0}))

    def test_steps_required(self):
        with pytest.raises(ValidationError):
            parse_workload(yaml.dump({**MINIMAL_YAML, "steps": []}))

    def test_bad_id(self):
        with pytest.raises(ValidationError):
            parse_workload(yaml.dump({**MINIMAL_YAML, "id": "Has Spaces"}))


# ---------------------------------------------------------------------------
# discover_workloads
# ---------------------------------------------------------------------------


class TestDiscoverWorkloads:
    def test_bundled_directory(self, workloads_dir: Path):
        found = discover_workloads(workloads_dir)

        assert "first_fit_demo" in found
        assert "resize_move" in found

    def test_sorted_and_yaml_only(self, tmp_path: Path):
        _write_yaml(tmp_path / "b.yaml", MINIMAL_YAML)
        _write_yaml(tmp_path / "a.yaml", MINIMAL_YAML)
        (tmp_path / "notes.txt").write_text("ignored")

        assert list(discover_workloads(tmp_path)) == ["a", "b"]

    def test_missing_directory(self, tmp_path: Path):
        assert discover_workloads(tmp_path / "missing") == {}
