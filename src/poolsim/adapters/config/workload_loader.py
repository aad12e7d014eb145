"""YAML workload loader.

Loads workload YAML files, validates via Pydantic, and returns
frozen domain dataclasses.
"""

from __future__ import annotations

from pathlib import Path

import yaml

from poolsim.adapters.config.workload_models import WorkloadSpecModel
from poolsim.domain.workload import WorkloadSpec


def parse_workload(text: str) -> WorkloadSpec:
    """Validate workload YAML text.

    Raises:
        yaml.YAMLError: If the text is not valid YAML.
        pydantic.ValidationError: If the content fails schema validation.
    """
    raw = yaml.safe_load(text)
    model = WorkloadSpecModel.model_validate(raw)
    return model.to_domain()


def load_workload(path: Path) -> WorkloadSpec:
    """Load and validate a YAML workload file.

    Args:
        path: Path to the YAML file.

    Returns:
        Validated WorkloadSpec domain object.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        OSError: If the path cannot be read (for example a directory).
        UnicodeDecodeError: If the file is not valid UTF-8.
        yaml.YAMLError: If the file contains invalid YAML.
        pydantic.ValidationError: If the content fails schema validation.
    """
    return parse_workload(path.read_text(encoding="utf-8"))


def discover_workloads(directory: Path) -> dict[str, Path]:
    """Find all *.yaml workload files in a directory.

    Returns:
        Dict mapping workload ID (from filename stem) to file path.
    """
    workloads: dict[str, Path] = {}
    if not directory.is_dir():
        return workloads
    for path in sorted(directory.glob("*.yaml")):
        workloads[path.stem] = path
    return workloads
