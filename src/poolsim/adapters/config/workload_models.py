"""Pydantic validation models for workload YAML files.

Validates YAML input and converts to frozen domain dataclasses.
"""

from __future__ import annotations

from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from poolsim.domain.workload import (
    OP_ALLOC,
    OP_FREE,
    OP_REALLOC,
    OP_WRITE,
    UNSET,
    WorkloadSpec,
    WorkloadStep,
)

# Fields each op must carry
_REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    OP_ALLOC: ("size",),
    OP_FREE: ("target",),
    OP_REALLOC: ("target", "size"),
    OP_WRITE: ("target", "data"),
}


class WorkloadStepModel(BaseModel):
    """Validated workload step."""

    model_config = ConfigDict(extra="forbid")

    op: str = Field(..., pattern=r"^(alloc|free|realloc|write|report)$")
    size: int | None = Field(default=None, ge=1)
    label: str | None = Field(default=None, pattern=r"^[A-Za-z_][A-Za-z0-9_-]{0,31}$")
    target: int | str | None = None
    data: str | None = Field(default=None, max_length=65536)
    kind: str = Field(default="both", pattern=r"^(active|available|both)$")
    expect: bool | int | None = None

    @model_validator(mode="after")
    def validate_op_fields(self) -> Self:
        """Each op carries exactly the fields it needs."""
        for name in _REQUIRED_FIELDS.get(self.op, ()):
            if getattr(self, name) is None:
                raise ValueError(f"'{self.op}' step requires '{name}'")

        if self.label is not None and self.op != OP_ALLOC:
            raise ValueError(f"'label' is only allowed on '{OP_ALLOC}' steps, not '{self.op}'")

        if "expect" in self.model_fields_set:
            if self.op == OP_FREE:
                if not isinstance(self.expect, bool):
                    raise ValueError("'free' expectation must be true or false")
            elif self.op in (OP_ALLOC, OP_REALLOC):
                if isinstance(self.expect, bool):
                    raise ValueError(f"'{self.op}' expectation must be an address or null")
            else:
                raise ValueError(f"'{self.op}' steps do not take an expectation")
        return self

    def to_domain(self) -> WorkloadStep:
        """Convert to frozen domain WorkloadStep."""
        return WorkloadStep(
            op=self.op,
            size=self.size,
            label=self.label,
            target=self.target,
            data=self.data,
            kind=self.kind,
            expected=self.expect if "expect" in self.model_fields_set else UNSET,
        )


class WorkloadSpecModel(BaseModel):
    """Validated workload specification. Top-level model for YAML parsing."""

    id: str = Field(..., pattern=r"^[a-z][a-z0-9_-]{0,49}$")
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=500)
    capacity: int = Field(..., ge=1, le=1 << 30)
    steps: list[WorkloadStepModel] = Field(..., min_length=1, max_length=10000)

    @model_validator(mode="after")
    def validate_label_refs(self) -> Self:
        """Every label used as a target must be bound by an earlier step."""
        bound: set[str] = set()
        for index, step in enumerate(self.steps):
            if isinstance(step.target, str) and step.target not in bound:
                msg = (
                    f"Step {index} ({step.op}) targets label '{step.target}' "
                    f"before it is bound. Bound so far: {sorted(bound)}"
                )
                raise ValueError(msg)
            if step.label is not None:
                bound.add(step.label)
        return self

    def to_domain(self) -> WorkloadSpec:
        """Convert validated Pydantic model to frozen domain dataclass."""
        return WorkloadSpec(
            id=self.id,
            title=self.title,
            description=self.description,
            capacity=self.capacity,
            steps=tuple(step.to_domain() for step in self.steps),
        )
