"""
Planner settings — tunables for one resolution.

Loaded from ``planner.yml`` by ``src.core.config.loader``; every field
has a working default so the planner can run without a file.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.core.services.planner.domain.objective import DEFAULT_OBJECTIVE, Criterion, normalize_objective


class PlannerSettings(BaseModel):
    """Objective order, search budget and default environment."""

    model_config = ConfigDict(frozen=True)

    objective: tuple[Criterion, ...] = DEFAULT_OBJECTIVE
    max_decisions: int | None = Field(default=100_000, ge=1)
    environment: dict[str, str] = Field(default_factory=dict)

    @field_validator("objective", mode="before")
    @classmethod
    def _complete_objective(cls, value):
        if isinstance(value, str):
            value = [part for part in value.split(",") if part.strip()]
        return normalize_objective(value)
