from __future__ import annotations

from dataclasses import dataclass, field

from .config import MODE_LABELS, MODE_STEP_MAP

_DEFAULT_STEPS = 3


@dataclass(frozen=True)
class ModeConfig:
    mode: str
    steps: int
    labels: list[str] = field(default_factory=list)


def mode_from_people_count(count: int) -> str:
    if count <= 1:
        return "solo"
    if count == 2:
        return "date"
    if count <= 5:
        return "group"
    return "party"


def plan_mode(people_count: int, mode_override: str | None = None) -> ModeConfig:
    mode = mode_override or mode_from_people_count(people_count)
    steps = MODE_STEP_MAP.get(mode, _DEFAULT_STEPS)
    labels = MODE_LABELS.get(mode) or [f"Step {i + 1}" for i in range(steps)]
    return ModeConfig(mode=mode, steps=steps, labels=list(labels))
