from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ProblemOut(BaseModel):
    namespace: str
    pod: str
    first_seen: str = Field(..., description="UTC time the pod was first seen stuck")
    elapsed_s: int = Field(..., ge=0)
    remaining_s: int = Field(..., ge=0, description="Seconds left before remediation")


class CycleOut(BaseModel):
    cycles: int
    list_failures: int
    remediations_ok: int
    remediations_failed: int
    last_cycle_at: str | None = None
    last_cycle_ok: bool | None = None
    last_pod_count: int = 0


class StatusOut(BaseModel):
    settings: dict[str, Any]
    cycle: CycleOut
    tracked: int


class EventOut(BaseModel):
    id: int
    ts: str
    level: str
    namespace: str | None = None
    pod: str | None = None
    reason: str | None = None
    message: str
