from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class Phase(str, Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, raw: str | None) -> Phase:
        try:
            return cls(raw)
        except ValueError:
            return cls.UNKNOWN


class ContainerStateKind(str, Enum):
    WAITING = "waiting"
    RUNNING = "running"
    TERMINATED = "terminated"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class PodRef:
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class ContainerSnapshot:
    name: str
    state: ContainerStateKind
    ready: bool = False
    waiting_reason: str | None = None
    started_at: datetime | None = None


@dataclass(frozen=True)
class PodSnapshot:
    """Read-only view of one pod at poll time."""

    ref: PodRef
    phase: Phase
    created_at: datetime
    containers: tuple[ContainerSnapshot, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class RemediationEvent:
    ref: PodRef
    reason: str
    elapsed: timedelta
    action: str  # recreate|notify
    ok: bool
    detail: str = ""
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "namespace": self.ref.namespace,
            "pod": self.ref.name,
            "reason": self.reason,
            "elapsed_s": int(self.elapsed.total_seconds()),
            "action": self.action,
            "ok": self.ok,
            "detail": self.detail,
            "timestamp": iso(self.timestamp),
        }


def _container_from_status(cs: Any) -> ContainerSnapshot:
    state = cs.state
    ready = bool(cs.ready)
    if state is not None and state.waiting is not None:
        return ContainerSnapshot(
            name=cs.name,
            state=ContainerStateKind.WAITING,
            ready=ready,
            waiting_reason=state.waiting.reason,
        )
    if state is not None and state.running is not None:
        return ContainerSnapshot(
            name=cs.name,
            state=ContainerStateKind.RUNNING,
            ready=ready,
            started_at=state.running.started_at,
        )
    if state is not None and state.terminated is not None:
        return ContainerSnapshot(name=cs.name, state=ContainerStateKind.TERMINATED, ready=ready)
    return ContainerSnapshot(name=cs.name, state=ContainerStateKind.UNKNOWN, ready=ready)


def snapshot_from_pod(pod: Any) -> PodSnapshot:
    """Convert a ``kubernetes.client.V1Pod`` into a PodSnapshot.

    Only regular containers are looked at (init containers are not).
    """
    meta = pod.metadata
    status = pod.status
    created_at = meta.creation_timestamp or utc_now()
    statuses = (status.container_statuses if status is not None else None) or []
    return PodSnapshot(
        ref=PodRef(namespace=meta.namespace, name=meta.name),
        phase=Phase.parse(status.phase if status is not None else None),
        created_at=created_at,
        containers=tuple(_container_from_status(cs) for cs in statuses),
    )
