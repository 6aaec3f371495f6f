from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import AbstractSet

from .models import ContainerStateKind, Phase, PodSnapshot, utc_now
from .settings import DEFAULT_WATCHED_REASONS

RUNNING_NOT_READY = "RunningNotReady"

_TERMINAL_PHASES = frozenset({Phase.SUCCEEDED, Phase.FAILED, Phase.UNKNOWN})


@dataclass(frozen=True)
class Classification:
    stuck: bool
    reason: str | None = None


HEALTHY = Classification(stuck=False)


def classify(
    snapshot: PodSnapshot,
    timeout: timedelta,
    now: datetime | None = None,
    watched_reasons: AbstractSet[str] = DEFAULT_WATCHED_REASONS,
) -> Classification:
    """Decide whether a pod looks stuck.

    Containers are scanned in order and the first one that matches wins:
      - waiting with a watched reason, pod older than ``timeout``
      - running but not ready for longer than ``timeout``
    Pods in Succeeded/Failed/Unknown phase are never stuck.
    """
    if snapshot.phase in _TERMINAL_PHASES:
        return HEALTHY
    now = now or utc_now()

    for c in snapshot.containers:
        if c.state is ContainerStateKind.WAITING:
            if c.waiting_reason in watched_reasons and now - snapshot.created_at > timeout:
                return Classification(stuck=True, reason=c.waiting_reason)
        elif c.state is ContainerStateKind.RUNNING and not c.ready:
            if c.started_at is not None and now - c.started_at > timeout:
                return Classification(stuck=True, reason=RUNNING_NOT_READY)
    return HEALTHY
