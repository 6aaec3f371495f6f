from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from threading import Lock
from typing import AbstractSet

from .models import PodRef


class Action(str, Enum):
    NONE = "none"
    STARTED_TRACKING = "started_tracking"
    READY_TO_REMEDIATE = "ready_to_remediate"


@dataclass(frozen=True)
class Decision:
    action: Action
    elapsed: timedelta | None = None
    reason: str | None = None


NO_ACTION = Decision(Action.NONE)
STARTED = Decision(Action.STARTED_TRACKING)


class ProblemTracker:
    """In-memory map of pod -> time it was first seen stuck.

    One stuck episode per pod at a time. A record is removed as soon as the
    pod looks healthy again, or when it is handed over for remediation
    (whatever the remediation outcome is).
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._first_seen: dict[PodRef, datetime] = {}

    def update(
        self,
        ref: PodRef,
        stuck: bool,
        reason: str | None,
        now: datetime,
        timeout: timedelta,
    ) -> Decision:
        with self._lock:
            if not stuck:
                self._first_seen.pop(ref, None)
                return NO_ACTION

            first_seen = self._first_seen.get(ref)
            if first_seen is None:
                self._first_seen[ref] = now
                return STARTED

            elapsed = now - first_seen
            if elapsed >= timeout:
                del self._first_seen[ref]
                return Decision(Action.READY_TO_REMEDIATE, elapsed=elapsed, reason=reason)
            return NO_ACTION

    def retain(self, refs: AbstractSet[PodRef]) -> list[PodRef]:
        """Forget pods that are not in ``refs``; returns the ones dropped."""
        with self._lock:
            dropped = [ref for ref in self._first_seen if ref not in refs]
            for ref in dropped:
                del self._first_seen[ref]
            return dropped

    def first_seen(self, ref: PodRef) -> datetime | None:
        with self._lock:
            return self._first_seen.get(ref)

    def problems(self) -> dict[PodRef, datetime]:
        with self._lock:
            return dict(self._first_seen)

    def __contains__(self, ref: object) -> bool:
        with self._lock:
            return ref in self._first_seen

    def __len__(self) -> int:
        with self._lock:
            return len(self._first_seen)
