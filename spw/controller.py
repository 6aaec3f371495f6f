from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from threading import Event, Lock, Thread

from . import db, k8s
from .deadline import Deadline
from .errors import ListError, RemediationError
from .inspector import classify
from .models import PodSnapshot, RemediationEvent, utc_now
from .remediation import Remediator
from .settings import Settings
from .tracker import Action, ProblemTracker

log = logging.getLogger(__name__)


@dataclass
class CycleStats:
    cycles: int = 0
    list_failures: int = 0
    remediations_ok: int = 0
    remediations_failed: int = 0
    last_cycle_at: datetime | None = None
    last_cycle_ok: bool | None = None
    last_pod_count: int = 0


class Controller:
    """Polls pods on a fixed interval and remediates the ones stuck too long.

    ``api`` is a CoreV1Api (or anything with ``list_namespaced_pod``). The
    tracker is owned by this controller; pass one in to inspect it from the
    outside.
    """

    def __init__(
        self,
        settings: Settings,
        api,
        remediator: Remediator,
        tracker: ProblemTracker | None = None,
    ):
        self.settings = settings
        self.api = api
        self.remediator = remediator
        self.tracker = tracker if tracker is not None else ProblemTracker()
        self.stats = CycleStats()
        self._stop = Event()
        self._cycle_lock = Lock()
        self._thr: Thread | None = None

    def start(self) -> None:
        if self._thr and self._thr.is_alive():
            return
        self._stop.clear()
        self._thr = Thread(target=self.run_forever, name="spw-controller", daemon=True)
        self._thr.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> None:
        if self._thr is not None:
            self._thr.join(timeout)

    def run_forever(self) -> None:
        s = self.settings
        db.log_event(
            "INFO",
            f"Watchdog: namespace={s.namespace}, labelSelector={s.label_selector!r}, "
            f"timeout={s.pending_timeout}, interval={s.check_interval}, remediation={self.remediator.name}",
            namespace=s.namespace,
        )
        interval = s.check_interval.total_seconds()
        while not self._stop.is_set():
            started = time.monotonic()
            try:
                self.run_cycle()
            except Exception:
                self.stats.last_cycle_ok = False
                log.exception("cycle failed")
            # An overrun cycle is followed immediately by the next one.
            self._stop.wait(max(0.0, interval - (time.monotonic() - started)))

    def run_cycle(self, now: datetime | None = None) -> None:
        # Cycles never overlap, including ones triggered through the API.
        with self._cycle_lock:
            self._run_cycle(now)

    def _run_cycle(self, now: datetime | None) -> None:
        s = self.settings
        deadline = Deadline(s.list_timeout.total_seconds())
        self.stats.cycles += 1
        self.stats.last_cycle_at = now or utc_now()
        log.info("cycle %d: checking pods in namespace %s", self.stats.cycles, s.namespace)

        try:
            pods = k8s.list_pods(self.api, s.namespace, s.label_selector, deadline)
        except ListError as e:
            self.stats.list_failures += 1
            self.stats.last_cycle_ok = False
            db.log_event("ERROR", str(e), namespace=s.namespace)
            return

        self.stats.last_pod_count = len(pods)
        now = now or utc_now()
        for pod in pods:
            self._handle_pod(pod, now, deadline)
        # Pods that vanished from a successful listing end their episode.
        dropped = self.tracker.retain({p.ref for p in pods})
        for ref in dropped:
            log.info("Pod %s no longer listed, timer dropped", ref)
        self.stats.last_cycle_ok = True

    def _handle_pod(self, pod: PodSnapshot, now: datetime, deadline: Deadline) -> None:
        s = self.settings
        result = classify(pod, s.pending_timeout, now=now, watched_reasons=s.watched_reasons)
        decision = self.tracker.update(pod.ref, result.stuck, result.reason, now, s.pending_timeout)

        if decision.action is Action.STARTED_TRACKING:
            db.log_event(
                "WARN",
                f"Problem detected: {pod.ref} ({result.reason}), starting timer",
                namespace=pod.ref.namespace,
                pod=pod.ref.name,
                reason=result.reason,
            )
            return
        if decision.action is not Action.READY_TO_REMEDIATE:
            return

        reason = decision.reason or ""
        elapsed = decision.elapsed
        db.log_event(
            "WARN",
            f"Remediating pod {pod.ref} (stuck {elapsed}, reason={reason}, phase={pod.phase.value})",
            namespace=pod.ref.namespace,
            pod=pod.ref.name,
            reason=reason,
        )
        try:
            self.remediator.remediate(pod.ref, reason, deadline)
        except RemediationError as e:
            self.stats.remediations_failed += 1
            event = RemediationEvent(pod.ref, reason, elapsed, self.remediator.name, ok=False, detail=str(e), timestamp=now)
        except Exception as e:
            log.exception("remediation of %s raised", pod.ref)
            self.stats.remediations_failed += 1
            event = RemediationEvent(
                pod.ref, reason, elapsed, self.remediator.name, ok=False, detail=f"{type(e).__name__}: {e}", timestamp=now
            )
        else:
            self.stats.remediations_ok += 1
            event = RemediationEvent(pod.ref, reason, elapsed, self.remediator.name, ok=True, timestamp=now)
        db.record_remediation(event)
