from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import httpx

from . import k8s
from .deadline import Deadline
from .errors import RemediationCancelled, RemediationError
from .models import PodRef
from .settings import Settings

log = logging.getLogger(__name__)


class Remediator(ABC):
    """One corrective action for a stuck pod."""

    name: str = "remediation"

    @abstractmethod
    def remediate(self, ref: PodRef, reason: str, deadline: Deadline) -> None:
        """Perform the action or raise RemediationError. Never retries."""


class RecreatePod(Remediator):
    name = "recreate"

    def __init__(self, api):
        self.api = api

    def remediate(self, ref: PodRef, reason: str, deadline: Deadline) -> None:
        k8s.delete_pod(self.api, ref.namespace, ref.name, deadline)


class NotifyWebhook(Remediator):
    """POST ``{"namespace", "pod", "reason"}`` to an external endpoint."""

    name = "notify"

    def __init__(self, url: str, token: str | None = None, transport: httpx.BaseTransport | None = None):
        self.url = url
        self.token = token
        self._transport = transport

    def notify(self, namespace: str, name: str, reason: str, deadline: Deadline) -> None:
        remaining = deadline.remaining()
        if remaining <= 0:
            raise RemediationCancelled(f"deadline exceeded before notifying about {namespace}/{name}")

        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        payload = {"namespace": namespace, "pod": name, "reason": reason}
        try:
            with httpx.Client(timeout=remaining, follow_redirects=False, transport=self._transport) as c:
                resp = c.post(self.url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            raise RemediationCancelled(f"notify timed out for {namespace}/{name}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise RemediationError(f"notify failed for {namespace}/{name}: {type(e).__name__}: {e}") from e
        if resp.status_code >= 300:
            raise RemediationError(f"notify endpoint answered HTTP {resp.status_code}")

    def remediate(self, ref: PodRef, reason: str, deadline: Deadline) -> None:
        self.notify(ref.namespace, ref.name, reason, deadline)


def build_remediator(settings: Settings, api=None) -> Remediator:
    if settings.remediation == "notify" and settings.notify_url:
        log.info("Remediation: notify %s", settings.notify_url)
        return NotifyWebhook(settings.notify_url, token=settings.notify_token)
    if api is None:
        raise ValueError("recreate remediation needs a Kubernetes API client")
    log.info("Remediation: recreate (delete grace=0, propagation=Foreground)")
    return RecreatePod(api)
