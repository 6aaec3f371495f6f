from __future__ import annotations

import logging
import os

from kubernetes import client, config
from kubernetes.client.rest import ApiException
from kubernetes.config.config_exception import ConfigException
from urllib3.exceptions import HTTPError
from urllib3.exceptions import TimeoutError as Urllib3Timeout

from .deadline import Deadline
from .errors import CredentialError, ListError, RemediationCancelled, RemediationError
from .models import PodSnapshot, snapshot_from_pod

log = logging.getLogger(__name__)


def _is_timeout(e: HTTPError) -> bool:
    return isinstance(e, Urllib3Timeout) or isinstance(getattr(e, "reason", None), Urllib3Timeout)


def default_kubeconfig_path() -> str:
    return os.path.join(os.path.expanduser("~"), ".kube", "config")


def build_core_api(kubeconfig: str | None = None) -> client.CoreV1Api:
    """Create a CoreV1Api client.

    In-cluster service account credentials are tried first, then the local
    kubeconfig (``~/.kube/config``). If neither works a CredentialError is
    raised; the caller treats it as fatal.
    """
    try:
        config.load_incluster_config()
        log.info("Loaded in-cluster config")
    except ConfigException:
        path = kubeconfig or default_kubeconfig_path()
        try:
            config.load_kube_config(config_file=path)
        except (ConfigException, OSError) as e:
            raise CredentialError(f"create kubeconfig error: {e}") from e
        log.info("Loaded kubeconfig %s", path)
    return client.CoreV1Api()


def list_pods(api: client.CoreV1Api, namespace: str, label_selector: str, deadline: Deadline) -> list[PodSnapshot]:
    if deadline.expired():
        raise ListError("deadline exceeded before listing pods")
    kwargs: dict[str, object] = {"_request_timeout": deadline.remaining()}
    if label_selector:
        kwargs["label_selector"] = label_selector
    try:
        pods = api.list_namespaced_pod(namespace, **kwargs)
    except ApiException as e:
        raise ListError(f"list pods error: {e.status} {e.reason}") from e
    except HTTPError as e:
        raise ListError(f"list pods error: {type(e).__name__}: {e}") from e
    return [snapshot_from_pod(p) for p in pods.items or []]


def delete_pod(api: client.CoreV1Api, namespace: str, name: str, deadline: Deadline) -> None:
    """Delete a pod immediately, letting its owner controller recreate it."""
    if deadline.expired():
        raise RemediationCancelled(f"deadline exceeded before deleting {namespace}/{name}")
    body = client.V1DeleteOptions(grace_period_seconds=0, propagation_policy="Foreground")
    try:
        api.delete_namespaced_pod(
            name,
            namespace,
            body=body,
            grace_period_seconds=0,
            propagation_policy="Foreground",
            _request_timeout=deadline.remaining(),
        )
    except ApiException as e:
        if e.status == 404:
            raise RemediationError(f"pod {namespace}/{name} not found") from e
        if e.status == 403:
            raise RemediationError(f"not allowed to delete pod {namespace}/{name}") from e
        raise RemediationError(f"delete pod {namespace}/{name} failed: {e.status} {e.reason}") from e
    except HTTPError as e:
        if _is_timeout(e):
            raise RemediationCancelled(f"delete pod {namespace}/{name} timed out") from e
        raise RemediationError(f"delete pod {namespace}/{name} failed: {type(e).__name__}: {e}") from e
