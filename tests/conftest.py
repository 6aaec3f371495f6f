import os
import sys
from datetime import datetime, timedelta, timezone

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

# Ensure project root is importable (so `import spw` / `import main` work without installing)
_project_root = os.path.dirname(os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def container_status(name="app", waiting=None, running_since=None, terminated=False, ready=False):
    if waiting is not None:
        state = client.V1ContainerState(waiting=client.V1ContainerStateWaiting(reason=waiting))
    elif running_since is not None:
        state = client.V1ContainerState(running=client.V1ContainerStateRunning(started_at=running_since))
    elif terminated:
        state = client.V1ContainerState(terminated=client.V1ContainerStateTerminated(exit_code=0))
    else:
        state = client.V1ContainerState()
    return client.V1ContainerStatus(
        name=name,
        image=f"registry.local/{name}:1",
        image_id="",
        ready=ready,
        restart_count=0,
        state=state,
    )


def make_pod(name, phase="Pending", created=T0, statuses=(), namespace="default"):
    return client.V1Pod(
        metadata=client.V1ObjectMeta(name=name, namespace=namespace, creation_timestamp=created),
        status=client.V1PodStatus(phase=phase, container_statuses=list(statuses) or None),
    )


class FakeCoreApi:
    """Stand-in for CoreV1Api that serves a mutable pod list and records deletes."""

    def __init__(self, pods=()):
        self.pods = list(pods)
        self.list_calls = []
        self.delete_calls = []
        self.list_error = None
        self.delete_error = None

    def list_namespaced_pod(self, namespace, **kwargs):
        self.list_calls.append((namespace, kwargs))
        if self.list_error is not None:
            raise self.list_error
        return client.V1PodList(items=[p for p in self.pods if p.metadata.namespace == namespace])

    def delete_namespaced_pod(self, name, namespace, **kwargs):
        self.delete_calls.append((namespace, name, kwargs))
        if self.delete_error is not None:
            raise self.delete_error
        self.pods = [p for p in self.pods if not (p.metadata.name == name and p.metadata.namespace == namespace)]


@pytest.fixture
def fake_api():
    return FakeCoreApi()


@pytest.fixture(autouse=True)
def audit_db(tmp_path):
    """Every test gets its own audit database."""
    from spw import db

    db.init_db(str(tmp_path / "audit.db"))


def api_error(status, reason="error"):
    return ApiException(status=status, reason=reason)


def minutes(n):
    return timedelta(minutes=n)
