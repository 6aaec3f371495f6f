import json

import httpx
import pytest

from conftest import FakeCoreApi, api_error, make_pod
from spw.deadline import Deadline
from spw.errors import RemediationCancelled, RemediationError
from spw.models import PodRef
from spw.remediation import NotifyWebhook, RecreatePod, build_remediator
from spw.settings import load_settings

REF = PodRef("default", "p1")


class _Clock:
    def __init__(self, t=100.0):
        self.t = t

    def __call__(self):
        return self.t


def test_recreate_deletes_with_zero_grace_and_foreground():
    api = FakeCoreApi([make_pod("p1")])
    RecreatePod(api).remediate(REF, "ImagePullBackOff", Deadline(20))

    assert len(api.delete_calls) == 1
    ns, name, kwargs = api.delete_calls[0]
    assert (ns, name) == ("default", "p1")
    assert kwargs["grace_period_seconds"] == 0
    assert kwargs["propagation_policy"] == "Foreground"
    assert kwargs["body"].grace_period_seconds == 0
    assert kwargs["body"].propagation_policy == "Foreground"
    assert 0 < kwargs["_request_timeout"] <= 20
    assert api.pods == []


@pytest.mark.parametrize("status", [404, 403, 500])
def test_recreate_surfaces_api_errors(status):
    api = FakeCoreApi()
    api.delete_error = api_error(status)
    with pytest.raises(RemediationError):
        RecreatePod(api).remediate(REF, "ImagePullBackOff", Deadline(20))
    assert len(api.delete_calls) == 1


def test_recreate_with_expired_deadline_is_cancelled():
    clock = _Clock()
    deadline = Deadline(5, clock=clock)
    clock.t += 6
    api = FakeCoreApi()
    with pytest.raises(RemediationCancelled):
        RecreatePod(api).remediate(REF, "ImagePullBackOff", deadline)
    assert api.delete_calls == []


def test_notify_posts_pod_and_reason():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    hook = NotifyWebhook("http://hooks.local/stuck", token="t0k", transport=httpx.MockTransport(handler))
    hook.remediate(REF, "CrashLoopBackOff", Deadline(20))

    assert len(seen) == 1
    assert seen[0].method == "POST"
    assert seen[0].headers["Authorization"] == "Bearer t0k"
    assert json.loads(seen[0].content) == {"namespace": "default", "pod": "p1", "reason": "CrashLoopBackOff"}


def test_notify_error_status_is_remediation_error():
    hook = NotifyWebhook("http://hooks.local/stuck", transport=httpx.MockTransport(lambda r: httpx.Response(502)))
    with pytest.raises(RemediationError) as exc:
        hook.remediate(REF, "CrashLoopBackOff", Deadline(20))
    assert not isinstance(exc.value, RemediationCancelled)


def test_notify_timeout_is_cancellation():
    def handler(request):
        raise httpx.ReadTimeout("too slow", request=request)

    hook = NotifyWebhook("http://hooks.local/stuck", transport=httpx.MockTransport(handler))
    with pytest.raises(RemediationCancelled):
        hook.remediate(REF, "CrashLoopBackOff", Deadline(20))


def test_notify_with_expired_deadline_never_calls_out():
    calls = []
    clock = _Clock()
    deadline = Deadline(1, clock=clock)
    clock.t += 2
    hook = NotifyWebhook("http://hooks.local/stuck", transport=httpx.MockTransport(lambda r: calls.append(r)))
    with pytest.raises(RemediationCancelled):
        hook.notify("default", "p1", "CrashLoopBackOff", deadline)
    assert calls == []


def test_build_remediator_picks_strategy():
    api = FakeCoreApi()
    assert isinstance(build_remediator(load_settings({}), api), RecreatePod)
    notify = build_remediator(load_settings({"REMEDIATION": "notify", "NOTIFY_URL": "http://hooks.local/x"}), api)
    assert isinstance(notify, NotifyWebhook)


def test_notify_malformed_url_is_remediation_error():
    hook = NotifyWebhook("http://[::1")
    with pytest.raises(RemediationError):
        hook.remediate(REF, "CrashLoopBackOff", Deadline(20))
