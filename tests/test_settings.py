import logging
from datetime import timedelta

import pytest

from spw.settings import DEFAULT_WATCHED_REASONS, load_settings


def test_defaults():
    s = load_settings({})
    assert s.namespace == "default"
    assert s.label_selector == ""
    assert s.pending_timeout == timedelta(minutes=5)
    assert s.check_interval == timedelta(seconds=30)
    assert s.list_timeout == timedelta(seconds=20)
    assert s.watched_reasons == DEFAULT_WATCHED_REASONS
    assert s.remediation == "recreate"


def test_values_from_env():
    s = load_settings(
        {
            "NAMESPACE": "apps",
            "LABEL_SELECTOR": "app=web",
            "PENDING_TIMEOUT": "10",
            "CHECK_INTERVAL": "15",
            "WATCHED_REASONS": "ErrImagePull, ImagePullBackOff",
        }
    )
    assert s.namespace == "apps"
    assert s.label_selector == "app=web"
    assert s.pending_timeout == timedelta(minutes=10)
    assert s.check_interval == timedelta(seconds=15)
    assert s.watched_reasons == frozenset({"ErrImagePull", "ImagePullBackOff"})


def test_negative_interval_falls_back_with_warning(caplog):
    s = load_settings({"CHECK_INTERVAL": "-5"})
    assert s.check_interval == timedelta(seconds=30)
    assert any("CHECK_INTERVAL" in w for w in s.warnings)

    with caplog.at_level(logging.WARNING, logger="spw.settings"):
        s.log_warnings()
    assert any("CHECK_INTERVAL" in r.getMessage() for r in caplog.records)


def test_non_numeric_timeout_falls_back_with_warning():
    s = load_settings({"PENDING_TIMEOUT": "abc"})
    assert s.pending_timeout == timedelta(minutes=5)
    assert any("PENDING_TIMEOUT" in w for w in s.warnings)


@pytest.mark.parametrize("raw", ["0", "1.5", " "])
def test_other_bad_timeouts(raw):
    assert load_settings({"PENDING_TIMEOUT": raw}).pending_timeout == timedelta(minutes=5)


def test_notify_requires_url():
    s = load_settings({"REMEDIATION": "notify"})
    assert s.remediation == "recreate"
    assert s.warnings

    s = load_settings({"REMEDIATION": "notify", "NOTIFY_URL": "http://hooks.local/stuck"})
    assert s.remediation == "notify"
    assert s.notify_url == "http://hooks.local/stuck"


@pytest.mark.parametrize("url", ["http://[::1", "hooks.local/stuck", "ftp://hooks.local/stuck"])
def test_bad_notify_url_is_ignored(url):
    s = load_settings({"REMEDIATION": "notify", "NOTIFY_URL": url})
    assert s.notify_url is None
    assert s.remediation == "recreate"
    assert any("NOTIFY_URL" in w for w in s.warnings)


def test_clean_env_has_no_warnings():
    assert load_settings({"PENDING_TIMEOUT": "3", "CHECK_INTERVAL": "10"}).warnings == ()


def test_unknown_remediation_falls_back():
    assert load_settings({"REMEDIATION": "reboot-node"}).remediation == "recreate"


def test_describe_has_no_token():
    s = load_settings({"NOTIFY_TOKEN": "secret"})
    assert "secret" not in repr(s.describe())
