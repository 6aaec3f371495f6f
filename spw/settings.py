from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Mapping

import httpx

from .errors import ConfigError

log = logging.getLogger(__name__)

DEFAULT_WATCHED_REASONS = frozenset(
    {
        "ContainerCreating",
        "ErrImagePull",
        "ImagePullBackOff",
        "CrashLoopBackOff",
        "CreateContainerConfigError",
    }
)

REMEDIATION_MODES = ("recreate", "notify")


def _parse_positive_int(name: str, raw: str) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name}={raw!r} is not an integer") from None
    if value <= 0:
        raise ConfigError(f"{name}={raw!r} must be positive")
    return value


def _env_positive_int(env: Mapping[str, str], name: str, default: int, unit: str, warnings: list[str]) -> int:
    raw = env.get(name, "")
    if raw == "":
        return default
    try:
        return _parse_positive_int(name, raw)
    except ConfigError as e:
        warnings.append(f"Invalid {name}, fallback to {default}{unit} ({e})")
        return default


def _env_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_str(env: Mapping[str, str], name: str, default: str) -> str:
    raw = env.get(name, "")
    return raw if raw != "" else default


def _env_reasons(env: Mapping[str, str]) -> frozenset[str]:
    raw = env.get("WATCHED_REASONS", "")
    reasons = frozenset(r.strip() for r in raw.split(",") if r.strip())
    if not reasons:
        return DEFAULT_WATCHED_REASONS
    return reasons


def _env_notify_url(env: Mapping[str, str], warnings: list[str]) -> str | None:
    raw = (env.get("NOTIFY_URL") or "").strip()
    if not raw:
        return None
    try:
        url = httpx.URL(raw)
    except httpx.InvalidURL as e:
        warnings.append(f"Invalid NOTIFY_URL={raw!r}, ignored ({e})")
        return None
    if url.scheme not in ("http", "https") or not url.host:
        warnings.append(f"Invalid NOTIFY_URL={raw!r}, ignored (need an absolute http(s) URL)")
        return None
    return raw


def _env_remediation(env: Mapping[str, str], notify_url: str | None, warnings: list[str]) -> str:
    mode = env.get("REMEDIATION", "").strip().lower() or "recreate"
    if mode not in REMEDIATION_MODES:
        warnings.append(f"Invalid REMEDIATION={mode!r}, fallback to 'recreate'")
        return "recreate"
    if mode == "notify" and not notify_url:
        warnings.append("REMEDIATION=notify requires a valid NOTIFY_URL, fallback to 'recreate'")
        return "recreate"
    return mode


@dataclass(frozen=True)
class Settings:
    # Detection
    namespace: str = "default"
    label_selector: str = ""
    pending_timeout: timedelta = timedelta(minutes=5)
    check_interval: timedelta = timedelta(seconds=30)
    list_timeout: timedelta = timedelta(seconds=20)
    watched_reasons: frozenset[str] = field(default=DEFAULT_WATCHED_REASONS)

    # Remediation
    remediation: str = "recreate"  # recreate|notify
    notify_url: str | None = None
    notify_token: str | None = None

    # Output
    log_file: str = "watchdog.log"
    log_level: str = "INFO"
    db_path: str = "watchdog.db"

    # Status API
    enable_api: bool = True
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Config fallbacks found while loading, logged once logging is set up
    warnings: tuple[str, ...] = ()

    def log_warnings(self) -> None:
        for w in self.warnings:
            log.warning("%s", w)

    def describe(self) -> dict[str, object]:
        """Plain dict of the effective settings (no secrets)."""
        return {
            "namespace": self.namespace,
            "label_selector": self.label_selector,
            "pending_timeout_s": int(self.pending_timeout.total_seconds()),
            "check_interval_s": int(self.check_interval.total_seconds()),
            "list_timeout_s": int(self.list_timeout.total_seconds()),
            "watched_reasons": sorted(self.watched_reasons),
            "remediation": self.remediation,
            "notify_url": self.notify_url,
        }


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from environment variables.

    Bad values never abort startup: the default is used and a warning is
    kept in ``Settings.warnings``. Call ``log_warnings()`` after logging is
    configured so the warnings reach the log file too.
    """
    env = os.environ if environ is None else environ
    warnings: list[str] = []
    notify_url = _env_notify_url(env, warnings)
    return Settings(
        namespace=_env_str(env, "NAMESPACE", "default"),
        label_selector=env.get("LABEL_SELECTOR", ""),
        pending_timeout=timedelta(minutes=_env_positive_int(env, "PENDING_TIMEOUT", 5, "m", warnings)),
        check_interval=timedelta(seconds=_env_positive_int(env, "CHECK_INTERVAL", 30, "s", warnings)),
        list_timeout=timedelta(seconds=_env_positive_int(env, "LIST_TIMEOUT", 20, "s", warnings)),
        watched_reasons=_env_reasons(env),
        remediation=_env_remediation(env, notify_url, warnings),
        notify_url=notify_url,
        notify_token=env.get("NOTIFY_TOKEN") or None,
        log_file=_env_str(env, "LOG_FILE", "watchdog.log"),
        log_level=_env_str(env, "LOG_LEVEL", "INFO").upper(),
        db_path=_env_str(env, "SPW_DB_PATH", "watchdog.db"),
        enable_api=_env_bool(env, "SPW_ENABLE_API", True),
        api_host=_env_str(env, "SPW_API_HOST", "0.0.0.0"),
        api_port=_env_positive_int(env, "SPW_API_PORT", 8080, "", warnings),
        warnings=tuple(warnings),
    )
