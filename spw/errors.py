from __future__ import annotations


class WatchdogError(Exception):
    pass


class ConfigError(WatchdogError):
    """A single environment value could not be used."""


class CredentialError(WatchdogError):
    """No usable Kubernetes credentials (in-cluster or kubeconfig)."""


class ListError(WatchdogError):
    pass


class RemediationError(WatchdogError):
    pass


class RemediationCancelled(RemediationError):
    """The cycle deadline ran out before the remediation call finished."""
