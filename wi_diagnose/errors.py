"""Exceptions raised while diagnosing a Workload Identity binding."""

from __future__ import annotations


class DiagnosisError(Exception):
    """A lookup against Kubernetes, GKE, IAM or the local environment failed."""


class AccessDenied(DiagnosisError):
    """The GSA exists and is annotated, but does not let the KSA impersonate it."""

    def __init__(self, ksa: str, gsa: str, pod: str = "", member: str = ""):
        self.ksa = ksa
        self.gsa = gsa
        self.pod = pod
        self.member = member
        prefix = f'Pod "{pod}" uses ' if pod else ""
        super().__init__(
            f'{prefix}KSA "{ksa}", which links to GSA "{gsa}", '
            "but that GSA does not grant access to the KSA"
        )


class InvalidRequest(DiagnosisError):
    """The combination of inputs cannot be diagnosed; nothing was looked up."""
