"""Data models for Workload Identity diagnostics.

Core concepts:
- KsaRef / GsaRef / ClusterRef: references to the three identities involved
- IamPolicy: read-only snapshot of a remote IAM policy
- Diagnosis: the conclusion of a successful run
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from wi_diagnose.errors import DiagnosisError

GKE_CONTEXT_PREFIX = "gke"


# ---------------------------------------------------------------------------
# Principal strings, formatted exactly the way Cloud IAM stores members
# ---------------------------------------------------------------------------


def ksa_member(pool: str, namespace: str, ksa: str) -> str:
    """IAM member for a KSA in the given Workload Identity Pool."""
    return f"serviceAccount:{pool}[{namespace}/{ksa}]"


def gsa_member(email: str) -> str:
    return f"serviceAccount:{email}"


# ---------------------------------------------------------------------------
# Identity references
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KsaRef:
    """A Kubernetes Service Account."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"

    def member(self, pool: str) -> str:
        return ksa_member(pool, self.namespace, self.name)


@dataclass(frozen=True)
class GsaRef:
    """A Google Service Account, identified by its email."""

    email: str

    def __str__(self) -> str:
        return self.email

    @property
    def project_id(self) -> str:
        """Project segment of the email: `a@b.iam.gserviceaccount.com` -> `b`."""
        _, sep, domain = self.email.partition("@")
        if not sep or not domain:
            raise DiagnosisError(f'GSA "{self.email}" is not a service account email')
        return domain.split(".")[0]

    @property
    def resource_name(self) -> str:
        return f"projects/{self.project_id}/serviceAccounts/{self.email}"

    @property
    def member(self) -> str:
        return gsa_member(self.email)


@dataclass(frozen=True)
class ClusterRef:
    """A GKE cluster."""

    project: str
    location: str
    name: str

    def __str__(self) -> str:
        return self.resource_name

    @property
    def resource_name(self) -> str:
        return f"projects/{self.project}/locations/{self.location}/clusters/{self.name}"

    @classmethod
    def from_context_name(cls, context: str) -> ClusterRef:
        """Parse a gcloud-generated kubeconfig context: `gke_<project>_<location>_<name>`."""
        parts = context.split("_")
        if len(parts) != 4 or parts[0] != GKE_CONTEXT_PREFIX or not all(parts[1:]):
            raise DiagnosisError(
                f'kubeconfig context "{context}" is not a GKE context '
                "(expected gke_<project>_<location>_<cluster>)"
            )
        return cls(project=parts[1], location=parts[2], name=parts[3])


# ---------------------------------------------------------------------------
# IAM policy snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class IamBinding:
    role: str
    members: tuple[str, ...] = ()


@dataclass
class IamPolicy:
    """Ordered (role, members) bindings as returned by getIamPolicy."""

    bindings: list[IamBinding] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> IamPolicy:
        data = data or {}
        return cls(
            bindings=[
                IamBinding(role=b.get("role", ""), members=tuple(b.get("members", [])))
                for b in data.get("bindings", [])
            ]
        )


# ---------------------------------------------------------------------------
# Diagnosis: outcome of a successful run
# ---------------------------------------------------------------------------


@dataclass
class Diagnosis:
    """A KSA that can impersonate its GSA, and what that GSA holds on a project."""

    ksa: KsaRef
    gsa: GsaRef
    project: str
    roles: list[str] = field(default_factory=list)
    pod: str = ""
    workload_pool: str = ""
    cluster: ClusterRef | None = None

    def summary(self) -> str:
        prefix = f'Pod "{self.pod}" uses ' if self.pod else ""
        return (
            f'{prefix}KSA "{self.ksa.name}", which links to GSA "{self.gsa.email}", '
            f'whose roles on the project "{self.project}" are [{" ".join(self.roles)}]'
        )
