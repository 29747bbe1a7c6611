"""Shared fixtures and helpers for diagnose-wi tests.

We build lightweight fakes that replicate the attribute-access interface of
the kubernetes Python client objects, and in-memory stand-ins for the
Kubernetes and GCP client wrappers, so no test touches a real API.
"""

from __future__ import annotations

from typing import Any

import pytest

from wi_diagnose.errors import DiagnosisError
from wi_diagnose.models import ClusterRef, GsaRef, IamPolicy

POOL = "cluster-proj.svc.id.goog"
GSA = "app-sa@gsa-proj.iam.gserviceaccount.com"
GKE_CONTEXT = "gke_cluster-proj_us-central1_prod"


# ---------------------------------------------------------------------------
# Generic attribute-bag that behaves like a K8s API object
# ---------------------------------------------------------------------------


class K8sObj:
    """Minimal mock for K8s API objects.  Supports nested attribute access."""

    def __init__(self, **kwargs: Any):
        for k, v in kwargs.items():
            if isinstance(v, dict) and k != "annotations":
                setattr(self, k, K8sObj(**v))
            else:
                setattr(self, k, v)

    def __getattr__(self, name: str) -> Any:
        # Return None for any attribute not set (mirrors K8s client behaviour)
        return None


def make_pod(name: str, namespace: str = "default", service_account: str | None = "app") -> K8sObj:
    return K8sObj(
        metadata=K8sObj(name=name, namespace=namespace),
        spec=K8sObj(service_account_name=service_account, node_name="node-1"),
    )


def make_service_account(
    name: str,
    namespace: str = "default",
    annotations: dict[str, str] | None = None,
) -> K8sObj:
    return K8sObj(metadata=K8sObj(name=name, namespace=namespace, annotations=annotations))


# ---------------------------------------------------------------------------
# IAM policy helpers
# ---------------------------------------------------------------------------


def make_policy(*bindings: tuple[str, list[str]]) -> IamPolicy:
    return IamPolicy.from_dict(
        {"bindings": [{"role": role, "members": members} for role, members in bindings]}
    )


# ---------------------------------------------------------------------------
# Client fakes
# ---------------------------------------------------------------------------


class FakeK8s:
    """Stands in for K8sClient, backed by dicts keyed by (namespace, name)."""

    def __init__(
        self,
        pods: dict[tuple[str, str], str] | None = None,
        ksas: dict[tuple[str, str], str] | None = None,
        context: str = GKE_CONTEXT,
    ):
        self.pods = pods or {}
        self.ksas = ksas or {}
        self.context = context
        self.calls: list[str] = []

    def connect(self) -> None:
        self.calls.append("connect")

    def get_pod_service_account(self, namespace: str, pod: str) -> str:
        self.calls.append(f"pod:{namespace}/{pod}")
        if (namespace, pod) not in self.pods:
            raise DiagnosisError(f'getting Pod "{pod}" in namespace "{namespace}": 404 Not Found')
        return self.pods[(namespace, pod)]

    def get_gsa_annotation(self, namespace: str, ksa: str) -> str:
        self.calls.append(f"ksa:{namespace}/{ksa}")
        if (namespace, ksa) not in self.ksas:
            raise DiagnosisError(f'KSA "{ksa}" in namespace "{namespace}" does not have the WI annotation')
        return self.ksas[(namespace, ksa)]

    def get_context_name(self) -> str:
        self.calls.append("context")
        return self.context


class FakeGcp:
    """Stands in for GcpClient with canned pools and policies."""

    def __init__(
        self,
        pools: dict[str, str] | None = None,
        gsa_policies: dict[str, IamPolicy] | None = None,
        project_policies: dict[str, IamPolicy] | None = None,
    ):
        self.pools = pools or {}
        self.gsa_policies = gsa_policies or {}
        self.project_policies = project_policies or {}
        self.calls: list[str] = []

    def get_workload_pool(self, cluster: ClusterRef) -> str:
        self.calls.append(cluster.resource_name)
        if cluster.resource_name not in self.pools:
            raise DiagnosisError(f'getting GKE Cluster "{cluster.resource_name}": 404 Not Found')
        return self.pools[cluster.resource_name]

    def get_service_account_policy(self, gsa: GsaRef) -> IamPolicy:
        self.calls.append(gsa.resource_name)
        return self.gsa_policies.get(gsa.email, IamPolicy())

    def get_project_policy(self, project: str) -> IamPolicy:
        self.calls.append(f"project:{project}")
        return self.project_policies.get(project, IamPolicy())


@pytest.fixture
def healthy_k8s() -> FakeK8s:
    return FakeK8s(
        pods={("default", "web-0"): "app"},
        ksas={("default", "app"): GSA},
    )


@pytest.fixture
def healthy_gcp() -> FakeGcp:
    return FakeGcp(
        pools={"projects/cluster-proj/locations/us-central1/clusters/prod": POOL},
        gsa_policies={
            GSA: make_policy(
                ("roles/iam.workloadIdentityUser", [f"serviceAccount:{POOL}[default/app]"]),
            )
        },
        project_policies={
            "target-proj": make_policy(
                ("roles/storage.objectViewer", [f"serviceAccount:{GSA}", "user:a@example.com"]),
                ("roles/viewer", ["user:a@example.com"]),
                ("roles/pubsub.subscriber", [f"serviceAccount:{GSA}"]),
            )
        },
    )
