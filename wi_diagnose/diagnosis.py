"""Workload Identity diagnosis.

Chains the lookups into a single conclusion:

    Pod -> KSA -> GSA annotation -> cluster WI pool -> GSA policy -> project roles

Every lookup either returns a value or raises DiagnosisError. A KSA the GSA
does not trust raises AccessDenied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from wi_diagnose.errors import AccessDenied, DiagnosisError, InvalidRequest
from wi_diagnose.gcloud import determine_project
from wi_diagnose.gcp_client import GcpClient
from wi_diagnose.iam import grants_access, roles_for_member
from wi_diagnose.k8s_client import K8sClient
from wi_diagnose.models import ClusterRef, Diagnosis, GsaRef, KsaRef

logger = logging.getLogger(__name__)


@dataclass
class DiagnosisRequest:
    """What the user asked to diagnose."""

    namespace: str = "default"
    ksa: str = ""
    pod: str = ""
    project: str = ""
    cluster_project: str = ""
    cluster_location: str = ""
    cluster_name: str = ""

    @property
    def cluster_flags(self) -> tuple[str, str, str]:
        return (self.cluster_project, self.cluster_location, self.cluster_name)

    @property
    def explicit_cluster(self) -> ClusterRef | None:
        if all(self.cluster_flags):
            return ClusterRef(*self.cluster_flags)
        return None


def validate_request(req: DiagnosisRequest) -> None:
    """Reject input combinations before anything touches the network."""
    if bool(req.ksa) == bool(req.pod):
        raise InvalidRequest("Exactly one of --ksa and --pod must be specified.")
    if any(req.cluster_flags) and not all(req.cluster_flags):
        raise InvalidRequest(
            "Either set all, or none of: --clusterProject, --clusterLocation, --clusterName."
        )


def resolve_cluster(req: DiagnosisRequest, k8s: K8sClient) -> ClusterRef:
    """Explicit cluster flags win; otherwise parse the current kubeconfig context."""
    if cluster := req.explicit_cluster:
        return cluster
    try:
        return ClusterRef.from_context_name(k8s.get_context_name())
    except DiagnosisError as exc:
        raise DiagnosisError(
            f"could not determine the cluster ({exc}); "
            "pass --clusterProject, --clusterLocation and --clusterName"
        ) from exc


def diagnose(
    req: DiagnosisRequest,
    k8s: K8sClient,
    gcp: GcpClient,
    project_resolver: Callable[[str], str] = determine_project,
) -> Diagnosis:
    """Verify that the KSA may impersonate its GSA, then list the GSA's project roles."""
    validate_request(req)

    ksa_name = req.ksa
    if req.pod:
        ksa_name = k8s.get_pod_service_account(req.namespace, req.pod)
        logger.debug("Pod %s/%s runs as KSA %s", req.namespace, req.pod, ksa_name)
    ksa = KsaRef(req.namespace, ksa_name)

    gsa = GsaRef(k8s.get_gsa_annotation(ksa.namespace, ksa.name))
    logger.debug("KSA %s is annotated with GSA %s", ksa, gsa)

    cluster = resolve_cluster(req, k8s)
    pool = gcp.get_workload_pool(cluster)

    gsa_policy = gcp.get_service_account_policy(gsa)
    member = ksa.member(pool)
    if not grants_access(gsa_policy, member):
        logger.debug("%s not found in any allow-listed binding on %s", member, gsa)
        raise AccessDenied(ksa=ksa.name, gsa=gsa.email, pod=req.pod, member=member)

    project = project_resolver(req.project)
    roles = roles_for_member(gcp.get_project_policy(project), gsa.member)

    return Diagnosis(
        ksa=ksa,
        gsa=gsa,
        project=project,
        roles=roles,
        pod=req.pod,
        workload_pool=pool,
        cluster=cluster,
    )
