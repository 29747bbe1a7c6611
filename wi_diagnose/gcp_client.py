"""Google Cloud API access: GKE cluster metadata and IAM policies.

Uses the discovery-based `googleapiclient` with Application Default
Credentials. Each service is built on first use and reused afterwards.
"""

from __future__ import annotations

import logging
from typing import Any

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from wi_diagnose.errors import DiagnosisError
from wi_diagnose.models import ClusterRef, GsaRef, IamPolicy

logger = logging.getLogger(__name__)

# Failures short of an HTTP response: missing or expired credentials, DNS,
# refused connections, TLS, timeouts.
CALL_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)


class GcpClient:
    """Read-only access to the container, iam and cloudresourcemanager APIs."""

    def __init__(self) -> None:
        self._services: dict[str, Any] = {}

    def get_service(self, service_name: str, version: str) -> Any:
        service_key = f"{service_name}_{version}"
        if service_key not in self._services:
            try:
                self._services[service_key] = build(
                    serviceName=service_name, version=version, cache_discovery=False
                )
            except CALL_ERRORS as exc:
                raise DiagnosisError(
                    f"creating {service_name} {version} service: {_describe(exc)}"
                ) from exc
        return self._services[service_key]

    @property
    def container(self) -> Any:
        return self.get_service("container", "v1")

    @property
    def iam(self) -> Any:
        return self.get_service("iam", "v1")

    @property
    def resource_manager(self) -> Any:
        return self.get_service("cloudresourcemanager", "v1")

    def get_workload_pool(self, cluster: ClusterRef) -> str:
        """Return the Workload Identity Pool of a GKE cluster."""
        name = cluster.resource_name
        logger.debug("Getting GKE cluster %s", name)
        clusters = self.container.projects().locations().clusters()
        try:
            data = clusters.get(name=name).execute()
        except CALL_ERRORS as exc:
            raise DiagnosisError(f'getting GKE Cluster "{name}": {_describe(exc)}') from exc

        pool = (data.get("workloadIdentityConfig") or {}).get("workloadPool", "")
        if not pool:
            raise DiagnosisError(f'Workload Identity is not enabled on cluster "{name}"')
        logger.debug("Cluster %s uses Workload Identity Pool %s", name, pool)
        return pool

    def get_service_account_policy(self, gsa: GsaRef) -> IamPolicy:
        """Return the IAM policy set on a GSA (who may act as it)."""
        resource = gsa.resource_name
        logger.debug("Getting IAM policy of %s", resource)
        accounts = self.iam.projects().serviceAccounts()
        try:
            data = accounts.getIamPolicy(resource=resource).execute()
        except CALL_ERRORS as exc:
            raise DiagnosisError(f'getting GSA "{resource}" IAMPolicy: {_describe(exc)}') from exc
        return IamPolicy.from_dict(data)

    def get_project_policy(self, project: str) -> IamPolicy:
        """Return the IAM policy of a project."""
        logger.debug("Getting IAM policy of project %s", project)
        projects = self.resource_manager.projects()
        try:
            data = projects.getIamPolicy(resource=project, body={}).execute()
        except CALL_ERRORS as exc:
            raise DiagnosisError(f'getting Project "{project}" IAMPolicy: {_describe(exc)}') from exc
        return IamPolicy.from_dict(data)


def _describe(exc: Exception) -> str:
    if isinstance(exc, HttpError):
        return f"{exc.status_code} {exc.reason}".strip()
    return f"{type(exc).__name__}: {exc}"
