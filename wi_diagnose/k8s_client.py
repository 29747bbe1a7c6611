"""Kubernetes client wrapper for Workload Identity lookups."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import urllib3
from kubernetes import client, config
from kubernetes.client import CoreV1Api
from kubernetes.client.exceptions import ApiException, ApiValueError
from kubernetes.config.config_exception import ConfigException

from wi_diagnose.errors import DiagnosisError

logger = logging.getLogger(__name__)

WI_GSA_ANNOTATION = "iam.gke.io/gcp-service-account"
DEFAULT_KUBECONFIG = Path.home() / ".kube" / "config"

# ApiException covers HTTP responses; the rest are unreachable servers and bad arguments
READ_ERRORS = (ApiException, ApiValueError, urllib3.exceptions.HTTPError)


class K8sClient:
    """Wraps the Kubernetes Python client, loading config once and exposing the core API."""

    def __init__(
        self,
        kubeconfig: str | None = None,
        server: str | None = None,
    ):
        self.kubeconfig = kubeconfig
        self.server = server
        self._api_client: client.ApiClient | None = None
        self._loaded_from: str | None = None

    def connect(self) -> None:
        """Load an explicit kubeconfig, else in-cluster config, else ~/.kube/config."""
        configuration = client.Configuration()
        try:
            self._loaded_from = self._load(configuration)
        except (ConfigException, OSError) as exc:
            raise DiagnosisError("could not create a valid kubeconfig") from exc

        # Overrides whatever the kubeconfig says
        if self.server:
            configuration.host = self.server

        logger.debug("Kubernetes API server %s (config: %s)", configuration.host, self._loaded_from)
        self._api_client = client.ApiClient(configuration)

    def _load(self, configuration: client.Configuration) -> str:
        if self.kubeconfig:
            config.load_kube_config(
                config_file=os.path.expanduser(self.kubeconfig),
                client_configuration=configuration,
            )
            return self.kubeconfig

        try:
            config.load_incluster_config(client_configuration=configuration)
            return "in-cluster"
        except ConfigException:
            logger.debug("Not running in a cluster, trying %s", DEFAULT_KUBECONFIG)

        config.load_kube_config(
            config_file=str(DEFAULT_KUBECONFIG),
            client_configuration=configuration,
        )
        return str(DEFAULT_KUBECONFIG)

    @property
    def api(self) -> client.ApiClient:
        if self._api_client is None:
            raise RuntimeError("K8sClient not connected. Call connect() first.")
        return self._api_client

    @property
    def core_v1(self) -> CoreV1Api:
        return CoreV1Api(self.api)

    def get_pod_service_account(self, namespace: str, pod: str) -> str:
        """Return the name of the KSA a Pod runs as."""
        logger.debug("Reading Pod %s/%s", namespace, pod)
        try:
            obj = self.core_v1.read_namespaced_pod(pod, namespace)
        except READ_ERRORS as exc:
            raise DiagnosisError(
                f'getting Pod "{pod}" in namespace "{namespace}": {_describe(exc)}'
            ) from exc
        # The API server assigns "default" when the Pod spec leaves it empty
        return obj.spec.service_account_name or "default"

    def get_gsa_annotation(self, namespace: str, ksa: str) -> str:
        """Return the GSA email a KSA is annotated with."""
        logger.debug("Reading ServiceAccount %s/%s", namespace, ksa)
        try:
            obj = self.core_v1.read_namespaced_service_account(ksa, namespace)
        except READ_ERRORS as exc:
            raise DiagnosisError(
                f'getting KSA "{ksa}" in namespace "{namespace}": {_describe(exc)}'
            ) from exc

        annotations = obj.metadata.annotations or {}
        gsa = annotations.get(WI_GSA_ANNOTATION)
        if not gsa:
            raise DiagnosisError(
                f'KSA "{ksa}" in namespace "{namespace}" does not have the WI annotation, '
                f'"{WI_GSA_ANNOTATION}"'
            )
        return gsa

    def get_context_name(self) -> str:
        """Return the active kubeconfig context name."""
        config_file = self.kubeconfig or str(DEFAULT_KUBECONFIG)
        try:
            _, active_context = config.list_kube_config_contexts(
                config_file=os.path.expanduser(config_file),
            )
        except (ConfigException, OSError) as exc:
            raise DiagnosisError(f"reading current context from {config_file}: {exc}") from exc
        return (active_context or {}).get("name", "")


def _describe(exc: Exception) -> str:
    if isinstance(exc, ApiException):
        return f"{exc.status} {exc.reason}".strip()
    return f"{type(exc).__name__}: {exc}"
