"""CLI entry point for diagnose-wi.

Usage:
    diagnose-wi -ksa KSA [-ns NAMESPACE] [-project PROJECT]
    diagnose-wi -pod POD [-ns NAMESPACE] [-project PROJECT]
    diagnose-wi --help

Flags are accepted with one or two leading dashes.
"""

from __future__ import annotations

import logging
import sys

import click
from rich.console import Console

from wi_diagnose import __version__
from wi_diagnose.config import Config
from wi_diagnose.diagnosis import DiagnosisRequest, diagnose, validate_request
from wi_diagnose.errors import DiagnosisError, InvalidRequest
from wi_diagnose.gcloud import determine_project
from wi_diagnose.gcp_client import GcpClient
from wi_diagnose.k8s_client import K8sClient
from wi_diagnose.output import render_diagnosis, render_failure

console = Console()
err_console = Console(stderr=True)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="diagnose-wi")
@click.option("-ns", "--ns", "namespace", default="", help="Pod namespace (default: default)")
@click.option("-ksa", "--ksa", default="", help="KSA name")
@click.option("-pod", "--pod", default="", help="Pod name")
@click.option("-project", "--project", default="", help="Project ID to list the GSA's roles on (default: gcloud's project)")
@click.option("-clusterProject", "--clusterProject", "cluster_project", default="", help="Cluster project")
@click.option("-clusterLocation", "--clusterLocation", "cluster_location", default="", help="Cluster location")
@click.option("-clusterName", "--clusterName", "cluster_name", default="", help="Cluster name")
@click.option(
    "-server",
    "--server",
    default="",
    help="The address of the Kubernetes API server. Overrides any value in kubeconfig.",
)
@click.option("-kubeconfig", "--kubeconfig", default="", help="Path to a kubeconfig (default: $KUBECONFIG)")
@click.option("--config", "config_path", default="", help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging and show binding details")
def main(
    namespace: str,
    ksa: str,
    pod: str,
    project: str,
    cluster_project: str,
    cluster_location: str,
    cluster_name: str,
    server: str,
    kubeconfig: str,
    config_path: str,
    verbose: bool,
):
    """Diagnose a GKE Workload Identity binding.

    Given a KSA or a Pod, verifies that the GSA the KSA is annotated with lets
    the KSA impersonate it, then lists the GSA's roles on a project.
    """
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    # Load config (file -> env -> CLI flags)
    try:
        cfg = Config.load(config_path or None)
    except DiagnosisError as exc:
        render_failure(exc, err_console)
        sys.exit(1)

    # CLI flag overrides
    if namespace:
        cfg.namespace = namespace
    if project:
        cfg.project = project
    if cluster_project:
        cfg.cluster_project = cluster_project
    if cluster_location:
        cfg.cluster_location = cluster_location
    if cluster_name:
        cfg.cluster_name = cluster_name
    if server:
        cfg.server = server
    if kubeconfig:
        cfg.kubeconfig = kubeconfig

    req = DiagnosisRequest(
        namespace=cfg.namespace,
        ksa=ksa,
        pod=pod,
        project=cfg.project,
        cluster_project=cfg.cluster_project,
        cluster_location=cfg.cluster_location,
        cluster_name=cfg.cluster_name,
    )
    try:
        validate_request(req)
    except InvalidRequest as exc:
        raise click.UsageError(str(exc)) from exc

    k8s = K8sClient(kubeconfig=cfg.kubeconfig or None, server=cfg.server or None)
    try:
        k8s.connect()
        diagnosis = diagnose(req, k8s, GcpClient(), project_resolver=determine_project)
    except DiagnosisError as exc:
        render_failure(exc, err_console)
        sys.exit(1)

    render_diagnosis(diagnosis, console, verbose=verbose)


if __name__ == "__main__":
    main()
