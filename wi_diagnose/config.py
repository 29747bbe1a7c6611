"""Configuration management for diagnose-wi."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from wi_diagnose.errors import DiagnosisError

CONFIG_FILENAME = ".diagnose-wi.yaml"
DEFAULT_PATHS = [
    Path.cwd() / CONFIG_FILENAME,
    Path.home() / CONFIG_FILENAME,
    Path.home() / ".config" / "diagnose-wi" / "config.yaml",
]


@dataclass
class Config:
    """Application configuration."""

    # Kubernetes
    kubeconfig: str = ""
    server: str = ""  # Overrides the API server in kubeconfig
    namespace: str = "default"

    # Target project for the role listing; empty = gcloud's default
    project: str = ""

    # Cluster; empty = derived from the current kubeconfig context
    cluster_project: str = ""
    cluster_location: str = ""
    cluster_name: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create config from a dictionary (e.g., parsed YAML)."""
        return cls(
            kubeconfig=_value(data, "kubeconfig"),
            server=_value(data, "server"),
            namespace=_value(data, "namespace", "default"),
            project=_value(data, "project"),
            cluster_project=_value(data, "cluster_project"),
            cluster_location=_value(data, "cluster_location"),
            cluster_name=_value(data, "cluster_name"),
        )

    @classmethod
    def load(cls, path: str | None = None) -> Config:
        """Load config from file, with env var overrides."""
        config_data: dict[str, Any] = {}

        # Find config file
        if path:
            config_path = Path(path)
        else:
            config_path = None
            for p in DEFAULT_PATHS:
                if p.exists():
                    config_path = p
                    break

        if config_path and config_path.exists():
            try:
                with open(config_path) as f:
                    config_data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as exc:
                raise DiagnosisError(f"reading config file {config_path}: {exc}") from exc
            if not isinstance(config_data, dict):
                raise DiagnosisError(
                    f"config file {config_path} must be a mapping, got {type(config_data).__name__}"
                )

        config = cls.from_dict(config_data)

        # Environment variable overrides
        if env_kubeconfig := os.environ.get("KUBECONFIG"):
            if not config.kubeconfig:
                config.kubeconfig = env_kubeconfig

        if env_project := os.environ.get("DIAGNOSE_WI_PROJECT"):
            config.project = env_project

        if env_ns := os.environ.get("DIAGNOSE_WI_NAMESPACE"):
            config.namespace = env_ns

        return config


def _value(data: dict[str, Any], key: str, default: str = "") -> str:
    # `key:` with nothing after it parses as None
    value = data.get(key)
    if value is None or value == "":
        return default
    return str(value)
