"""Ambient project resolution through the gcloud CLI."""

from __future__ import annotations

import logging
import subprocess

from wi_diagnose.errors import DiagnosisError

logger = logging.getLogger(__name__)

GCLOUD_PROJECT_CMD = ["gcloud", "config", "get-value", "core/project"]


def determine_project(explicit: str = "") -> str:
    """Return `explicit` if set, otherwise gcloud's configured default project."""
    if explicit:
        return explicit

    logger.debug("No project given, asking gcloud: %s", " ".join(GCLOUD_PROJECT_CMD))
    try:
        proc = subprocess.run(
            GCLOUD_PROJECT_CMD,
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise DiagnosisError("gcloud not found; pass -project explicitly") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        raise DiagnosisError(
            f"gcloud exited with status {exc.returncode}" + (f": {stderr}" if stderr else "")
        ) from exc

    project = proc.stdout.strip()
    if not project:
        raise DiagnosisError("gcloud has no default project set (core/project); pass -project")
    return project
