"""diagnose-wi: GKE Workload Identity binding diagnostics."""

__version__ = "0.1.0"
