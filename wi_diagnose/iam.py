"""IAM policy membership checks.

Decides whether a GSA's policy lets a KSA impersonate it, and which roles a
GSA holds on a project.
"""

from __future__ import annotations

from wi_diagnose.models import IamPolicy

# Any of these on the GSA lets a member mint tokens for it.
WORKLOAD_IDENTITY_ROLES = frozenset(
    {
        "roles/iam.workloadIdentityUser",
        "roles/iam.serviceAccountTokenCreator",
        "roles/editor",
        "roles/owner",
    }
)


def grants_access(policy: IamPolicy, member: str) -> bool:
    """True iff `member` appears verbatim in a binding for an allow-listed role."""
    for binding in policy.bindings:
        if binding.role in WORKLOAD_IDENTITY_ROLES and member in binding.members:
            return True
    return False


def roles_for_member(policy: IamPolicy, member: str) -> list[str]:
    """Roles of every binding that names `member`, in policy order."""
    return [b.role for b in policy.bindings if member in b.members]
