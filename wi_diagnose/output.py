"""Rich terminal output for a diagnosis."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from wi_diagnose.errors import AccessDenied, DiagnosisError
from wi_diagnose.models import Diagnosis


def render_diagnosis(diagnosis: Diagnosis, console: Console, verbose: bool = False) -> None:
    """Print the diagnostic sentence, plus the binding details when verbose."""
    console.print(Text(diagnosis.summary()), soft_wrap=True)

    if not verbose:
        return

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("field", style="bold")
    table.add_column("value", style="cyan")
    if diagnosis.pod:
        table.add_row("Pod", f"{diagnosis.ksa.namespace}/{diagnosis.pod}")
    table.add_row("KSA", str(diagnosis.ksa))
    table.add_row("GSA", diagnosis.gsa.email)
    if diagnosis.cluster:
        table.add_row("Cluster", diagnosis.cluster.resource_name)
    table.add_row("WI Pool", diagnosis.workload_pool)
    table.add_row("Project", diagnosis.project)

    roles = Table(show_header=True, header_style="bold", box=None)
    roles.add_column(f"Roles on {diagnosis.project}")
    for role in diagnosis.roles:
        roles.add_row(role)
    if not diagnosis.roles:
        roles.add_row(Text("(none)", style="dim"))

    console.print(Panel(table, title="[bold]Workload Identity[/bold]", border_style="green"))
    console.print(roles)


def render_failure(exc: DiagnosisError, console: Console) -> None:
    """Print a fatal diagnostic message."""
    if isinstance(exc, AccessDenied):
        console.print(f"[bold red]Access denied:[/bold red] {escape(str(exc))}", soft_wrap=True)
        console.print(
            "[dim]Grant the KSA roles/iam.workloadIdentityUser on the GSA, e.g.\n"
            f"  gcloud iam service-accounts add-iam-policy-binding {escape(exc.gsa)} "
            f"--role roles/iam.workloadIdentityUser --member '{escape(exc.member)}'[/dim]"
        )
        return
    console.print(f"[bold red]Error:[/bold red] {escape(str(exc))}", soft_wrap=True)
