"""CLI UI components (Rich).

Why separate components:
- Keeps command logic apart from visual details.
- Lets several commands reuse the same tables and panels.
"""

from __future__ import annotations

from typing import Sequence

from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.errors import CrmError, PartialFailure
from core.domain.models import Attachment, Candidate, Lead, Skill


def format_file_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def build_leads_table(leads: Sequence[Lead]) -> Table:
    table = Table(title="Leads")
    table.add_column("Company", style="cyan", no_wrap=True)
    table.add_column("Contact", style="white")
    table.add_column("Email", style="magenta")
    table.add_column("Status", style="green")
    table.add_column("Source", style="dim")
    for lead in leads:
        table.add_row(lead.company_name, lead.contact_name, lead.email, lead.status.value, lead.source)
    return table


def build_candidates_table(candidates: Sequence[Candidate], *, title: str = "Candidates") -> Table:
    table = Table(title=title)
    table.add_column("Id", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Skills", style="white")
    table.add_column("Opportunity", style="magenta")
    for candidate in candidates:
        table.add_row(
            candidate.id,
            candidate.name,
            candidate.status.value,
            ", ".join(candidate.skills),
            candidate.opportunity_id or "-",
        )
    return table


def build_skills_table(skills: Sequence[Skill]) -> Table:
    table = Table(title="Skills")
    table.add_column("Id", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Category", style="white")
    for skill in skills:
        table.add_row(skill.id, skill.name, skill.category or "-")
    return table


def build_attachment_panel(attachment: Attachment) -> Panel:
    body = Text()
    body.append(f"{attachment.name}\n", style="bold")
    body.append(f"{format_file_size(attachment.size)} • {attachment.type}\n")
    body.append(attachment.url, style="underline")
    return Panel(body, title=Text(attachment.id, style="dim"), border_style="green")


def build_error_panel(error: CrmError) -> Panel:
    body = Text(error.message + "\n")
    if isinstance(error, PartialFailure):
        body.append(f"\nStopped at: {error.step}", style="bold")
        body.append(f"\nCompleted: {', '.join(error.completed)}")
        if error.cause is not None:
            body.append(f"\nCause: {error.cause}", style="dim")
    return Panel(body, title=Text(error.kind.value, style="bold red"), border_style="red")
