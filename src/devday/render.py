"""Terminal (rich) and JSON (orjson) output for a day recap."""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import Any

import orjson
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from devday.types.sessions import DayRecap, ProjectSummary
from devday.utils.formatting import format_cost, format_duration, format_tokens, truncate

logger = logging.getLogger(__name__)

MAX_COMMITS_SHOWN = 10
TITLE_WIDTH = 33


# ---- JSON ----

def _iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000).astimezone().isoformat(timespec="milliseconds")


def recap_to_dict(recap: DayRecap) -> dict[str, Any]:
    """Plain-data view of a recap; instants carry both epoch ms and local ISO strings."""
    data = asdict(recap)
    for project_data, project in zip(data["projects"], recap.projects):
        project_data["total_tokens"] = project.total_tokens
        for session_data, session in zip(project_data["sessions"], project.sessions):
            session_data["started_at"] = _iso(session.start_ms)
            session_data["ended_at"] = _iso(session.end_ms)
    return data


def recap_to_json(recap: DayRecap) -> str:
    # orjson serializes enums and datetimes natively
    return orjson.dumps(recap_to_dict(recap), option=orjson.OPT_INDENT_2).decode("utf-8")


# ---- terminal ----

def render_recap(recap: DayRecap, console: Console, standup: bool = False) -> None:
    if standup:
        render_standup(recap, console)
    else:
        render_full(recap, console)


def render_standup(recap: DayRecap, console: Console) -> None:
    console.print()
    console.print(f"  [bold cyan]Standup for {recap.date}[/bold cyan]")
    console.print(f"  [dim]{'─' * 50}[/dim]")
    console.print()
    if recap.standup_message:
        for line in recap.standup_message.splitlines():
            console.print(f"  {escape(line)}")
    else:
        console.print("  [dim]No activity to report.[/dim]")
    console.print()


def render_full(recap: DayRecap, console: Console) -> None:
    console.print()
    console.print(f"  [bold cyan]devday - {recap.date}[/bold cyan]")
    console.print(f"  [dim]{'═' * 60}[/dim]")
    console.print()

    if not recap.projects:
        console.print("  [dim]No AI coding sessions or commits found for this day.[/dim]")
        console.print()
        return

    overview = Table(box=box.ROUNDED, expand=False)
    for heading in ("Sessions", "Messages", "Tokens", "Cost", "Duration", "Tools"):
        overview.add_column(heading, justify="center", header_style="bold cyan", no_wrap=True)
    overview.add_row(
        str(recap.total_sessions),
        str(recap.total_messages),
        format_tokens(recap.total_tokens),
        format_cost(recap.total_cost_usd),
        format_duration(recap.total_duration_ms),
        ", ".join(t.value for t in recap.tools_used),
    )
    console.print(overview)
    console.print()

    for project in recap.projects:
        render_project(project, console)

    if recap.standup_message:
        console.print("  [bold yellow]Standup[/bold yellow]")
        console.print(f"  [dim]{'─' * 50}[/dim]")
        for line in recap.standup_message.splitlines():
            console.print(f"  {escape(line)}")
        console.print()


def render_project(project: ProjectSummary, console: Console) -> None:
    console.print(f"  [bold green]{escape(project.project_name)}[/bold green]")
    if project.project_path:
        console.print(f"  [dim]{escape(project.project_path)}[/dim]")
    console.print()

    if project.ai_summary:
        console.print(f"  {escape(project.ai_summary)}")
        console.print()

    if project.sessions:
        table = Table(box=box.ROUNDED, expand=False, header_style="dim")
        table.add_column("Session", max_width=35, overflow="fold")
        table.add_column("Tool", style="magenta", no_wrap=True)
        table.add_column("Messages", justify="right")
        table.add_column("Model", style="dim", max_width=25)
        table.add_column("Cost", justify="right", no_wrap=True)
        table.add_column("Duration", justify="right", no_wrap=True)
        for session in project.sessions:
            table.add_row(
                escape(truncate(session.title or session.id, TITLE_WIDTH)),
                session.tool.value,
                str(session.message_count),
                escape(", ".join(session.models) or "N/A"),
                format_cost(session.cost_usd),
                format_duration(session.duration_ms),
            )
        console.print(table)
        console.print()

    if project.git is not None and project.git.commits:
        console.print("  [dim]Git[/dim]")
        for commit in project.git.commits[:MAX_COMMITS_SHOWN]:
            stats = ""
            if commit.insertions or commit.deletions:
                stats = f" [green]+{commit.insertions}[/green][red]-{commit.deletions}[/red]"
            console.print(f"  [yellow]{commit.short_hash}[/yellow] {escape(commit.message)}{stats}")
        hidden = len(project.git.commits) - MAX_COMMITS_SHOWN
        if hidden > 0:
            console.print(f"  [dim]... and {hidden} more commits[/dim]")
        console.print()

    console.print(f"  [dim]{'─' * 60}[/dim]")
    console.print()
