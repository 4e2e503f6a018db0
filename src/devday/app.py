"""Command-line orchestration: parse args, scan sources, merge, summarize, render."""

import argparse
import logging
import sys
from typing import Optional, Sequence, TextIO

from rich.console import Console
from rich.markup import escape

from devday import __version__
from devday.parsers import build_parsers
from devday.render import recap_to_json, render_recap
from devday.services.config_manager import DevDayConfig, Summarizer, load_config
from devday.services.git_resolver import get_git_activity
from devday.services.merge import build_day_recap
from devday.services.summarizer import summarize_recap
from devday.types.git import GitActivity
from devday.types.sessions import Session
from devday.utils.day_window import DayWindow, day_window, resolve_date
from devday.utils.dedup import unique

logger = logging.getLogger(__name__)

EPILOG = """\
Examples:
  devday                    today's recap
  devday -d yesterday       yesterday's recap
  devday -d 2026-02-10      specific date
  devday --standup          short standup format
  devday --json             machine-readable output

Environment variables:
  CONCENTRATE_API_KEY       AI summaries via Concentrate AI
  OPENAI_API_KEY            AI summaries via OpenAI
  ANTHROPIC_API_KEY         AI summaries via Anthropic
"""


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devday",
        description="End-of-day recap for AI-assisted coding sessions",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-d", "--date", help='YYYY-MM-DD, "today" or "yesterday" (default: today)')
    parser.add_argument("-s", "--standup", action="store_true", help="short standup-ready summary")
    parser.add_argument("-j", "--json", action="store_true", help="output raw JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging on stderr")
    parser.add_argument("--no-git", dest="git", action="store_false", help="skip git log integration")
    parser.add_argument(
        "--no-summarize", dest="summarize", action="store_false", help="skip LLM summarization"
    )
    return parser


def collect_sessions(config: DevDayConfig, window: DayWindow) -> list[Session]:
    sessions: list[Session] = []
    for parser in build_parsers(config.paths, config.enabled_tools):
        found = parser.get_sessions(window)
        logger.debug("%s: %d session(s)", parser.name.value, len(found))
        sessions.extend(found)
    return sessions


def collect_git(sessions: list[Session], date: str, author_filter: str | None) -> list[GitActivity]:
    activities = []
    for path in unique(s.project_path for s in sessions if s.project_path):
        git = get_git_activity(path, date, author_filter)
        if git is not None:
            logger.debug("%s: %d commit(s)", path, len(git.commits))
            activities.append(git)
    return activities


def run(
    argv: Optional[Sequence[str]] = None,
    config: DevDayConfig | None = None,
    console: Console | None = None,
    stdout: TextIO | None = None,
) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    stdout = stdout or sys.stdout
    console = console or Console(file=stdout, soft_wrap=True)

    date = resolve_date(args.date)
    try:
        window = day_window(date)
    except ValueError:
        console.print(
            f'[red]Invalid date format: "{escape(str(args.date))}". Use YYYY-MM-DD, "today", or "yesterday".[/red]'
        )
        return 1

    config = config or load_config()
    try:
        return _run(args, config, window, console, stdout)
    except Exception as e:
        logger.debug("Unhandled error", exc_info=True)
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        return 1


def _run(
    args: argparse.Namespace,
    config: DevDayConfig,
    window: DayWindow,
    console: Console,
    stdout: TextIO,
) -> int:
    has_key = config.preferred_summarizer != Summarizer.NONE
    if not args.json:
        _print_banner(config, window.date, console)

    if not any(config.paths.get(tool) for tool in config.enabled_tools):
        if args.json:
            stdout.write(recap_to_json(build_day_recap(window.date, [])) + "\n")
        else:
            console.print("  [yellow]No AI coding tools detected.[/yellow]")
            console.print()
        return 0

    sessions = collect_sessions(config, window)
    git = collect_git(sessions, window.date, config.git_author_filter) if args.git else []
    recap = build_day_recap(window.date, sessions, git)

    warnings: list[str] = []
    if has_key and args.summarize and recap.projects:
        logger.debug("Summarizing with %s", config.preferred_summarizer.value)
        warnings = summarize_recap(recap, config)

    if args.json:
        stdout.write(recap_to_json(recap) + "\n")
        return 0

    if args.standup and not has_key:
        console.print("  [yellow]Standup requires an API key to generate summaries.[/yellow]")
        console.print("  Run: [cyan]export CONCENTRATE_API_KEY=sk-cn-...[/cyan]")
        console.print()
        return 0

    render_recap(recap, console, standup=args.standup)

    if warnings:
        console.print("  [yellow]Summary warnings:[/yellow]")
        for warning in unique(warnings):
            console.print(f"    [dim]• {escape(warning)}[/dim]")
        console.print()
    if not has_key:
        console.print("  To generate AI-powered summaries and standup messages:")
        console.print("    [cyan]export CONCENTRATE_API_KEY=sk-cn-...[/cyan]")
        console.print()
    return 0


def _print_banner(config: DevDayConfig, date: str, console: Console) -> None:
    tools = [t.value for t in config.enabled_tools if config.paths.get(t)]
    console.print()
    console.print(f"  [bold cyan]devday[/bold cyan] [dim]v{__version__}[/dim]")
    console.print(f"  [dim]Tools:[/dim] {', '.join(tools) if tools else '[yellow]none detected[/yellow]'}")
    if config.preferred_summarizer != Summarizer.NONE:
        console.print(f"  [dim]Summaries:[/dim] [green]{config.preferred_summarizer.value}[/green]")
    else:
        console.print("  [dim]Summaries:[/dim] [yellow]not configured[/yellow]")
    console.print(f"  [dim]Date: {date}[/dim]")
    console.print()
