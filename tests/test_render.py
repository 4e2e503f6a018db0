"""Tests for devday.render."""

import io
from datetime import datetime

import orjson
import pytest
from rich.console import Console

from devday.render import MAX_COMMITS_SHOWN, recap_to_dict, recap_to_json, render_recap
from devday.services.merge import build_day_recap
from devday.types.git import GitActivity, GitCommit
from devday.types.messages import TokenUsage
from devday.types.sessions import ToolName
from helpers import DATE, at, ms, make_session


def commits(n):
    return [
        GitCommit(hash=f"{i:040d}", short_hash=f"c{i:06d}", message=f"Commit {i}", author="Ann",
                  timestamp=datetime(2026, 3, 10, 12, i), insertions=i, deletions=1)
        for i in range(n)
    ]


@pytest.fixture
def recap():
    sessions = [
        make_session("s1", tool=ToolName.CURSOR, project_path="/repo/app", cost=1.20, title="Refactor auth",
                     tokens=TokenUsage.of(input=1_000, output=500), duration_ms=600_000, message_count=6,
                     models=["gpt-4o"], start_ms=ms(at(9)), end_ms=ms(at(9, 30))),
        make_session("s2", tool=ToolName.CLAUDE_CODE, project_path="/repo/app", cost=0.30,
                     title="[bold]not markup[/bold]", message_count=2),
        make_session("s3", tool=ToolName.CODEX, project_path=None, cost=0.0),
    ]
    git = GitActivity(project_path="/repo/app", project_name="app", commits=commits(MAX_COMMITS_SHOWN + 2))
    return build_day_recap(DATE, sessions, [git])


def render(recap, standup=False):
    console = Console(file=io.StringIO(), record=True, width=160)
    render_recap(recap, console, standup=standup)
    return console.export_text()


# ---------------------------------------------------------------------------
# 1. JSON
# ---------------------------------------------------------------------------

def test_json_output(recap):
    data = orjson.loads(recap_to_json(recap))
    assert data["date"] == DATE
    assert data["total_sessions"] == 3
    assert data["tools_used"] == ["cursor", "claude-code", "codex"]

    app = data["projects"][0]
    assert app["project_name"] == "app"
    assert app["total_tokens"] == 1_500
    assert app["total_cost_usd"] == pytest.approx(1.50)
    assert app["git"]["commits"][0]["timestamp"].startswith("2026-03-10T12:00")

    session = app["sessions"][0]
    assert session["tool"] == "cursor"
    assert session["tokens"]["input"] == 1_000
    assert session["start_ms"] == ms(at(9))
    assert session["started_at"].startswith("2026-03-10T09:00:00.000")

    unknown = data["projects"][1]
    assert unknown["project_path"] is None
    assert unknown["project_name"] == "(unknown project)"


def test_recap_to_dict_is_plain_data(recap):
    data = recap_to_dict(recap)
    assert isinstance(data["projects"][0]["sessions"][0], dict)


# ---------------------------------------------------------------------------
# 2. Full terminal view
# ---------------------------------------------------------------------------

def test_full_view(recap):
    text = render(recap)
    assert f"devday - {DATE}" in text
    assert "app" in text and "/repo/app" in text
    assert "(unknown project)" in text
    assert "Refactor auth" in text
    assert "$1.50" in text
    assert "10m" in text
    assert "1.5k" in text
    assert "... and 2 more commits" in text
    assert "Commit 0" in text
    assert f"Commit {MAX_COMMITS_SHOWN}" not in text


def test_user_text_is_not_markup(recap):
    assert "[bold]not markup[/bold]" in render(recap)


def test_summaries_and_standup_in_full_view(recap):
    recap.projects[0].ai_summary = "I refactored auth."
    recap.standup_message = "- I refactored auth\n- I fixed [brackets]"
    text = render(recap)
    assert "I refactored auth." in text
    assert "Standup" in text
    assert "- I fixed [brackets]" in text


def test_empty_day():
    text = render(build_day_recap(DATE, []))
    assert "No AI coding sessions or commits found for this day." in text


# ---------------------------------------------------------------------------
# 3. Standup view
# ---------------------------------------------------------------------------

def test_standup_view(recap):
    recap.standup_message = "- I refactored auth\n- I added tests"
    text = render(recap, standup=True)
    assert f"Standup for {DATE}" in text
    assert "- I added tests" in text
    assert "Refactor auth" not in text


def test_standup_without_message(recap):
    assert "No activity to report." in render(recap, standup=True)
