"""Group sessions and git activity into per-project summaries and a day recap."""

import logging
import os
from typing import Iterable

from devday.types.git import GitActivity
from devday.types.sessions import DayRecap, ProjectSummary, Session
from devday.utils.cost import sum_tokens
from devday.utils.dedup import unique

logger = logging.getLogger(__name__)

# Bucket key for sessions whose project directory could not be resolved
UNKNOWN_PROJECT = "__unknown__"
UNKNOWN_PROJECT_NAME = "(unknown project)"


def group_sessions(sessions: Iterable[Session]) -> dict[str, list[Session]]:
    """Sessions by project path, in first-encounter order."""
    groups: dict[str, list[Session]] = {}
    for session in sessions:
        groups.setdefault(session.project_path or UNKNOWN_PROJECT, []).append(session)
    return groups


def build_project_summary(
    key: str,
    sessions: list[Session],
    git: GitActivity | None,
) -> ProjectSummary:
    project_path = None if key == UNKNOWN_PROJECT else key
    name = (
        (sessions[0].project_name if sessions else None)
        or (git.project_name if git is not None else None)
        or (os.path.basename(project_path.rstrip(os.sep)) if project_path else None)
        or UNKNOWN_PROJECT_NAME
    )

    tokens = sum_tokens(*(s.tokens for s in sessions))
    return ProjectSummary(
        project_path=project_path,
        project_name=name,
        sessions=sessions,
        git=git,
        total_sessions=len(sessions),
        total_messages=sum(s.message_count for s in sessions),
        tokens=tokens,
        total_cost_usd=sum(s.cost_usd for s in sessions),
        total_duration_ms=sum(s.duration_ms for s in sessions),
        tools_used=unique(s.tool for s in sessions),
        models_used=unique(m for s in sessions for m in s.models),
        files_touched=unique(f for s in sessions for f in s.files_touched),
    )


def build_day_recap(
    date: str,
    sessions: list[Session],
    git_activities: Iterable[GitActivity] = (),
) -> DayRecap:
    """Merge all sources' sessions and git activity into one recap.

    A project with neither sessions nor commits is dropped. Projects are
    ordered by cost, most expensive first; ties keep encounter order.
    """
    by_project = group_sessions(sessions)
    git_by_project = {g.project_path: g for g in git_activities}

    projects = []
    for key in unique([*by_project, *git_by_project]):
        project_sessions = by_project.get(key, [])
        git = git_by_project.get(key)
        if not project_sessions and (git is None or not git.commits):
            continue
        projects.append(build_project_summary(key, project_sessions, git))

    # sorted() is stable, so equal costs keep their encounter order
    projects = sorted(projects, key=lambda p: p.total_cost_usd, reverse=True)

    logger.debug("Recap %s: %d session(s) across %d project(s)", date, len(sessions), len(projects))
    return DayRecap(
        date=date,
        projects=projects,
        total_sessions=sum(p.total_sessions for p in projects),
        total_messages=sum(p.total_messages for p in projects),
        total_tokens=sum_tokens(*(s.tokens for s in sessions)).total,
        total_cost_usd=sum(p.total_cost_usd for p in projects),
        total_duration_ms=sum(p.total_duration_ms for p in projects),
        tools_used=unique(t for p in projects for t in p.tools_used),
        models_used=unique(m for p in projects for m in p.models_used),
        files_touched=unique(f for p in projects for f in p.files_touched),
    )
