"""OpenCode sessions from its one-file-per-entity storage tree."""

import logging
from pathlib import Path
from typing import Iterator

from devday.parsers.base import SessionParser
from devday.services.jsonl_parser import read_json_file
from devday.types.messages import ChatEvent, Role, TokenUsage
from devday.types.sessions import Session, ToolName
from devday.utils.cost import estimate_cost, sum_tokens
from devday.utils.day_window import DayWindow
from devday.utils.dedup import dedupe_last, unique
from devday.utils.digest import build_digest
from devday.utils.duration import capped_span_ms
from devday.utils.json_fields import as_int, as_list, as_number, as_object, as_str, dig
from devday.utils.path_codec import project_name_from_path
from devday.utils.tool_calls import extract_files_from_args, summarize_tool_call

logger = logging.getLogger(__name__)

# The catch-all project OpenCode uses outside any repository
GLOBAL_WORKTREE = "/"


def load_json_dir(directory: Path) -> Iterator[dict]:
    """Yield every *.json object in a directory, sorted by filename; unreadable files are skipped."""
    if not directory.is_dir():
        return
    for path in sorted(directory.glob("*.json")):
        data = as_object(read_json_file(path))
        if data is not None:
            yield data


def message_tokens(message: dict) -> TokenUsage:
    tokens = as_object(message.get("tokens"))
    if tokens is None:
        return TokenUsage()
    return TokenUsage.of(
        input=as_int(tokens.get("input")),
        output=as_int(tokens.get("output")),
        reasoning=as_int(tokens.get("reasoning")),
        cache_read=as_int(dig(tokens, "cache", "read")),
        cache_write=as_int(dig(tokens, "cache", "write")),
    )


def message_cost(message: dict) -> float:
    """Reported cost when positive, otherwise estimated from the message's own usage."""
    reported = as_number(message.get("cost"))
    if reported > 0:
        return float(reported)
    tokens = message_tokens(message)
    if tokens.total == 0:
        return 0.0
    return estimate_cost(as_str(message.get("modelID")), tokens)


class OpenCodeParser(SessionParser):
    name = ToolName.OPENCODE

    def __init__(self, storage_path: str | Path):
        self._storage = Path(storage_path)

    def is_available(self) -> bool:
        return (self._storage / "project").is_dir()

    def _collect(self, window: DayWindow) -> list[Session]:
        sessions = []
        for project in load_json_dir(self._storage / "project"):
            project_id = as_str(project.get("id"))
            if not project_id:
                continue
            worktree = as_str(project.get("worktree"))
            records = list(load_json_dir(self._storage / "session" / project_id))

            children: dict[str, list[str]] = {}
            for record in records:
                parent = as_str(record.get("parentID"))
                child_id = as_str(record.get("id"))
                if parent and child_id:
                    children.setdefault(parent, []).append(child_id)

            for record in records:
                # Sub-agent sessions are folded into their parent
                if record.get("parentID"):
                    continue
                session = self._build_session(worktree, record, children, window)
                if session is not None:
                    sessions.append(session)
        return sessions

    def _build_session(
        self,
        worktree: str | None,
        record: dict,
        children: dict[str, list[str]],
        window: DayWindow,
    ) -> Session | None:
        session_id = as_str(record.get("id"))
        if not session_id:
            return None

        created = as_int(dig(record, "time", "created"))
        updated = as_int(dig(record, "time", "updated")) or created
        if not window.overlaps(created, updated):
            return None

        messages = []
        for sid in [session_id] + children.get(session_id, []):
            messages.extend(load_json_dir(self._storage / "message" / sid))
        messages = dedupe_last(messages, key=lambda m: as_str(m.get("id")) or None)
        day_messages = sorted(
            (m for m in messages if window.contains(as_int(dig(m, "time", "created")) or None)),
            key=lambda m: as_int(dig(m, "time", "created")),
        )
        if not day_messages:
            return None

        users = [m for m in day_messages if m.get("role") == "user"]
        assistants = [m for m in day_messages if m.get("role") == "assistant"]

        duration = 0
        earliest = latest = None
        for message in day_messages:
            created_ms = as_int(dig(message, "time", "created"))
            completed_ms = as_int(dig(message, "time", "completed")) or None
            start = window.clamp(created_ms)
            end = window.clamp(completed_ms) if completed_ms else start
            duration += capped_span_ms(start, end)
            earliest = created_ms if earliest is None else min(earliest, created_ms)
            last = completed_ms or created_ms
            latest = last if latest is None else max(latest, last)

        project_path = worktree
        if not project_path or project_path == GLOBAL_WORKTREE:
            project_path = as_str(record.get("directory")) or None

        chats, summaries, files = self._extract_content(day_messages)
        title = as_str(record.get("title")) or as_str(record.get("slug")) or None
        start_ms = window.clamp(earliest)

        return Session(
            id=session_id,
            tool=self.name,
            project_path=project_path,
            project_name=project_name_from_path(project_path),
            title=title,
            start_ms=start_ms,
            end_ms=max(start_ms, window.clamp(latest)),
            duration_ms=duration,
            message_count=len(day_messages),
            user_message_count=len(users),
            assistant_message_count=len(assistants),
            summary=as_str(record.get("title")) or None,
            topics=[title] if title else [],
            tokens=sum_tokens(*(message_tokens(m) for m in day_messages)),
            cost_usd=sum(message_cost(m) for m in assistants),
            models=unique(as_str(m.get("modelID")) for m in assistants if as_str(m.get("modelID"))),
            files_touched=files,
            conversation_digest=build_digest(chats),
            tool_call_summaries=summaries,
        )

    def _extract_content(self, messages: list[dict]) -> tuple[list[ChatEvent], list[str], list[str]]:
        """One pass over each message's parts: digest text, tool summaries, touched files."""
        chats: list[ChatEvent] = []
        summaries: list[str] = []
        files: list[str] = []

        for message in messages:
            message_id = as_str(message.get("id"))
            if not message_id:
                continue
            texts = []
            for part in load_json_dir(self._storage / "part" / message_id):
                part_type = part.get("type")
                if part_type == "text":
                    text = as_str(part.get("text"))
                    if text:
                        texts.append(text)
                elif part_type == "tool":
                    tool = as_str(part.get("tool"))
                    if not tool:
                        continue
                    args = dig(part, "state", "input") or {}
                    title = as_str(dig(part, "state", "title"))
                    summaries.append(f"{tool}: {title}" if title else summarize_tool_call(tool, args))
                    files.extend(extract_files_from_args(args))
                elif part_type == "patch":
                    patched = [p for p in as_list(part.get("files")) if isinstance(p, str)]
                    if as_str(part.get("path")):
                        patched.append(part["path"])
                    for path in patched:
                        files.append(path)
                        summaries.append(f"patch: {path}")

            if texts:
                role = Role.USER if message.get("role") == "user" else Role.ASSISTANT
                chats.append(ChatEvent(as_int(dig(message, "time", "created")), role, "\n".join(texts)))

        return chats, unique(summaries), unique(files)
