"""Claude Code sessions: per-project session indexes, __store.db and JSONL transcripts."""

import logging
import sqlite3
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from devday.parsers.base import SessionParser
from devday.services.jsonl_parser import (
    decode_json_value,
    extract_first_user_message,
    parse_timestamp_ms,
    read_json_file,
    read_records,
    stream_records,
)
from devday.services.readonly_db import ReadonlyDatabase, open_readonly
from devday.types.messages import ChatEvent, MessageType, Role, TokenUsage, ToolEvent
from devday.types.sessions import Session, ToolName
from devday.utils.content_sanitizer import extract_assistant_text, extract_user_text
from devday.utils.cost import estimate_cost
from devday.utils.day_window import DayWindow
from devday.utils.dedup import dedupe_last, unique
from devday.utils.digest import build_digest, truncate_prompt
from devday.utils.duration import MAX_GAP_MS, estimate_duration_ms
from devday.utils.json_fields import as_int, as_list, as_object, as_str, dig
from devday.utils.message_classifier import (
    is_assistant_message,
    is_real_user_message,
    is_tool_result_only,
)
from devday.utils.path_codec import decode_path, project_name_from_path
from devday.utils.tool_calls import extract_files_from_args, summarize_tool_calls

logger = logging.getLogger(__name__)

INDEX_FILE = "sessions-index.json"
STORE_FILE = "__store.db"

_ASSISTANT_ROWS_SQL = """
    SELECT b.uuid, b.session_id, b.timestamp, a.cost_usd, a.duration_ms, a.model, a.message
    FROM base_messages b
    JOIN assistant_messages a ON a.uuid = b.uuid
    WHERE b.session_id = ? AND b.timestamp >= ? AND b.timestamp <= ?
    ORDER BY b.timestamp
"""

_USER_ROWS_SQL = """
    SELECT b.uuid, b.session_id, b.timestamp, u.message
    FROM base_messages b
    JOIN user_messages u ON u.uuid = b.uuid
    WHERE b.session_id = ? AND b.timestamp >= ? AND b.timestamp <= ?
    ORDER BY b.timestamp
"""


@dataclass
class IndexEntry:
    """One session as enumerated by a project's sessions-index.json (or its JSONL file)."""
    session_id: str
    full_path: Path
    project_path: Optional[str]
    created_ms: Optional[int]
    modified_ms: Optional[int]
    first_prompt: str = ""
    summary: Optional[str] = None
    is_sidechain: bool = False

    @property
    def title(self) -> Optional[str]:
        return self.summary or truncate_prompt(self.first_prompt)


@dataclass
class _Transcript:
    """In-window user and assistant records of one JSONL transcript."""
    users: list[dict]
    assistants: list[dict]


@dataclass
class _Content:
    digest: str = ""
    tool_summaries: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)


class ClaudeCodeParser(SessionParser):
    name = ToolName.CLAUDE_CODE

    def __init__(self, claude_home: str | Path):
        self._home = Path(claude_home)

    @property
    def projects_dir(self) -> Path:
        return self._home / "projects"

    @property
    def store_path(self) -> Path:
        return self._home / STORE_FILE

    def is_available(self) -> bool:
        return self.projects_dir.is_dir()

    def _collect(self, window: DayWindow) -> list[Session]:
        db = open_readonly(self.store_path)
        try:
            sessions = []
            for entry in self.iter_entries():
                if entry.is_sidechain:
                    continue
                if not _entry_overlaps(entry, window):
                    continue
                session = self.build_session(entry, window, db)
                if session is not None:
                    sessions.append(session)
            return sessions
        finally:
            if db is not None:
                db.close()

    # -- enumeration ------------------------------------------------------

    def iter_entries(self):
        """Yield an IndexEntry per session across all project directories."""
        for project_dir in sorted(p for p in self.projects_dir.iterdir() if p.is_dir()):
            index_path = project_dir / INDEX_FILE
            if index_path.is_file():
                yield from self._entries_from_index(project_dir, index_path)
            else:
                yield from self._entries_from_transcripts(project_dir)

    def _entries_from_index(self, project_dir: Path, index_path: Path):
        index = as_object(read_json_file(index_path))
        if index is None:
            logger.debug("Skipping unreadable session index %s", index_path)
            return

        raw_entries = [e for e in as_list(index.get("entries")) if isinstance(e, dict)]
        # Directory names encode paths lossily; the recorded projectPath is authoritative
        project_path = None
        if raw_entries:
            project_path = as_str(raw_entries[0].get("projectPath")) or None
        if project_path is None:
            project_path = decode_path(project_dir.name)

        for raw in raw_entries:
            session_id = as_str(raw.get("sessionId"))
            if not session_id:
                continue
            full_path = as_str(raw.get("fullPath"))
            yield IndexEntry(
                session_id=session_id,
                full_path=Path(full_path) if full_path else project_dir / f"{session_id}.jsonl",
                project_path=as_str(raw.get("projectPath")) or project_path,
                created_ms=parse_timestamp_ms(raw.get("created")),
                modified_ms=parse_timestamp_ms(raw.get("modified")),
                first_prompt=as_str(raw.get("firstPrompt")) or "",
                summary=as_str(raw.get("summary")) or None,
                is_sidechain=raw.get("isSidechain") is True,
            )

    def _entries_from_transcripts(self, project_dir: Path):
        for path in sorted(project_dir.glob("*.jsonl")):
            first_ms = last_ms = None
            cwd = None
            sidechain = False
            for raw in stream_records(path):
                ts = parse_timestamp_ms(raw.get("timestamp"))
                if ts is not None:
                    first_ms = ts if first_ms is None else min(first_ms, ts)
                    last_ms = ts if last_ms is None else max(last_ms, ts)
                if cwd is None:
                    cwd = as_str(raw.get("cwd")) or None
                if raw.get("isSidechain") is True and raw.get("parentUuid") is None:
                    sidechain = True
            if first_ms is None:
                continue
            yield IndexEntry(
                session_id=path.stem,
                full_path=path,
                project_path=cwd or decode_path(project_dir.name),
                created_ms=first_ms,
                modified_ms=last_ms,
                first_prompt=extract_first_user_message(path),
                is_sidechain=sidechain,
            )

    # -- building ---------------------------------------------------------

    def build_session(
        self, entry: IndexEntry, window: DayWindow, db: ReadonlyDatabase | None
    ) -> Session | None:
        """Store first, transcript second; the first strategy with messages wins."""
        if db is not None:
            session = self._from_store(entry, window, db)
            if session is not None:
                return session
        return self._from_transcript(entry, window)

    def _from_store(self, entry: IndexEntry, window: DayWindow, db: ReadonlyDatabase) -> Session | None:
        try:
            assistant_rows = db.all(_ASSISTANT_ROWS_SQL, entry.session_id, window.start_ms, window.end_ms)
            user_rows = db.all(_USER_ROWS_SQL, entry.session_id, window.start_ms, window.end_ms)
        except sqlite3.Error as e:
            logger.debug("Store lookup failed for %s: %s", entry.session_id, e)
            return None

        assistants = dedupe_last(
            [(row, as_object(decode_json_value(row["message"])) or {}) for row in assistant_rows],
            key=lambda pair: as_str(pair[1].get("id")) or None,
        )
        users = [
            row for row in user_rows
            if not is_tool_result_only(dig(decode_json_value(row["message"]), "content"))
        ]
        if not assistants and not users:
            return None

        tokens = TokenUsage()
        cost = 0.0
        duration = 0
        models: dict[str, None] = {}
        for row, message in assistants:
            cost += float(row["cost_usd"] or 0)
            if row["duration_ms"]:
                duration += min(int(row["duration_ms"]), MAX_GAP_MS)
            model = row["model"] or as_str(message.get("model"))
            if model:
                models[model] = None
            tokens = tokens + _usage(message.get("usage"))

        model_list = list(models)
        if cost == 0 and tokens.total > 0:
            cost = estimate_cost(model_list[0] if model_list else None, tokens)

        timestamps = [row["timestamp"] for row, _ in assistants] + [row["timestamp"] for row in users]
        content = self._content(self._read_transcript(entry.full_path, window))

        return self._session(
            entry,
            window,
            timestamps=timestamps,
            duration_ms=duration,
            user_count=len(users),
            assistant_count=len(assistants),
            tokens=tokens,
            cost=cost,
            models=model_list,
            content=content,
        )

    def _from_transcript(self, entry: IndexEntry, window: DayWindow) -> Session | None:
        if not entry.full_path.is_file():
            return None

        transcript = self._read_transcript(entry.full_path, window)
        users = [r for r in transcript.users if is_real_user_message(r)]
        if not users and not transcript.assistants:
            return None

        tokens = TokenUsage()
        models: dict[str, None] = {}
        for record in transcript.assistants:
            message = record["message"]
            model = as_str(message.get("model"))
            if model:
                models[model] = None
            tokens = tokens + _usage(message.get("usage"))

        model_list = list(models)
        cost = estimate_cost(model_list[0] if model_list else None, tokens) if tokens.total > 0 else 0.0

        timestamps = [
            parse_timestamp_ms(r.get("timestamp"))
            for r in transcript.users + transcript.assistants
        ]

        return self._session(
            entry,
            window,
            timestamps=timestamps,
            duration_ms=estimate_duration_ms(ts for ts in timestamps if ts is not None),
            user_count=len(users),
            assistant_count=len(transcript.assistants),
            tokens=tokens,
            cost=cost,
            models=model_list,
            content=self._content(transcript),
        )

    def _session(
        self,
        entry: IndexEntry,
        window: DayWindow,
        timestamps: list[Any],
        duration_ms: int,
        user_count: int,
        assistant_count: int,
        tokens: TokenUsage,
        cost: float,
        models: list[str],
        content: _Content,
    ) -> Session:
        known = [t for t in (parse_timestamp_ms(ts) for ts in timestamps) if t is not None]
        start = window.clamp(min(known)) if known else window.start_ms
        end = window.clamp(max(known)) if known else start
        return Session(
            id=entry.session_id,
            tool=self.name,
            project_path=entry.project_path,
            project_name=project_name_from_path(entry.project_path),
            title=entry.title,
            start_ms=start,
            end_ms=end,
            duration_ms=duration_ms,
            message_count=user_count + assistant_count,
            user_message_count=user_count,
            assistant_message_count=assistant_count,
            summary=entry.summary,
            topics=[entry.summary] if entry.summary else [],
            tokens=tokens,
            cost_usd=cost,
            models=models,
            files_touched=content.files,
            conversation_digest=content.digest,
            tool_call_summaries=content.tool_summaries,
        )

    # -- transcripts ------------------------------------------------------

    def _read_transcript(self, path: Path, window: DayWindow) -> _Transcript:
        users, assistants = [], []
        for raw in read_records(path):
            if not window.contains(parse_timestamp_ms(raw.get("timestamp"))):
                continue
            if raw.get("type") == MessageType.USER and isinstance(raw.get("message"), dict):
                users.append(raw)
            elif is_assistant_message(raw):
                assistants.append(raw)
        assistants = dedupe_last(assistants, key=lambda r: as_str(r["message"].get("id")) or None)
        return _Transcript(users=users, assistants=assistants)

    def _content(self, transcript: _Transcript) -> _Content:
        timeline = sorted(
            transcript.users + transcript.assistants,
            key=lambda r: parse_timestamp_ms(r.get("timestamp")) or 0,
        )

        chats: list[ChatEvent] = []
        tools: list[ToolEvent] = []
        for record in timeline:
            ts = parse_timestamp_ms(record.get("timestamp")) or 0
            content = record["message"].get("content")
            if record.get("type") == MessageType.USER:
                if not is_real_user_message(record):
                    continue
                text = extract_user_text(content)
                if text:
                    chats.append(ChatEvent(ts, Role.USER, text))
                continue

            text = extract_assistant_text(content)
            if text:
                chats.append(ChatEvent(ts, Role.ASSISTANT, text))
            for block in as_list(content):
                if isinstance(block, dict) and block.get("type") == "tool_use":
                    name = as_str(block.get("name"))
                    if name:
                        tools.append(ToolEvent(ts, name, block.get("input") or {}))

        files: list[str] = []
        for tool in tools:
            files.extend(extract_files_from_args(tool.args))

        return _Content(
            digest=build_digest(chats),
            tool_summaries=summarize_tool_calls((t.name, t.args) for t in tools),
            files=unique(files),
        )


def _entry_overlaps(entry: IndexEntry, window: DayWindow) -> bool:
    created, modified = entry.created_ms, entry.modified_ms
    if created is None and modified is None:
        return False
    if created is None:
        created = modified
    if modified is None:
        modified = created
    return window.overlaps(created, modified)


def _usage(raw: Any) -> TokenUsage:
    usage = as_object(raw)
    if usage is None:
        return TokenUsage()
    return TokenUsage.of(
        input=as_int(usage.get("input_tokens")),
        output=as_int(usage.get("output_tokens")),
        cache_read=as_int(usage.get("cache_read_input_tokens")),
        cache_write=as_int(usage.get("cache_creation_input_tokens")),
    )
