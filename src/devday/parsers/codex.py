"""Codex CLI rollout logs (~/.codex/sessions)."""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import orjson

from devday.parsers.base import SessionParser
from devday.services.jsonl_parser import parse_timestamp_ms, read_json_file, read_records
from devday.types.messages import ChatEvent, Role, TokenSnapshot, TokenUsage, ToolEvent
from devday.types.sessions import Session, ToolName
from devday.utils.cost import estimate_cost
from devday.utils.day_window import DayWindow
from devday.utils.digest import build_digest, infer_title
from devday.utils.duration import estimate_duration_ms
from devday.utils.json_fields import as_int, as_list, as_object, as_str, first_str
from devday.utils.path_codec import project_name_from_path
from devday.utils.token_delta import compute_day_token_usage
from devday.utils.tool_calls import extract_files_from_args, summarize_tool_calls

logger = logging.getLogger(__name__)

SESSION_SUFFIXES = (".jsonl", ".json")

_CWD_TAG_RE = re.compile(r"<cwd>([^<]+)</cwd>")


@dataclass
class _RolloutScan:
    """Everything collected from one pass over a rollout file."""
    session_id: Optional[str] = None
    project_path: Optional[str] = None
    models: dict[str, None] = field(default_factory=dict)
    event_chats: list[ChatEvent] = field(default_factory=list)
    legacy_chats: list[ChatEvent] = field(default_factory=list)
    tool_events: list[ToolEvent] = field(default_factory=list)
    snapshots: list[TokenSnapshot] = field(default_factory=list)
    earliest: Optional[int] = None
    latest: Optional[int] = None

    def see(self, ts: Optional[int]) -> None:
        if ts is None:
            return
        self.earliest = ts if self.earliest is None else min(self.earliest, ts)
        self.latest = ts if self.latest is None else max(self.latest, ts)

    def hint_cwd(self, path: Optional[str]) -> None:
        if path and not self.project_path:
            self.project_path = path

    def chats(self) -> list[ChatEvent]:
        # The modern event stream wins; the message array is only a fallback
        for strategy in (self.event_chats, self.legacy_chats):
            if strategy:
                return strategy
        return []


class CodexParser(SessionParser):
    name = ToolName.CODEX

    def __init__(self, codex_home: str | Path):
        self._home = Path(codex_home)

    @property
    def sessions_dir(self) -> Path:
        return self._home / "sessions"

    def is_available(self) -> bool:
        return self.sessions_dir.is_dir()

    def _collect(self, window: DayWindow) -> list[Session]:
        sessions = []
        for path in self.find_session_files(window.date):
            if path.suffix == ".jsonl":
                session = self._parse_rollout(path, window)
            else:
                session = self._parse_legacy_json(path, window)
            if session is not None:
                sessions.append(session)
        return sessions

    def find_session_files(self, date: str) -> list[Path]:
        """Session files for a date: sessions/YYYY/MM/DD/* plus legacy rollout-<date>* at the root."""
        root = self.sessions_dir
        if not root.is_dir():
            return []

        year, month, day = date.split("-")
        files: set[Path] = set()

        day_dir = root / year / month / day
        if day_dir.is_dir():
            for entry in day_dir.iterdir():
                if entry.is_file() and entry.name.endswith(SESSION_SUFFIXES):
                    files.add(entry)

        for entry in root.iterdir():
            if not entry.is_file():
                continue
            if entry.name.startswith(f"rollout-{date}") and entry.name.endswith(SESSION_SUFFIXES):
                files.add(entry)

        return sorted(files)

    # -- JSONL rollouts ---------------------------------------------------

    def _parse_rollout(self, path: Path, window: DayWindow) -> Session | None:
        records = read_records(path)
        if not records:
            return None

        header_ts = _entry_timestamp(records[0])
        fallback_ts = header_ts if header_ts is not None else window.start_ms

        scan = _RolloutScan()
        for entry in records:
            self._scan_entry(scan, entry, fallback_ts)

        if scan.earliest is None or scan.latest is None:
            if header_ts is None:
                return None
            scan.earliest = scan.latest = header_ts

        if not window.overlaps(scan.earliest, scan.latest):
            return None

        chats = scan.chats()
        day_chats = [c for c in chats if window.contains(c.ts)]
        day_tools = [t for t in scan.tool_events if window.contains(t.ts)]
        if not day_chats:
            return None

        project_path = (
            scan.project_path
            or _project_from_tool_calls(day_tools)
            or _project_from_tool_calls(scan.tool_events)
        )

        tokens = compute_day_token_usage(scan.snapshots, window)
        models = list(scan.models)
        cost = estimate_cost(models[0] if models else None, tokens) if tokens.total > 0 else 0.0

        timestamps = sorted([c.ts for c in day_chats] + [t.ts for t in day_tools])
        title = infer_title(chats)

        return Session(
            id=scan.session_id or _id_from_filename(path),
            tool=self.name,
            project_path=project_path,
            project_name=project_name_from_path(project_path),
            title=title,
            start_ms=window.clamp(timestamps[0]),
            end_ms=window.clamp(timestamps[-1]),
            duration_ms=estimate_duration_ms(timestamps),
            message_count=len(day_chats),
            user_message_count=sum(1 for c in day_chats if c.role == Role.USER),
            assistant_message_count=sum(1 for c in day_chats if c.role == Role.ASSISTANT),
            summary=title,
            topics=[title] if title else [],
            tokens=tokens,
            cost_usd=cost,
            models=models,
            files_touched=_files_from_tools(day_tools),
            conversation_digest=build_digest(day_chats, normalize=True),
            tool_call_summaries=summarize_tool_calls((t.name, t.args) for t in day_tools),
        )

    def _scan_entry(self, scan: _RolloutScan, entry: dict, fallback_ts: int) -> None:
        ts = _entry_timestamp(entry)
        scan.see(ts)

        entry_type = as_str(entry.get("type"))
        payload = as_object(entry.get("payload")) or {}

        if not scan.session_id:
            scan.session_id = as_str(entry.get("id")) or None

        if entry_type == "session_meta":
            scan.session_id = as_str(payload.get("id")) or scan.session_id
            cwd = as_str(payload.get("cwd"))
            if cwd:
                scan.project_path = cwd

        elif entry_type == "turn_context":
            model = as_str(payload.get("model"))
            if model:
                scan.models[model] = None
            scan.hint_cwd(as_str(payload.get("cwd")))

        elif entry_type == "event_msg":
            self._scan_event(scan, payload, ts)

        elif entry_type == "response_item":
            payload_type = as_str(payload.get("type"))
            if payload_type == "function_call" and ts is not None:
                name = as_str(payload.get("name"))
                if name:
                    scan.tool_events.append(ToolEvent(ts, name, _decode_args(payload.get("arguments"))))
            elif payload_type == "message" and ts is not None:
                self._scan_legacy_message(scan, payload, ts)

        # Oldest format: message and function_call items at the top level
        elif entry_type == "message":
            self._scan_legacy_message(scan, entry, ts if ts is not None else fallback_ts)

        elif entry_type == "function_call":
            name = as_str(entry.get("name"))
            if name:
                scan.tool_events.append(ToolEvent(
                    ts if ts is not None else fallback_ts,
                    name,
                    _decode_args(entry.get("arguments")),
                ))

    def _scan_event(self, scan: _RolloutScan, payload: dict, ts: int | None) -> None:
        event_type = as_str(payload.get("type"))
        if event_type in ("user_message", "agent_message"):
            message = as_str(payload.get("message"))
            if not message or ts is None:
                return
            role = Role.USER if event_type == "user_message" else Role.ASSISTANT
            scan.event_chats.append(ChatEvent(ts, role, message))
            if role == Role.USER:
                scan.hint_cwd(_cwd_from_text(message))
        elif event_type == "token_count":
            snapshot = _token_snapshot(payload, ts)
            if snapshot is not None:
                scan.snapshots.append(snapshot)

    def _scan_legacy_message(self, scan: _RolloutScan, obj: dict, ts: int) -> None:
        role = _role(obj.get("role"))
        text = _message_text(obj.get("content"))
        if role is None or not text:
            return
        scan.legacy_chats.append(ChatEvent(ts, role, text))
        if role == Role.USER:
            scan.hint_cwd(_cwd_from_text(text))

    # -- legacy single-document sessions ----------------------------------

    def _parse_legacy_json(self, path: Path, window: DayWindow) -> Session | None:
        root = as_object(read_json_file(path))
        if root is None:
            return None

        session_obj = as_object(root.get("session")) or {}
        session_ts = parse_timestamp_ms(session_obj.get("timestamp"))
        if not window.contains(session_ts):
            return None

        scan = _RolloutScan()
        for item in as_list(root.get("items")):
            obj = as_object(item)
            if obj is None:
                continue
            item_type = as_str(obj.get("type"))
            if item_type == "message":
                self._scan_legacy_message(scan, obj, session_ts)
            elif item_type == "function_call":
                name = as_str(obj.get("name"))
                if name:
                    scan.tool_events.append(ToolEvent(session_ts, name, _decode_args(obj.get("arguments"))))

        chats = scan.legacy_chats
        if not chats:
            return None

        project_path = scan.project_path or _project_from_tool_calls(scan.tool_events)
        title = infer_title(chats)

        return Session(
            id=as_str(session_obj.get("id")) or _id_from_filename(path),
            tool=self.name,
            project_path=project_path,
            project_name=project_name_from_path(project_path),
            title=title,
            start_ms=session_ts,
            end_ms=session_ts,
            duration_ms=0,
            message_count=len(chats),
            user_message_count=sum(1 for c in chats if c.role == Role.USER),
            assistant_message_count=sum(1 for c in chats if c.role == Role.ASSISTANT),
            summary=title,
            topics=[title] if title else [],
            tokens=TokenUsage(),
            cost_usd=0.0,
            models=[],
            files_touched=_files_from_tools(scan.tool_events),
            conversation_digest=build_digest(chats, normalize=True),
            tool_call_summaries=summarize_tool_calls((t.name, t.args) for t in scan.tool_events),
        )


def _entry_timestamp(entry: Any) -> int | None:
    obj = as_object(entry)
    if obj is None:
        return None
    ts = parse_timestamp_ms(as_str(obj.get("timestamp")))
    if ts is not None:
        return ts
    payload = as_object(obj.get("payload"))
    return parse_timestamp_ms(as_str(payload.get("timestamp"))) if payload else None


def _token_snapshot(payload: dict, ts: int | None) -> TokenSnapshot | None:
    if ts is None:
        return None
    totals = as_object((as_object(payload.get("info")) or {}).get("total_token_usage"))
    if totals is None:
        return None
    return TokenSnapshot(
        ts=ts,
        input=as_int(totals.get("input_tokens")),
        cached_input=as_int(totals.get("cached_input_tokens")),
        output=as_int(totals.get("output_tokens")),
        reasoning=as_int(totals.get("reasoning_output_tokens")),
    )


def _role(value: Any) -> Role | None:
    if value == "user":
        return Role.USER
    if value == "assistant":
        return Role.ASSISTANT
    return None


def _message_text(content: Any) -> str | None:
    if isinstance(content, str):
        return content
    texts = []
    for block in as_list(content):
        text = first_str(block, "text", "content")
        if text:
            texts.append(text)
    return "\n".join(texts) if texts else None


def _decode_args(args: Any) -> Any:
    if not isinstance(args, str):
        return args
    try:
        return orjson.loads(args)
    except orjson.JSONDecodeError:
        return args


def _cwd_from_text(text: str) -> str | None:
    match = _CWD_TAG_RE.search(text)
    return match.group(1).strip() if match else None


def _project_from_tool_calls(tools: list[ToolEvent]) -> str | None:
    for tool in tools:
        cwd = first_str(tool.args, "workdir", "cwd")
        if cwd:
            return cwd
    return None


def _files_from_tools(tools: list[ToolEvent]) -> list[str]:
    files: dict[str, None] = {}
    for tool in tools:
        for file in extract_files_from_args(tool.args):
            files[file] = None
    return list(files)


def _id_from_filename(path: Path) -> str:
    return path.name.removesuffix(".jsonl").removesuffix(".json")
