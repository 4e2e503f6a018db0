"""Cursor composer conversations from the global state.vscdb key-value store."""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Optional

from devday.parsers.base import SessionParser
from devday.services.jsonl_parser import decode_json_value, parse_timestamp_ms
from devday.services.project_resolver import resolve_project_from_data
from devday.services.readonly_db import ReadonlyDatabase, open_readonly
from devday.types.messages import ChatEvent, Role, TokenUsage
from devday.types.sessions import Session, ToolName
from devday.utils.cost import estimate_cost
from devday.utils.day_window import DayWindow
from devday.utils.dedup import unique
from devday.utils.digest import build_digest
from devday.utils.duration import capped_span_ms, estimate_duration_ms
from devday.utils.json_fields import as_int, as_list, as_object, as_str, dig, first_str
from devday.utils.path_codec import project_name_from_path
from devday.utils.tool_calls import extract_files_from_args, shorten_path, summarize_tool_call

logger = logging.getLogger(__name__)

KV_TABLE = "cursorDiskKV"

BUBBLE_USER = 1
BUBBLE_AI = 2

# Cursor-internal model names mapped to the closest priced model
CURSOR_MODEL_MAP = {
    "composer-1": "gpt-4o",
    "cheetah": "gpt-4o-mini",
    "default": "gpt-4o",
    "gpt-5": "gpt-4o",
    "gpt-5-codex": "gpt-4o",
    "claude-4.5-sonnet-thinking": "claude-3-5-sonnet-20241022",
    "claude-4-sonnet-thinking": "claude-3-5-sonnet-20241022",
    "claude-4.5-opus-high-thinking": "claude-3-opus-20240229",
}


def map_cursor_model(name: str) -> str:
    return CURSOR_MODEL_MAP.get(name, name)


def bubble_timestamp(bubble: dict) -> Optional[int]:
    """Client send time when recorded, else createdAt (ISO or epoch), else None."""
    sent = parse_timestamp_ms(dig(bubble, "timingInfo", "clientRpcSendTime"))
    if sent is not None:
        return sent
    return parse_timestamp_ms(bubble.get("createdAt"))


class CursorParser(SessionParser):
    name = ToolName.CURSOR

    def __init__(self, db_path: str | Path):
        self._db_path = Path(db_path)

    def is_available(self) -> bool:
        return self._db_path.is_file()

    def _collect(self, window: DayWindow) -> list[Session]:
        db = open_readonly(self._db_path)
        if db is None:
            return []
        with db:
            if not db.has_table(KV_TABLE):
                logger.debug("%s has no %s table", self._db_path, KV_TABLE)
                return []

            sessions = []
            for composer in self._iter_composers(db):
                created = as_int(composer.get("createdAt"))
                updated = as_int(composer.get("lastUpdatedAt")) or created
                if not window.overlaps(created, updated):
                    continue

                bubbles = self.load_bubbles(db, composer, window)
                if not bubbles:
                    continue
                sessions.append(self._build_session(composer, bubbles, window))
            return sessions

    def _iter_composers(self, db: ReadonlyDatabase):
        try:
            rows = db.all(f"SELECT key, value FROM {KV_TABLE} WHERE key LIKE 'composerData:%'")
        except sqlite3.Error as e:
            logger.warning("Cannot list Cursor composers: %s", e)
            return
        for row in rows:
            composer = as_object(decode_json_value(row["value"]))
            if composer is None or not as_str(composer.get("composerId")):
                continue
            yield composer

    # -- bubbles ----------------------------------------------------------

    def load_bubbles(self, db: ReadonlyDatabase, composer: dict, window: DayWindow) -> list[dict]:
        """In-window bubbles of a composer, in conversation order.

        Older composers carry their bubbles inline; newer ones keep one KV
        row per bubble, ordered by the composer's header list.
        """
        for strategy in (self._inline_bubbles, self._kv_bubbles):
            bubbles = [b for b in strategy(db, composer) if _bubble_in_window(b, window)]
            if bubbles:
                return bubbles
        return []

    def _inline_bubbles(self, db: ReadonlyDatabase, composer: dict) -> list[dict]:
        return [
            b for b in as_list(composer.get("conversation"))
            if isinstance(b, dict) and b.get("type")
        ]

    def _kv_bubbles(self, db: ReadonlyDatabase, composer: dict) -> list[dict]:
        headers = [h for h in as_list(composer.get("fullConversationHeadersOnly")) if isinstance(h, dict)]
        if not headers:
            return []

        composer_id = composer["composerId"]
        prefix = f"bubbleId:{composer_id}:"
        by_id: dict[str, dict] = {}
        try:
            rows = db.all(f"SELECT key, value FROM {KV_TABLE} WHERE key LIKE ?", prefix + "%")
        except sqlite3.Error as e:
            logger.debug("Cannot load bubbles for %s: %s", composer_id, e)
            rows = []
        for row in rows:
            bubble = as_object(decode_json_value(row["value"]))
            bubble_id = str(row["key"])[len(prefix):]
            if bubble is not None and bubble_id:
                by_id[bubble_id] = bubble

        # Some composers still carry part of the map inline
        for bubble_id, bubble in (as_object(composer.get("conversationMap")) or {}).items():
            if isinstance(bubble, dict) and bubble_id not in by_id:
                by_id[bubble_id] = bubble

        ordered = []
        for header in headers:
            bubble = by_id.get(as_str(header.get("bubbleId")) or "")
            if bubble is not None and bubble.get("type"):
                ordered.append(bubble)
        return ordered

    # -- session ----------------------------------------------------------

    def _build_session(self, composer: dict, bubbles: list[dict], window: DayWindow) -> Session:
        user_bubbles = [b for b in bubbles if b.get("type") == BUBBLE_USER]
        ai_bubbles = [b for b in bubbles if b.get("type") == BUBBLE_AI]
        composer_model = as_str(dig(composer, "modelConfig", "modelName"))

        models: dict[str, None] = {}
        for bubble in ai_bubbles:
            model = as_str(dig(bubble, "modelInfo", "modelName")) or composer_model
            if model:
                models[model] = None
        if not models and composer_model:
            models[composer_model] = None
        raw_models = list(models)

        tokens = TokenUsage.of(
            input=sum(as_int(dig(b, "tokenCount", "inputTokens")) for b in ai_bubbles),
            output=sum(as_int(dig(b, "tokenCount", "outputTokens")) for b in ai_bubbles),
        )
        cost = 0.0
        if tokens.total > 0:
            cost = estimate_cost(map_cursor_model(raw_models[0]) if raw_models else None, tokens)

        timestamps = [ts for ts in (bubble_timestamp(b) for b in bubbles) if ts is not None]
        duration = sum(
            capped_span_ms(
                parse_timestamp_ms(dig(b, "timingInfo", "clientRpcSendTime")),
                parse_timestamp_ms(dig(b, "timingInfo", "clientEndTime")),
            )
            for b in ai_bubbles
        )
        if duration == 0:
            duration = estimate_duration_ms(timestamps)

        if timestamps:
            start, end = min(timestamps), max(timestamps)
        else:
            start = as_int(composer.get("createdAt")) or window.start_ms
            end = as_int(composer.get("lastUpdatedAt")) or window.end_ms

        first_cwd = next((as_str(b.get("cwd")) for b in bubbles if as_str(b.get("cwd"))), None)
        project_path = resolve_project_from_data(bubbles, composer) or first_cwd

        chats, summaries, files = self._extract_content(bubbles)
        name = as_str(composer.get("name")) or None
        subtitle = as_str(composer.get("subtitle")) or None

        return Session(
            id=composer["composerId"],
            tool=self.name,
            project_path=project_path,
            project_name=project_name_from_path(project_path),
            title=name,
            start_ms=window.clamp(start),
            end_ms=window.clamp(max(start, end)),
            duration_ms=duration,
            message_count=len(bubbles),
            user_message_count=len(user_bubbles),
            assistant_message_count=len(ai_bubbles),
            summary=name,
            topics=[t for t in (name, subtitle) if t],
            tokens=tokens,
            cost_usd=cost,
            models=unique(map_cursor_model(m) for m in raw_models),
            files_touched=files,
            conversation_digest=build_digest(chats),
            tool_call_summaries=summaries,
        )

    def _extract_content(self, bubbles: list[dict]) -> tuple[list[ChatEvent], list[str], list[str]]:
        chats: list[ChatEvent] = []
        summaries: list[str] = []
        files: list[str] = []

        for bubble in bubbles:
            ts = bubble_timestamp(bubble) or 0
            text = as_str(bubble.get("text"))
            if text and text.strip():
                role = Role.USER if bubble.get("type") == BUBBLE_USER else Role.ASSISTANT
                chats.append(ChatEvent(ts, role, text))

            for block in as_list(bubble.get("codeBlocks")):
                path = first_str(dig(block, "uri"), "fsPath", "path")
                if path:
                    files.append(path)
                    summaries.append(f"edit {shorten_path(path)}")

            tool = as_object(bubble.get("toolFormerData"))
            if tool is not None:
                tool_name = as_str(tool.get("name"))
                args = _tool_args(tool)
                if tool_name:
                    summaries.append(summarize_tool_call(tool_name, args))
                files.extend(extract_files_from_args(args))

        return chats, unique(summaries), unique(files)


def _bubble_in_window(bubble: dict, window: DayWindow) -> bool:
    # Bubbles without any timestamp belong to an already day-filtered composer
    ts = bubble_timestamp(bubble)
    return ts is None or window.contains(ts)


def _tool_args(tool: dict) -> Any:
    for key in ("rawArgs", "params"):
        value = tool.get(key)
        if isinstance(value, str):
            decoded = decode_json_value(value)
            if decoded is not None:
                return decoded
        elif isinstance(value, dict):
            return value
    return {}
