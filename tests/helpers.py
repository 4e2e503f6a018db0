"""Shared test helpers."""

import sqlite3
from datetime import datetime
from pathlib import Path

import orjson

from devday.types.messages import TokenUsage
from devday.types.sessions import Session, ToolName

DATE = "2026-03-10"


def at(hour: int, minute: int = 0, second: int = 0, day: int = 10) -> datetime:
    """Naive local datetime on the test day (or another day of the same month)."""
    return datetime(2026, 3, day, hour, minute, second)


def ms(dt: datetime) -> int:
    return int(round(dt.timestamp() * 1000))


def iso(dt: datetime) -> str:
    """ISO-8601 string with the local UTC offset, as the tools write them."""
    return dt.astimezone().isoformat()


def write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(data))
    return path


def write_jsonl(path: Path, records: list) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [orjson.dumps(r).decode("utf-8") if not isinstance(r, str) else r for r in records]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def write_kv_db(path: Path, rows: dict) -> Path:
    """Create a Cursor-style state.vscdb holding the given key -> JSON value rows."""
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    try:
        conn.execute("CREATE TABLE cursorDiskKV (key TEXT UNIQUE ON CONFLICT REPLACE, value BLOB)")
        conn.executemany(
            "INSERT INTO cursorDiskKV (key, value) VALUES (?, ?)",
            [(key, orjson.dumps(value)) for key, value in rows.items()],
        )
        conn.commit()
    finally:
        conn.close()
    return path


def make_session(
    id: str = "s1",
    tool: ToolName = ToolName.CODEX,
    project_path: str | None = "/repo/app",
    cost: float = 0.0,
    tokens: TokenUsage | None = None,
    start_ms: int | None = None,
    **kwargs,
) -> Session:
    start = start_ms if start_ms is not None else ms(at(9))
    return Session(
        id=id,
        tool=tool,
        project_path=project_path,
        project_name=project_path.rstrip("/").rsplit("/", 1)[-1] if project_path else None,
        title=kwargs.pop("title", f"Session {id}"),
        start_ms=start,
        end_ms=kwargs.pop("end_ms", start + 60_000),
        cost_usd=cost,
        tokens=tokens or TokenUsage(),
        **kwargs,
    )
