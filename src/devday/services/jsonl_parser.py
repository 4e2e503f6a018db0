"""Streaming JSONL/JSON readers and timestamp parsing for tool-owned logs."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator

import orjson

from devday.utils.content_sanitizer import extract_user_text
from devday.utils.message_classifier import is_real_user_message

logger = logging.getLogger(__name__)

# Max size for a single JSONL line (10MB)
MAX_LINE_SIZE = 10 * 1024 * 1024


def stream_records(file_path: str | Path) -> Iterator[dict]:
    """Stream-parse a JSONL file, yielding each line that decodes to an object.

    Malformed lines are logged and skipped.
    Lines exceeding MAX_LINE_SIZE are skipped with a warning.
    """
    path = Path(file_path)
    try:
        f = open(path, "r", encoding="utf-8", errors="replace")
    except OSError as e:
        logger.debug("Cannot open %s: %s", path, e)
        return

    with f:
        line_num = 0
        try:
            for line in f:
                line_num += 1
                line = line.strip()
                if not line:
                    continue

                if len(line) > MAX_LINE_SIZE:
                    logger.warning(
                        "Line %d in %s exceeds %dMB, skipping",
                        line_num, path.name, MAX_LINE_SIZE // (1024 * 1024),
                    )
                    continue

                try:
                    raw = orjson.loads(line)
                except orjson.JSONDecodeError as e:
                    logger.debug("Malformed JSON at line %d in %s: %s", line_num, path.name, e)
                    continue

                if isinstance(raw, dict):
                    yield raw
        except OSError as e:
            logger.debug("Read error in %s after line %d: %s", path.name, line_num, e)


def read_records(file_path: str | Path) -> list[dict]:
    """Parse an entire JSONL file into a list of objects."""
    return list(stream_records(file_path))


def read_json_file(file_path: str | Path) -> Any:
    """Load one JSON document, or None if it is missing or corrupt."""
    path = Path(file_path)
    try:
        return orjson.loads(path.read_bytes())
    except (OSError, orjson.JSONDecodeError) as e:
        logger.debug("Skipping unreadable JSON %s: %s", path, e)
        return None


def decode_json_value(value: Any) -> Any:
    """Decode a str/bytes column holding JSON, or None if it does not decode."""
    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value)
    elif not isinstance(value, str):
        return None
    try:
        return orjson.loads(value)
    except orjson.JSONDecodeError:
        return None


def parse_timestamp_ms(ts_value: Any) -> int | None:
    """Parse a timestamp from various formats into ms since the epoch.

    Numbers above 1e12 are taken as milliseconds, smaller ones as seconds.
    ISO strings without an offset are local time.
    """
    if isinstance(ts_value, bool):
        return None
    if isinstance(ts_value, (int, float)):
        if ts_value <= 0:
            return None
        return int(ts_value if ts_value > 1e12 else ts_value * 1000)
    if isinstance(ts_value, str) and ts_value:
        text = ts_value.strip()
        try:
            # ISO 8601 format: "2026-02-13T12:00:00.000Z"
            return int(datetime.fromisoformat(text.replace("Z", "+00:00")).timestamp() * 1000)
        except ValueError:
            pass
        try:
            return parse_timestamp_ms(float(text))
        except (ValueError, OverflowError):
            pass
    return None


def extract_first_user_message(file_path: str | Path, max_lines: int = 100) -> str:
    """Extract the first real user message text from a Claude Code session file.

    Reads at most max_lines to find it.
    """
    for line_count, raw in enumerate(stream_records(file_path), start=1):
        if line_count > max_lines:
            break
        if not is_real_user_message(raw):
            continue
        message = raw.get("message")
        if not isinstance(message, dict):
            continue
        text = extract_user_text(message.get("content", ""))
        if text:
            return text[:200]
    return ""
