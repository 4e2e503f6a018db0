"""Conversation digests and title inference."""

import re
from typing import Iterable, Optional

from devday.types.messages import ChatEvent, Role

MAX_MESSAGE_CHARS = 500
MAX_DIGEST_CHARS = 4000
MAX_TITLE_CHARS = 100
TRUNCATION_MARKER = "\n\n[...truncated]"

# Boilerplate user turns injected by agent harnesses, not typed by a person
WRAPPER_PREFIXES = (
    "# AGENTS.md instructions",
    "<environment_context>",
    "<permissions instructions>",
    "<app-context>",
    "<INSTRUCTIONS>",
    "<user_instructions>",
)

_WHITESPACE_RE = re.compile(r"\s+")


def is_wrapper_message(text: str) -> bool:
    return text.strip().startswith(WRAPPER_PREFIXES)


def clip(text: str, limit: int, marker: str = "...") -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def build_digest(chats: Iterable[ChatEvent], normalize: bool = False) -> str:
    """Concatenate role-tagged messages, given in chronological order.

    Each message is clipped to MAX_MESSAGE_CHARS and the whole digest to
    MAX_DIGEST_CHARS. Wrapper preambles on the user side are skipped.
    """
    parts = []
    for chat in chats:
        if not chat.text or not chat.text.strip():
            continue
        if chat.role == Role.USER and is_wrapper_message(chat.text):
            continue
        text = collapse_whitespace(chat.text) if normalize else chat.text
        parts.append(f"[{chat.role.value}]: {clip(text, MAX_MESSAGE_CHARS)}")

    digest = "\n\n".join(parts)
    return clip(digest, MAX_DIGEST_CHARS, TRUNCATION_MARKER)


def infer_title(chats: Iterable[ChatEvent], limit: int = MAX_TITLE_CHARS) -> Optional[str]:
    """Title from the first meaningful user message, else the first user message."""
    user_texts = [c.text for c in chats if c.role == Role.USER and c.text]
    if not user_texts:
        return None
    meaningful = next((t for t in user_texts if not is_wrapper_message(t)), user_texts[0])
    normalized = collapse_whitespace(meaningful)
    if not normalized:
        return None
    return clip(normalized, limit)


def truncate_prompt(prompt: Optional[str], limit: int = 60) -> Optional[str]:
    """Single-line prompt preview, ellipsized to fit within limit characters."""
    if not prompt:
        return None
    clean = prompt.replace("\n", " ").strip()
    if not clean:
        return None
    if len(clean) <= limit:
        return clean
    return clean[: limit - 3] + "..."
