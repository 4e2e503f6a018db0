"""Classify Claude Code JSONL records for counting and digesting."""

from devday.types.messages import MessageType


def is_tool_result_only(content) -> bool:
    """True for user content made solely of tool_result blocks (fed back, not typed)."""
    if not isinstance(content, list) or not content:
        return False
    return all(
        isinstance(block, dict) and block.get("type") == "tool_result"
        for block in content
    )


def is_real_user_message(raw: dict) -> bool:
    """Quick check: is this a human-typed message?"""
    if raw.get("isMeta", False) or raw.get("isCompactSummary", False):
        return False
    if raw.get("type") != MessageType.USER:
        return False
    message = raw.get("message")
    content = message.get("content") if isinstance(message, dict) else None
    return not is_tool_result_only(content)


def is_assistant_message(raw: dict) -> bool:
    """Quick check: is this an AI response message?"""
    message = raw.get("message", {})
    role = message.get("role", "") if isinstance(message, dict) else ""
    return raw.get("type") == MessageType.ASSISTANT and role == "assistant"
