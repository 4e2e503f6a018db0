"""Strip tool-internal markup from message text before digesting it."""

import re

_INTERNAL_TAGS = (
    "system-reminder",
    "local-command-caveat",
    "local-command-stdout",
    "command-name",
    "command-message",
    "command-args",
    "teammate-message",
)

_TAG_PATTERNS = [
    re.compile(rf"<{tag}\b[^>]*>.*?</{tag}>", re.DOTALL) for tag in _INTERNAL_TAGS
]
_BLANK_RUNS_RE = re.compile(r"\n{3,}")


def sanitize_content(text: str) -> str:
    """Remove internal markup blocks and the blank runs they leave behind."""
    if not text:
        return ""
    result = text
    for pattern in _TAG_PATTERNS:
        result = pattern.sub("", result)
    result = _BLANK_RUNS_RE.sub("\n\n", result)
    return result.strip()


def extract_user_text(content) -> str:
    """Extract the human-typed text from string or block-list content.

    Tool results are not user text and are ignored.
    """
    if isinstance(content, str):
        return sanitize_content(content)
    if isinstance(content, list):
        texts = []
        for block in content:
            if isinstance(block, dict) and block.get("type") == "text":
                text = block.get("text")
                if isinstance(text, str):
                    texts.append(text)
            elif isinstance(block, str):
                texts.append(block)
        return sanitize_content("\n".join(texts))
    return ""


def extract_assistant_text(content) -> str:
    """Join the text blocks of assistant content; thinking and tool_use are skipped."""
    if isinstance(content, str):
        return content.strip()
    if not isinstance(content, list):
        return ""
    parts = []
    for block in content:
        if isinstance(block, dict) and block.get("type") == "text":
            text = block.get("text")
            if isinstance(text, str) and text:
                parts.append(text)
    return "\n".join(parts).strip()
