"""Decode Claude Code project directory names and derive display names."""


def decode_path(encoded: str) -> str:
    """Best-effort decode of a Claude project directory name.

    -home-wiz-AI-LLM -> /home/wiz/AI/LLM

    The encoding is lossy (dashes and dots in real names are indistinguishable
    from separators), so callers prefer a recorded cwd when one exists.
    """
    if not encoded:
        return ""
    return encoded.replace("-", "/")


def project_name_from_path(path: str | None) -> str | None:
    """Get the last path segment as the project display name.

    /home/wiz/AI/LLM -> LLM
    """
    if not path:
        return None
    name = path.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
    return name or None
