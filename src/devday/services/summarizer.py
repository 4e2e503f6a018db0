"""LLM-written project summaries and standup messages.

One request per project plus one for the standup, sent to whichever
provider the configuration prefers. Failures never raise: each call yields
an LlmResult, and the caller gets a list of human-readable warnings.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_cls, timedelta
from enum import Enum
from typing import Any, Optional

import httpx
import orjson

from devday.services.config_manager import DevDayConfig, Summarizer
from devday.types.sessions import DayRecap, ProjectSummary
from devday.utils.dedup import unique
from devday.utils.digest import clip
from devday.utils.json_fields import as_str, dig

logger = logging.getLogger(__name__)

LLM_TIMEOUT_S = 30.0
MAX_TOOL_CALLS_IN_PROMPT = 15
MAX_STANDUP_DIGEST_CHARS = 500
MAX_ERROR_BODY_CHARS = 200

ANTHROPIC_VERSION = "2023-06-01"


class FailureKind(str, Enum):
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    QUOTA = "quota"
    BAD_REQUEST = "bad_request"
    SERVER = "server"
    TIMEOUT = "timeout"
    NETWORK = "network"
    BAD_RESPONSE = "bad_response"


@dataclass
class LlmResult:
    text: Optional[str] = None
    error: Optional[str] = None
    kind: Optional[FailureKind] = None
    retriable: bool = False

    @property
    def ok(self) -> bool:
        return self.text is not None

    @classmethod
    def success(cls, text: str) -> "LlmResult":
        return cls(text=text)

    @classmethod
    def failure(cls, kind: FailureKind, error: str, retriable: bool = False) -> "LlmResult":
        return cls(error=error, kind=kind, retriable=retriable)


@dataclass(frozen=True)
class Provider:
    name: str
    url: str
    model: str
    max_tokens: int


PROVIDERS = {
    Summarizer.CONCENTRATE: Provider("concentrate", "https://api.concentrate.ai/v1/responses", "gpt-5-mini", 600),
    Summarizer.OPENAI: Provider("openai", "https://api.openai.com/v1/responses", "gpt-4o-mini", 400),
    Summarizer.ANTHROPIC: Provider(
        "anthropic", "https://api.anthropic.com/v1/messages", "claude-3-5-haiku-20241022", 400
    ),
}


# ---- prompts ----

def build_project_prompt(project: ProjectSummary) -> str:
    blocks = []
    for s in project.sessions:
        block = (
            f'### Session: "{s.title or "Untitled"}" '
            f"({s.message_count} messages, {round(s.duration_ms / 60_000)}min)\n"
        )
        if s.conversation_digest:
            block += s.conversation_digest
        if s.tool_call_summaries:
            tools = unique(s.tool_call_summaries)[:MAX_TOOL_CALLS_IN_PROMPT]
            block += f"\nTool calls: {', '.join(tools)}"
        blocks.append(block)
    conversation = "\n\n".join(blocks)

    if project.git is not None:
        git_lines = "\n".join(
            f"- {c.short_hash}: {c.message} (+{c.insertions}/-{c.deletions})"
            for c in project.git.commits
        )
    else:
        git_lines = "No git commits"

    return f"""You are writing a daily recap for a developer, summarizing their coding sessions. Write in FIRST PERSON ("I built...", "I fixed...", "I worked on..."). Read the conversation content and write a concise 2-3 sentence summary of what was accomplished. Focus on the specific work done (features built, bugs fixed, refactoring, debugging, etc.), not the tools or process.

Project: {project.project_name}
Duration: {round(project.total_duration_ms / 60_000)} minutes across {project.total_sessions} session(s)

--- Conversation Content ---
{conversation}

--- Git Commits ---
{git_lines}

Write a concise summary (2-3 sentences) in first person. Be specific about what was built/fixed/changed. Do not mention AI tools, session counts, or refer to "the developer"."""


def provider_supports_mcp(summarizer: Summarizer) -> bool:
    return summarizer in (Summarizer.CONCENTRATE, Summarizer.OPENAI)


def has_linear_mcp(config: DevDayConfig) -> bool:
    return provider_supports_mcp(config.preferred_summarizer) and bool(config.linear_mcp_server_url)


def previous_date(date: str) -> str:
    try:
        return (date_cls.fromisoformat(date) - timedelta(days=1)).isoformat()
    except ValueError:
        return date


def build_linear_prompt_block(date: str) -> str:
    return f"""
You have access to a Linear MCP server tool labeled "linear". Before writing the final answer, query Linear and pull:
- tickets created on {date}
- tickets closed/completed on {date} (if empty, check {previous_date(date)})
- tickets currently assigned to me
- tickets currently in active/in-progress states

Use the ticket data to enrich the standup with concrete ticket IDs/titles when possible. After the accomplishment bullets, add:
- one bullet that starts with "Things I'm working on:"
- one bullet that starts with "Things I'm planning to work on:"
If Linear data is unavailable or empty, omit these two bullets."""


def build_standup_prompt(recap: DayRecap, config: DevDayConfig) -> str:
    blocks = []
    for p in recap.projects:
        block = f"## {p.project_name}\n"
        if p.ai_summary:
            block += f"Summary: {p.ai_summary}\n"
        for s in p.sessions:
            if s.conversation_digest:
                block += f'\nSession "{s.title or "Untitled"}":\n'
                block += s.conversation_digest[:MAX_STANDUP_DIGEST_CHARS]
        if p.git is not None and p.git.commits:
            block += f"\nGit: {'; '.join(c.message for c in p.git.commits)}"
        blocks.append(block)
    projects_text = "\n\n".join(blocks)
    linear = build_linear_prompt_block(recap.date) if has_linear_mcp(config) else ""

    return f"""Generate a standup message for what I accomplished today. Write in FIRST PERSON ("I built...", "I fixed...", "I worked on..."). Write 3-5 bullet points using past tense. Be specific about what was done. Group by project. Do not include cost, token, or session count information. Do not use markdown headers. Do not refer to "the developer"; this is my own standup.

{projects_text}
{linear}

Write the standup as bullet points, starting each with "- ". First person, specific, concise."""


# ---- HTTP ----

def describe_http_error(status: int, body: str, provider: str) -> LlmResult:
    detail = clip(body, MAX_ERROR_BODY_CHARS)
    if status in (401, 403):
        return LlmResult.failure(FailureKind.AUTH, f"{provider}: invalid API key ({status})")
    if status == 429:
        return LlmResult.failure(FailureKind.RATE_LIMIT, f"{provider}: rate limited (429), try again shortly", True)
    if status == 402:
        return LlmResult.failure(FailureKind.QUOTA, f"{provider}: insufficient credits (402)")
    if status == 400:
        return LlmResult.failure(FailureKind.BAD_REQUEST, f"{provider}: bad request (400): {detail}")
    if status >= 500:
        return LlmResult.failure(FailureKind.SERVER, f"{provider}: server error ({status}): {detail}", True)
    return LlmResult.failure(FailureKind.BAD_RESPONSE, f"{provider}: HTTP {status}: {detail}")


def describe_exception(exc: httpx.HTTPError, provider: str) -> LlmResult:
    if isinstance(exc, httpx.TimeoutException):
        return LlmResult.failure(
            FailureKind.TIMEOUT, f"{provider}: request timed out after {LLM_TIMEOUT_S:.0f}s", True
        )
    return LlmResult.failure(FailureKind.NETWORK, f"{provider}: network error: {exc}", True)


def extract_response_text(data: Any, provider: str) -> LlmResult:
    """Text of a Responses API payload: output_text, else the message output blocks."""
    if not isinstance(data, dict):
        return LlmResult.failure(FailureKind.BAD_RESPONSE, f"{provider}: response is not an object")

    output_text = data.get("output_text")
    if isinstance(output_text, str) and output_text.strip():
        return LlmResult.success(output_text.strip())

    output = data.get("output")
    if not isinstance(output, list) or not output:
        return LlmResult.failure(FailureKind.BAD_RESPONSE, f"{provider}: empty output array in response")

    texts = []
    for item in output:
        if not isinstance(item, dict) or item.get("type") != "message":
            continue
        for block in item.get("content") or []:
            text = block.get("text") if isinstance(block, dict) else None
            if isinstance(text, str) and text.strip():
                texts.append(text.strip())

    if not texts:
        types = ", ".join(str(item.get("type", "unknown")) if isinstance(item, dict) else "unknown" for item in output)
        return LlmResult.failure(FailureKind.BAD_RESPONSE, f"{provider}: no text output found (got types: {types})")
    return LlmResult.success("\n\n".join(texts))


def linear_mcp_tool(config: DevDayConfig) -> dict | None:
    if not has_linear_mcp(config):
        return None
    tool = {
        "type": "mcp",
        "server_label": "linear",
        "server_url": config.linear_mcp_server_url,
        "require_approval": "never",
    }
    if config.linear_mcp_auth_token:
        tool["headers"] = {"Authorization": f"Bearer {config.linear_mcp_auth_token}"}
    return tool


def _request(provider: Provider, api_key: str, prompt: str, mcp_tool: dict | None) -> tuple[dict, dict]:
    """Headers and JSON body for one provider call."""
    if provider.name == "anthropic":
        headers = {
            "Content-Type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        }
        body = {
            "model": provider.model,
            "max_tokens": provider.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        return headers, body

    headers = {"Content-Type": "application/json", "Authorization": f"Bearer {api_key}"}
    body: dict[str, Any] = {
        "model": provider.model,
        "max_output_tokens": provider.max_tokens,
        "input": prompt,
    }
    if provider.name == "concentrate":
        body["reasoning"] = {"effort": "low"}
    if mcp_tool is not None:
        body["tools"] = [mcp_tool]
        body["tool_choice"] = "auto"
    return headers, body


def _parse_payload(provider: Provider, data: Any) -> LlmResult:
    if provider.name == "anthropic":
        content = data.get("content") if isinstance(data, dict) else None
        if not isinstance(content, list) or not content:
            return LlmResult.failure(FailureKind.BAD_RESPONSE, "anthropic: empty content array in response")
        first = content[0] if isinstance(content[0], dict) else {}
        if not isinstance(first.get("text"), str):
            return LlmResult.failure(
                FailureKind.BAD_RESPONSE,
                f"anthropic: first content block has no text (type: {first.get('type')})",
            )
        return LlmResult.success(first["text"])

    status = data.get("status") if isinstance(data, dict) else None
    if status == "failed":
        message = as_str(dig(data, "error", "message")) or "unknown error"
        return LlmResult.failure(FailureKind.SERVER, f"{provider.name}: response failed: {message}", True)
    if status == "incomplete":
        reason = as_str(dig(data, "incomplete_details", "reason")) or "unknown"
        return LlmResult.failure(FailureKind.BAD_RESPONSE, f"{provider.name}: response incomplete: {reason}")
    return extract_response_text(data, provider.name)


def call_llm(config: DevDayConfig, prompt: str, client: httpx.Client) -> LlmResult:
    """Send one prompt to the preferred provider. Never raises; no retries."""
    provider = PROVIDERS.get(config.preferred_summarizer)
    api_key = config.api_key
    if provider is None or not api_key:
        return LlmResult.failure(FailureKind.AUTH, "no API key configured")

    mcp_tool = linear_mcp_tool(config)
    headers, body = _request(provider, api_key, prompt, mcp_tool)
    logger.debug("%s: calling %s%s", provider.name, provider.model, " with linear MCP" if mcp_tool else "")

    try:
        response = client.post(provider.url, headers=headers, content=orjson.dumps(body))
    except httpx.HTTPError as e:
        return describe_exception(e, provider.name)

    if response.status_code >= 400:
        return describe_http_error(response.status_code, response.text, provider.name)

    try:
        data = orjson.loads(response.content)
    except orjson.JSONDecodeError:
        return LlmResult.failure(FailureKind.BAD_RESPONSE, f"{provider.name}: response is not valid JSON")

    result = _parse_payload(provider, data)
    if result.ok:
        logger.debug("%s: success", provider.name)
    return result


# ---- recap ----

def summarize_recap(
    recap: DayRecap,
    config: DevDayConfig,
    client: httpx.Client | None = None,
) -> list[str]:
    """Fill project summaries and the standup message in place.

    Returns warnings for every failed call. The standup is skipped when
    every project summary failed, since it would fail the same way.
    """
    warnings: list[str] = []
    owns_client = client is None
    if client is None:
        client = httpx.Client(timeout=LLM_TIMEOUT_S)

    try:
        for project in recap.projects:
            result = call_llm(config, build_project_prompt(project), client)
            if result.ok:
                project.ai_summary = result.text
            else:
                project.ai_summary = None
                warnings.append(f'summary failed for "{project.project_name}": {result.error}')

        if recap.projects and all(p.ai_summary is None for p in recap.projects):
            warnings.append(
                f"all project summaries failed via {config.preferred_summarizer.value}, skipping standup"
            )
            return warnings

        result = call_llm(config, build_standup_prompt(recap, config), client)
        if result.ok:
            recap.standup_message = result.text
        else:
            warnings.append(f"standup generation failed: {result.error}")
    finally:
        if owns_client:
            client.close()

    for warning in warnings:
        logger.debug("summarizer: %s", warning)
    return warnings
