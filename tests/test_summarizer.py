"""Tests for devday.services.summarizer."""

from datetime import datetime

import httpx
import orjson
import pytest

from devday.services.config_manager import DevDayConfig, Summarizer
from devday.services.merge import build_day_recap
from devday.services.summarizer import (
    PROVIDERS,
    FailureKind,
    build_project_prompt,
    build_standup_prompt,
    call_llm,
    describe_http_error,
    extract_response_text,
    previous_date,
    summarize_recap,
)
from devday.types.git import GitActivity, GitCommit
from helpers import DATE, make_session


def openai_config(**extra):
    return DevDayConfig(openai_api_key="sk-test", preferred_summarizer=Summarizer.OPENAI, **extra)


def client_for(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def responses_payload(text):
    return {"status": "completed", "output": [
        {"type": "reasoning", "summary": []},
        {"type": "message", "content": [{"type": "output_text", "text": text}]},
    ]}


@pytest.fixture
def recap():
    sessions = [
        make_session("1", project_path="/repo/a", title="Add search", message_count=4, duration_ms=120_000,
                     conversation_digest="[User]: add search", tool_call_summaries=["Read a.py", "Read a.py"]),
        make_session("2", project_path="/repo/b", cost=2.0),
    ]
    commits = [GitCommit(hash="f" * 40, short_hash="fffffff", message="Add search box", author="Ann",
                         timestamp=datetime(2026, 3, 10, 12, 0), insertions=12, deletions=3)]
    git = GitActivity(project_path="/repo/a", project_name="a", commits=commits)
    return build_day_recap(DATE, sessions, [git])


# ---------------------------------------------------------------------------
# 1. Prompts
# ---------------------------------------------------------------------------

def test_project_prompt(recap):
    project = next(p for p in recap.projects if p.project_path == "/repo/a")
    prompt = build_project_prompt(project)
    assert 'Session: "Add search" (4 messages, 2min)' in prompt
    assert "[User]: add search" in prompt
    assert prompt.count("Read a.py") == 1
    assert "- fffffff: Add search box (+12/-3)" in prompt
    assert "FIRST PERSON" in prompt


def test_project_prompt_without_git(recap):
    project = next(p for p in recap.projects if p.project_path == "/repo/b")
    assert "No git commits" in build_project_prompt(project)


def test_standup_prompt_with_linear():
    config = openai_config(linear_mcp_server_url="https://mcp.example/linear")
    prompt = build_standup_prompt(build_day_recap(DATE, [make_session()]), config)
    assert 'labeled "linear"' in prompt
    assert "2026-03-09" in prompt


def test_standup_prompt_without_linear_for_anthropic():
    config = DevDayConfig(anthropic_api_key="k", preferred_summarizer=Summarizer.ANTHROPIC,
                          linear_mcp_server_url="https://mcp.example/linear")
    prompt = build_standup_prompt(build_day_recap(DATE, [make_session()]), config)
    assert "linear" not in prompt.lower()


def test_previous_date():
    assert previous_date("2026-03-01") == "2026-02-28"
    assert previous_date("garbage") == "garbage"


# ---------------------------------------------------------------------------
# 2. Error classification
# ---------------------------------------------------------------------------

@pytest.mark.parametrize(
    "status, kind, retriable",
    [
        (401, FailureKind.AUTH, False),
        (403, FailureKind.AUTH, False),
        (402, FailureKind.QUOTA, False),
        (400, FailureKind.BAD_REQUEST, False),
        (429, FailureKind.RATE_LIMIT, True),
        (503, FailureKind.SERVER, True),
        (418, FailureKind.BAD_RESPONSE, False),
    ],
)
def test_describe_http_error(status, kind, retriable):
    result = describe_http_error(status, "x" * 500, "openai")
    assert not result.ok
    assert result.kind == kind
    assert result.retriable is retriable
    assert len(result.error) < 300


def test_extract_response_text():
    assert extract_response_text({"output_text": " hi "}, "openai").text == "hi"
    assert extract_response_text(responses_payload("body"), "openai").text == "body"
    missing = extract_response_text({"output": [{"type": "reasoning"}]}, "openai")
    assert missing.kind == FailureKind.BAD_RESPONSE
    assert "reasoning" in missing.error
    assert extract_response_text({"output": []}, "openai").kind == FailureKind.BAD_RESPONSE


# ---------------------------------------------------------------------------
# 3. Provider calls
# ---------------------------------------------------------------------------

def test_openai_request_shape():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = orjson.loads(request.content)
        return httpx.Response(200, json=responses_payload("I built search."))

    result = call_llm(openai_config(), "prompt text", client_for(handler))
    assert result.ok and result.text == "I built search."
    assert seen["url"] == PROVIDERS[Summarizer.OPENAI].url
    assert seen["auth"] == "Bearer sk-test"
    assert seen["body"]["input"] == "prompt text"
    assert seen["body"]["model"] == "gpt-4o-mini"
    assert "tools" not in seen["body"]


def test_concentrate_request_with_linear_tool():
    seen = {}

    def handler(request):
        seen["body"] = orjson.loads(request.content)
        return httpx.Response(200, json={"output_text": "ok"})

    config = DevDayConfig(
        concentrate_api_key="sk-cn",
        preferred_summarizer=Summarizer.CONCENTRATE,
        linear_mcp_server_url="https://mcp.example/linear",
        linear_mcp_auth_token="lin",
    )
    assert call_llm(config, "p", client_for(handler)).ok
    body = seen["body"]
    assert body["reasoning"] == {"effort": "low"}
    assert body["tool_choice"] == "auto"
    tool = body["tools"][0]
    assert tool["server_label"] == "linear"
    assert tool["headers"] == {"Authorization": "Bearer lin"}


def test_anthropic_request_and_response():
    seen = {}

    def handler(request):
        seen["headers"] = request.headers
        seen["body"] = orjson.loads(request.content)
        return httpx.Response(200, json={"content": [{"type": "text", "text": "Summary."}]})

    config = DevDayConfig(anthropic_api_key="sk-ant", preferred_summarizer=Summarizer.ANTHROPIC)
    result = call_llm(config, "p", client_for(handler))
    assert result.text == "Summary."
    assert seen["headers"]["x-api-key"] == "sk-ant"
    assert seen["headers"]["anthropic-version"] == "2023-06-01"
    assert seen["body"]["messages"] == [{"role": "user", "content": "p"}]


def test_anthropic_empty_content():
    config = DevDayConfig(anthropic_api_key="sk-ant", preferred_summarizer=Summarizer.ANTHROPIC)
    result = call_llm(config, "p", client_for(lambda r: httpx.Response(200, json={"content": []})))
    assert result.kind == FailureKind.BAD_RESPONSE


def test_failed_and_incomplete_responses():
    failed = call_llm(openai_config(), "p", client_for(
        lambda r: httpx.Response(200, json={"status": "failed", "error": {"message": "boom"}})))
    assert failed.kind == FailureKind.SERVER and "boom" in failed.error

    incomplete = call_llm(openai_config(), "p", client_for(
        lambda r: httpx.Response(200, json={"status": "incomplete", "incomplete_details": {"reason": "max_output_tokens"}})))
    assert incomplete.kind == FailureKind.BAD_RESPONSE and "max_output_tokens" in incomplete.error


def test_invalid_json_body():
    result = call_llm(openai_config(), "p", client_for(lambda r: httpx.Response(200, content=b"<html>")))
    assert result.kind == FailureKind.BAD_RESPONSE


def test_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    result = call_llm(openai_config(), "p", client_for(handler))
    assert result.kind == FailureKind.TIMEOUT
    assert result.retriable


def test_network_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    assert call_llm(openai_config(), "p", client_for(handler)).kind == FailureKind.NETWORK


def test_no_key():
    result = call_llm(DevDayConfig(), "p", client_for(lambda r: httpx.Response(500)))
    assert result.kind == FailureKind.AUTH


# ---------------------------------------------------------------------------
# 4. Whole recap
# ---------------------------------------------------------------------------

def test_summarize_recap(recap):
    prompts = []

    def handler(request):
        prompt = orjson.loads(request.content)["input"]
        prompts.append(prompt)
        if prompt.startswith("Generate a standup"):
            return httpx.Response(200, json={"output_text": "- I added search"})
        return httpx.Response(200, json={"output_text": "I worked on things."})

    warnings = summarize_recap(recap, openai_config(), client_for(handler))
    assert warnings == []
    assert len(prompts) == 3
    assert all(p.ai_summary == "I worked on things." for p in recap.projects)
    assert recap.standup_message == "- I added search"


def test_all_project_failures_skip_standup(recap):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(401, text="nope")

    warnings = summarize_recap(recap, openai_config(), client_for(handler))
    assert len(calls) == 2
    assert recap.standup_message is None
    assert len(warnings) == 3
    assert "invalid API key" in warnings[0]
    assert "skipping standup" in warnings[-1]


def test_partial_failure_still_runs_standup(recap):
    def handler(request):
        prompt = orjson.loads(request.content)["input"]
        if "Project: a\n" in prompt:
            return httpx.Response(429)
        return httpx.Response(200, json={"output_text": "ok"})

    warnings = summarize_recap(recap, openai_config(), client_for(handler))
    assert len(warnings) == 1
    assert 'summary failed for "a"' in warnings[0]
    assert recap.standup_message == "ok"
