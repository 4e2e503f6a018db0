"""Tests for devday.parsers.codex."""

import pytest

from devday.parsers.codex import CodexParser
from devday.types.messages import TokenUsage
from devday.types.sessions import ToolName
from devday.utils.cost import estimate_cost
from helpers import DATE, at, iso, ms, write_json, write_jsonl


def day_dir(codex_home, day="10"):
    return codex_home / "sessions" / "2026" / "03" / day


def event(dt, payload_type, **payload):
    return {"timestamp": iso(dt), "type": "event_msg", "payload": {"type": payload_type, **payload}}


def token_count(dt, input, cached, output, reasoning=0):
    return event(dt, "token_count", info={"total_token_usage": {
        "input_tokens": input,
        "cached_input_tokens": cached,
        "output_tokens": output,
        "reasoning_output_tokens": reasoning,
        "total_tokens": input + output,
    }})


@pytest.fixture
def rollout(codex_home):
    """A modern rollout: meta, turn context, one exchange, one shell call, token totals."""
    return write_jsonl(day_dir(codex_home) / "rollout-2026-03-10T09-00-00-sess-1.jsonl", [
        {"timestamp": iso(at(9)), "type": "session_meta",
         "payload": {"id": "sess-1", "cwd": "/repo/app", "timestamp": iso(at(9))}},
        {"timestamp": iso(at(9)), "type": "turn_context", "payload": {"model": "gpt-5-codex", "cwd": "/repo/app"}},
        event(at(9, 1), "user_message", message="Fix the   login bug"),
        {"timestamp": iso(at(9, 2)), "type": "response_item", "payload": {
            "type": "function_call",
            "name": "shell",
            "arguments": '{"command": "cat src/auth.py", "workdir": "/repo/app"}',
        }},
        {"timestamp": iso(at(9, 3)), "type": "response_item", "payload": {
            "type": "message", "role": "assistant", "content": [{"type": "output_text", "text": "ignored"}],
        }},
        event(at(9, 4), "agent_message", message="Fixed the bug in src/auth.py"),
        token_count(at(9, 4), input=1_000, cached=200, output=300, reasoning=50),
    ])


# ---------------------------------------------------------------------------
# 1. Availability
# ---------------------------------------------------------------------------

def test_unavailable_without_sessions_dir(tmp_path):
    parser = CodexParser(tmp_path / "nowhere")
    assert parser.is_available() is False
    assert parser.get_sessions(DATE) == []


def test_empty_day(codex_home):
    assert CodexParser(codex_home).get_sessions(DATE) == []


# ---------------------------------------------------------------------------
# 2. Modern rollout
# ---------------------------------------------------------------------------

def test_rollout_session(codex_home, rollout):
    sessions = CodexParser(codex_home).get_sessions(DATE)
    assert len(sessions) == 1
    s = sessions[0]

    assert s.id == "sess-1"
    assert s.tool == ToolName.CODEX
    assert s.project_path == "/repo/app"
    assert s.project_name == "app"
    assert s.title == "Fix the login bug"
    assert s.start_ms == ms(at(9, 1))
    assert s.end_ms == ms(at(9, 4))
    assert s.duration_ms == 180_000
    assert (s.message_count, s.user_message_count, s.assistant_message_count) == (2, 1, 1)
    assert s.models == ["gpt-5-codex"]
    assert s.tool_call_summaries == ["bash: cat src/auth.py"]
    assert s.files_touched == ["src/auth.py"]
    assert s.conversation_digest == "[User]: Fix the login bug\n\n[Assistant]: Fixed the bug in src/auth.py"


def test_rollout_tokens_and_cost(codex_home, rollout):
    s = CodexParser(codex_home).get_sessions(DATE)[0]
    assert s.tokens == TokenUsage.of(input=800, output=300, reasoning=50, cache_read=200)
    assert s.cost_usd == pytest.approx(estimate_cost("gpt-5-codex", s.tokens))
    assert s.cost_usd == pytest.approx((800 * 1.25 + 300 * 10 + 200 * 0.125) / 1e6)


def test_other_days_are_not_scanned(codex_home, rollout):
    assert CodexParser(codex_home).get_sessions("2026-03-11") == []


# ---------------------------------------------------------------------------
# 3. Fallbacks
# ---------------------------------------------------------------------------

def test_message_items_when_no_event_stream(codex_home):
    write_jsonl(day_dir(codex_home) / "rollout-b.jsonl", [
        {"timestamp": iso(at(15)), "type": "response_item", "payload": {
            "type": "message", "role": "user",
            "content": [{"type": "input_text", "text": "<environment_context><cwd>/repo/tagged</cwd></environment_context>"}],
        }},
        {"timestamp": iso(at(15, 1)), "type": "response_item", "payload": {
            "type": "message", "role": "user", "content": [{"type": "input_text", "text": "Write docs"}],
        }},
        {"timestamp": iso(at(15, 2)), "type": "response_item", "payload": {
            "type": "message", "role": "assistant", "content": [{"type": "output_text", "text": "Docs written"}],
        }},
    ])
    s = CodexParser(codex_home).get_sessions(DATE)[0]
    assert s.id == "rollout-b"
    assert s.project_path == "/repo/tagged"
    assert s.title == "Write docs"
    assert s.user_message_count == 2
    assert s.tokens == TokenUsage()
    assert s.cost_usd == 0


def test_project_from_tool_workdir(codex_home):
    write_jsonl(day_dir(codex_home) / "rollout-c.jsonl", [
        event(at(10), "user_message", message="run the tests"),
        {"timestamp": iso(at(10, 1)), "type": "response_item", "payload": {
            "type": "function_call", "name": "exec_command",
            "arguments": '{"cmd": "pytest", "workdir": "/repo/from-tool"}',
        }},
    ])
    s = CodexParser(codex_home).get_sessions(DATE)[0]
    assert s.project_path == "/repo/from-tool"
    assert s.tool_call_summaries == ["bash: pytest"]


def test_tool_only_session_is_dropped(codex_home):
    write_jsonl(day_dir(codex_home) / "rollout-d.jsonl", [
        {"timestamp": iso(at(11)), "type": "session_meta", "payload": {"id": "d", "cwd": "/repo/x"}},
        {"timestamp": iso(at(11, 1)), "type": "response_item", "payload": {
            "type": "function_call", "name": "shell", "arguments": '{"command": "ls"}',
        }},
    ])
    assert CodexParser(codex_home).get_sessions(DATE) == []


def test_malformed_lines_are_skipped(codex_home):
    write_jsonl(day_dir(codex_home) / "rollout-e.jsonl", [
        "{garbage",
        event(at(12), "user_message", message="hello"),
        "[]",
        event(at(12, 1), "agent_message", message="hi"),
    ])
    s = CodexParser(codex_home).get_sessions(DATE)[0]
    assert s.message_count == 2


# ---------------------------------------------------------------------------
# 4. Legacy layouts
# ---------------------------------------------------------------------------

def test_legacy_root_json(codex_home):
    write_json(codex_home / "sessions" / f"rollout-{DATE}-legacy.json", {
        "session": {"id": "legacy-1", "timestamp": iso(at(14))},
        "items": [
            {"type": "message", "role": "user", "content": [{"type": "input_text", "text": "Add tests"}]},
            {"type": "function_call", "name": "shell", "arguments": '{"command": ["bash", "-lc", "ls"]}'},
            {"type": "message", "role": "assistant", "content": [{"type": "output_text", "text": "Done"}]},
            "not an object",
        ],
    })
    sessions = CodexParser(codex_home).get_sessions(DATE)
    assert len(sessions) == 1
    s = sessions[0]
    assert s.id == "legacy-1"
    assert s.start_ms == s.end_ms == ms(at(14))
    assert s.message_count == 2
    assert s.title == "Add tests"
    assert s.tool_call_summaries == ["bash: bash -lc ls"]
    assert s.project_path is None


def test_legacy_json_from_another_day(codex_home):
    write_json(codex_home / "sessions" / f"rollout-{DATE}-late.json", {
        "session": {"id": "late", "timestamp": iso(at(1, day=11))},
        "items": [{"type": "message", "role": "user", "content": "hi"}],
    })
    assert CodexParser(codex_home).get_sessions(DATE) == []


def test_top_level_items_use_header_timestamp(codex_home):
    write_jsonl(codex_home / "sessions" / f"rollout-{DATE}T08-00-00-old.jsonl", [
        {"id": "old-1", "timestamp": iso(at(8)), "instructions": ""},
        {"type": "message", "role": "user", "content": [{"type": "input_text", "text": "Old style"}]},
        {"type": "message", "role": "assistant", "content": [{"type": "output_text", "text": "Reply"}]},
    ])
    s = CodexParser(codex_home).get_sessions(DATE)[0]
    assert s.id == "old-1"
    assert s.start_ms == ms(at(8))
    assert s.message_count == 2
