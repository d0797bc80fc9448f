import asyncio
import json
from pathlib import Path
from typing import Any

import pytest

from deskhand.operations import build_router
from deskhand.session import Session


class Outbox:
    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    async def send(self, event: dict[str, Any]) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [event["type"] for event in self.events]


def _session(context) -> tuple[Session, Outbox]:
    outbox = Outbox()
    return Session(outbox.send, context, build_router(context), session_id="test"), outbox


async def _run(session: Session, *frames: dict[str, Any] | str) -> None:
    for frame in frames:
        session.receive(frame if isinstance(frame, str) else json.dumps(frame))
    await session.wait_idle()


@pytest.mark.asyncio
async def test_open_sends_welcome(context) -> None:
    session, outbox = _session(context)

    await session.open()

    assert outbox.types() == ["welcome"]


@pytest.mark.asyncio
async def test_malformed_frame_reports_error_and_session_continues(context) -> None:
    session, outbox = _session(context)

    await _run(session, "{oops")
    await _run(session, {"type": "command", "command": "create_file", "params": {"filename": "a.txt", "content": "hi"}})

    assert outbox.types() == ["error", "command_result"]
    assert outbox.events[0]["error"].startswith("malformed message")
    assert outbox.events[1]["success"] is True


@pytest.mark.asyncio
async def test_concurrent_commands_keep_their_task_ids(context, launcher) -> None:
    launcher.gate = asyncio.Event()
    session, outbox = _session(context)

    slow = {"type": "command", "command": "open_application", "params": {"appName": "editor"}, "taskId": "slow"}
    fast = {
        "type": "command",
        "command": "create_file",
        "params": {"filename": "a.txt", "content": "hi"},
        "taskId": "fast",
    }
    session.receive(json.dumps(slow))
    session.receive(json.dumps(fast))
    await asyncio.sleep(0.05)
    launcher.gate.set()
    await session.wait_idle()

    replies = {event["taskId"]: event for event in outbox.events}
    assert set(replies) == {"slow", "fast"}
    assert all(event["type"] == "command_result" for event in outbox.events)
    assert replies["fast"]["filePath"].endswith("a.txt")
    assert replies["slow"]["message"] == "Opened application: editor"


@pytest.mark.asyncio
async def test_failing_command_does_not_affect_neighbour(context, workspace: Path) -> None:
    session, outbox = _session(context)

    await _run(
        session,
        {"type": "command", "command": "create_file", "params": {"filename": "../x", "content": "x"}, "taskId": 1},
        {"type": "command", "command": "create_file", "params": {"filename": "ok.txt", "content": "x"}, "taskId": 2},
    )

    outcome = {event["taskId"]: event["success"] for event in outbox.events}
    assert outcome == {1: False, 2: True}
    assert (workspace / "ok.txt").exists()


@pytest.mark.asyncio
async def test_structured_task_ids_are_echoed_unchanged(context) -> None:
    session, outbox = _session(context)
    params = {"filename": "n.txt", "content": "x"}

    await _run(
        session,
        {"type": "command", "command": "create_file", "params": params, "taskId": 1.5},
        {"type": "command", "command": "teleport", "taskId": {"job": 4, "step": "a"}},
    )

    echoed = [event["taskId"] for event in outbox.events]
    assert len(echoed) == 2
    assert 1.5 in echoed
    assert {"job": 4, "step": "a"} in echoed
    assert all(event["type"] == "command_result" for event in outbox.events)


@pytest.mark.asyncio
async def test_command_result_carries_workspace_and_timestamp(context, workspace: Path) -> None:
    session, outbox = _session(context)

    await _run(session, {"type": "command", "command": "teleport", "taskId": "t-1"})

    (event,) = outbox.events
    assert event["type"] == "command_result"
    assert event["success"] is False
    assert event["error"] == "Invalid command type"
    assert event["taskId"] == "t-1"
    assert event["workspace"] == str(workspace)
    assert event["timestamp"]


@pytest.mark.asyncio
async def test_bare_verb_envelope_is_dispatched(context, workspace: Path) -> None:
    session, outbox = _session(context)

    await _run(session, {"type": "create_file", "params": {"filename": "bare.txt", "content": "b"}, "taskId": "b1"})

    (event,) = outbox.events
    assert event["success"] is True
    assert event["taskId"] == "b1"
    assert (workspace / "bare.txt").read_text(encoding="utf-8") == "b"


@pytest.mark.asyncio
async def test_chat_replies_then_creates_file(context, workspace: Path, notifications) -> None:
    session, outbox = _session(context)

    await _run(session, {"type": "chat", "message": "plan my week"})

    assert outbox.types() == ["typing", "chat_response", "file_created"]
    assert outbox.events[1]["message"] == "Here is a short plan for your week."
    details = outbox.events[2]["fileDetails"]
    assert details == {"type": "outline", "name": "plan.txt", "path": str(workspace / "plan.txt"), "preview": "Hello"}
    assert (workspace / "plan.txt").read_text(encoding="utf-8") == "Hello"
    assert any("plan.txt" in n.message for n in notifications)


@pytest.mark.asyncio
async def test_chat_with_failing_backend_apologizes(make_context, workspace: Path) -> None:
    session, outbox = _session(make_context(gemini_api_key=None))

    await _run(session, {"type": "chat", "message": "hello"})

    assert outbox.types() == ["typing", "chat_response"]
    assert "Gemini API key not configured" in outbox.events[1]["message"]
    assert list(workspace.iterdir()) == []


@pytest.mark.asyncio
async def test_chat_with_upstream_error_apologizes(context, providers) -> None:
    providers.status_code = 500
    session, outbox = _session(context)

    await _run(session, {"type": "chat", "message": "hello", "provider": "ollama"})

    assert outbox.types() == ["typing", "chat_response"]
    assert "upstream unavailable" in outbox.events[1]["message"]


@pytest.mark.asyncio
async def test_chat_with_unknown_provider_is_an_error(context) -> None:
    session, outbox = _session(context)

    await _run(session, {"type": "chat", "message": "hello", "provider": "openai"})

    assert outbox.events == [{"type": "error", "error": "Unknown AI provider: openai"}]


@pytest.mark.asyncio
async def test_research_saves_file(context) -> None:
    session, outbox = _session(context)

    await _run(session, {"type": "research", "topic": "quantum error correction"})

    assert outbox.types() == ["typing", "research_completed"]
    details = outbox.events[1]["fileDetails"]
    assert details["type"] == "research"
    assert Path(details["path"]).read_text(encoding="utf-8").startswith("# Research: quantum error correction")


@pytest.mark.asyncio
async def test_research_without_key_apologizes(make_context) -> None:
    session, outbox = _session(make_context(perplexity_api_key=None))

    await _run(session, {"type": "research", "topic": "tides"})

    assert outbox.types() == ["typing", "chat_response"]
    assert "Perplexity API key not configured" in outbox.events[1]["message"]


@pytest.mark.asyncio
async def test_open_file_inside_workspace(context, launcher, workspace: Path) -> None:
    session, outbox = _session(context)

    await _run(session, {"type": "open_file", "filename": "plan.txt"})

    assert launcher.opened == [str(workspace / "plan.txt")]
    assert outbox.events == [{"type": "chat_response", "message": 'I\'ve opened "plan.txt" for you.'}]


@pytest.mark.asyncio
async def test_open_file_outside_workspace_is_refused(context, launcher) -> None:
    session, outbox = _session(context)

    await _run(session, {"type": "open_file", "filename": "../../etc/passwd"})

    assert launcher.opened == []
    assert outbox.events[0]["message"].startswith("I couldn't open the file: path escapes workspace")


@pytest.mark.asyncio
async def test_closed_session_drops_late_replies(context, launcher, workspace: Path) -> None:
    launcher.gate = asyncio.Event()
    session, outbox = _session(context)

    session.receive(json.dumps({"type": "command", "command": "open_application", "params": {"appName": "x"}}))
    await asyncio.sleep(0)
    session.close()
    launcher.gate.set()
    await session.wait_idle()

    assert session.closed is True
    assert outbox.events == []
    assert launcher.opened == ["x"]


@pytest.mark.asyncio
async def test_send_failure_closes_session(context) -> None:
    async def broken_send(event: dict[str, Any]) -> None:
        raise ConnectionResetError("peer gone")

    session = Session(broken_send, context, build_router(context))

    await session.open()

    assert session.closed is True
