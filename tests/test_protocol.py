import json

import pytest

from deskhand import protocol
from deskhand.errors import EnvelopeError
from deskhand.protocol import ChatMessage, CommandMessage, OpenFileMessage, ResearchMessage, parse_envelope


def test_parse_chat_with_optional_provider() -> None:
    message = parse_envelope('{"type": "chat", "message": "hello", "provider": "ollama"}')

    assert isinstance(message, ChatMessage)
    assert message.provider == "ollama"
    assert isinstance(parse_envelope('{"type": "chat", "message": "hi"}'), ChatMessage)


def test_parse_research_and_open_file() -> None:
    assert isinstance(parse_envelope('{"type": "research", "topic": "tides"}'), ResearchMessage)
    assert isinstance(parse_envelope(b'{"type": "open_file", "filename": "a.txt"}'), OpenFileMessage)


def test_parse_command_accepts_command_or_verb_field() -> None:
    by_command = parse_envelope('{"type": "command", "command": "create_file", "params": {"a": 1}, "taskId": "t"}')
    by_verb = parse_envelope('{"type": "command", "verb": "create_file", "task_id": 3}')

    assert isinstance(by_command, CommandMessage)
    task = by_command.to_task()
    assert (task.verb, task.params, task.correlation_id) == ("create_file", {"a": 1}, "t")
    assert by_verb.to_task().params == {}
    assert by_verb.to_task().correlation_id == 3


def test_unrecognized_type_is_read_as_bare_verb() -> None:
    message = parse_envelope('{"type": "create_file", "params": {"filename": "x"}, "taskId": "t-1"}')

    assert isinstance(message, CommandMessage)
    assert message.command == "create_file"
    assert message.task_id == "t-1"


@pytest.mark.parametrize(
    ("raw", "fragment"),
    [
        ("{not json", "malformed message"),
        ("[1, 2]", "expected a JSON object"),
        ('{"message": "no type"}', "missing type"),
        ('{"type": "  "}', "missing type"),
        ('{"type": "chat"}', "invalid chat message"),
        ('{"type": "research", "topic": ""}', "invalid research message"),
    ],
)
def test_parse_envelope_rejects_bad_frames(raw: str, fragment: str) -> None:
    with pytest.raises(EnvelopeError, match=fragment):
        parse_envelope(raw)


def test_command_result_merges_outcome_with_metadata() -> None:
    event = protocol.command_result({"success": True, "taskId": "t", "filePath": "/w/a.txt"}, workspace="/w")

    assert event["type"] == "command_result"
    assert event["taskId"] == "t"
    assert event["workspace"] == "/w"
    assert event["timestamp"].endswith("Z")


def test_event_builders_tag_type() -> None:
    assert protocol.welcome()["type"] == "welcome"
    assert protocol.typing() == {"type": "typing", "message": "Thinking..."}
    assert protocol.error("bad") == {"type": "error", "error": "bad"}
    details = {"type": "outline", "name": "plan.txt", "path": "/w/plan.txt", "preview": "Hello"}
    assert protocol.file_created("done", details)["fileDetails"] == details


@pytest.mark.parametrize("task_id", [1.5, {"job": 4, "step": "a"}, ["x", 2], True])
def test_command_task_id_is_kept_as_sent(task_id: object) -> None:
    raw = json.dumps({"type": "command", "command": "create_file", "taskId": task_id})

    assert parse_envelope(raw).to_task().correlation_id == task_id
