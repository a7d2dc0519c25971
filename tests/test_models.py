import pytest

from models import (
    EXAMPLE_MESSAGES_PAYLOAD,
    EXAMPLE_PROMPT_PAYLOAD,
    ChatMessage,
    RequestShapeError,
    normalize_messages,
)


def test_prompt_with_system():
    out = normalize_messages({"prompt": "Hello!", "system": "Be brief"})
    assert out == [
        {"role": "system", "content": "Be brief"},
        {"role": "user", "content": "Hello!"},
    ]


def test_prompt_without_system():
    assert normalize_messages({"prompt": "Hello!"}) == [{"role": "user", "content": "Hello!"}]
    assert normalize_messages({"prompt": "Hello!", "system": ""}) == [
        {"role": "user", "content": "Hello!"}
    ]


def test_messages_pass_through():
    messages = [
        {"role": "user", "content": "a"},
        {"role": "assistant", "content": "b"},
        {"role": "user", "content": "c", "extra": 1},
    ]
    out = normalize_messages({"messages": messages, "prompt": "ignored"})
    assert out is messages
    assert out == [
        {"role": "user", "content": "a"},
        {"role": "assistant", "content": "b"},
        {"role": "user", "content": "c", "extra": 1},
    ]


def test_empty_messages_falls_back_to_prompt():
    assert normalize_messages({"messages": [], "prompt": "hi"}) == [{"role": "user", "content": "hi"}]


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"messages": []},
        {"messages": "not a list"},
        {"prompt": ""},
        {"prompt": 42},
        {"system": "only system"},
        [],
        "text",
        None,
    ],
)
def test_missing_shape_raises(body):
    with pytest.raises(RequestShapeError):
        normalize_messages(body)


def test_shape_error_payload():
    payload = RequestShapeError().to_payload()
    assert payload["error"] == "Request must include either 'messages' array or 'prompt' string"
    assert payload["example"] == EXAMPLE_MESSAGES_PAYLOAD
    assert payload["simpleExample"] == EXAMPLE_PROMPT_PAYLOAD


def test_chat_message_to_dict():
    assert ChatMessage(role="user", content="x").to_dict() == {"role": "user", "content": "x"}
