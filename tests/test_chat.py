"""Tests for the assistant chat proxy."""
import pytest
import requests

from tests.market_stub import FakeChatWorkflow, FakeResponse

USER = "retailer_demo_001"


@pytest.fixture
def chat_workflow(monkeypatch):
    fake = FakeChatWorkflow()
    monkeypatch.setattr(requests, "post", fake)
    return fake


def ask(client, auth_headers, body):
    return client.post("/api/chat", headers=auth_headers(USER), json=body)


def test_chat_requires_a_token(client, chat_workflow):
    assert client.post("/api/chat", json={"message": "hi"}).status_code == 401
    assert chat_workflow.calls == []


@pytest.mark.parametrize("body", [{}, {"message": "   "}, {"message": 42}])
def test_chat_requires_a_message(client, auth_headers, chat_workflow, body):
    assert ask(client, auth_headers, body).status_code == 400
    assert chat_workflow.calls == []


def test_chat_forwards_message_and_history(client, auth_headers, chat_workflow):
    history = [{"role": "user", "content": "사과 시세?"}, {"role": "assistant", "content": "1,100원입니다."}]

    response = ask(client, auth_headers, {"message": "  배 시세는?  ", "conversationHistory": history})

    assert response.status_code == 200
    assert response.get_json() == {"response": "안녕하세요"}
    call = chat_workflow.calls[0]
    assert call["url"] == "http://chat.test/webhook/assistant"
    assert call["json"] == {"message": "배 시세는?", "userId": USER, "conversationHistory": history}
    assert call["timeout"] == 30


def test_chat_sends_empty_history_by_default(client, auth_headers, chat_workflow):
    ask(client, auth_headers, {"message": "hi"})

    assert chat_workflow.calls[0]["json"]["conversationHistory"] == []


@pytest.mark.parametrize("payload, expected", [
    ([{"response": "첫 번째"}, {"response": "두 번째"}], "첫 번째"),
    ([{"text": "from text"}], "from text"),
    (["plain"], "plain"),
    ({"message": "from message"}, "from message"),
    ("bare string", "bare string"),
    ({"output": "x"}, '{"output": "x"}'),
])
def test_chat_reply_shapes(client, auth_headers, chat_workflow, payload, expected):
    chat_workflow.reply = FakeResponse(payload)

    assert ask(client, auth_headers, {"message": "hi"}).get_json()["response"] == expected


def test_chat_strips_bold_markers(client, auth_headers, chat_workflow):
    chat_workflow.reply = FakeResponse({"response": "오늘 **사과** 최저가는 **1,100원**입니다."})

    assert ask(client, auth_headers, {"message": "hi"}).get_json()["response"] == "오늘 사과 최저가는 1,100원입니다."


def test_chat_unconfigured_is_500(app, client, auth_headers, chat_workflow):
    app.config["N8N_WEBHOOK_URL"] = None

    response = ask(client, auth_headers, {"message": "hi"})

    assert response.status_code == 500
    assert chat_workflow.calls == []


def test_chat_upstream_error_is_500(client, auth_headers, chat_workflow):
    chat_workflow.reply = FakeResponse({"error": "boom"}, status_code=502, reason="Bad Gateway")

    response = ask(client, auth_headers, {"message": "hi"})

    assert response.status_code == 500
    assert "502 Bad Gateway" in response.get_json()["details"]


def test_chat_unreachable_is_500(client, auth_headers, chat_workflow):
    chat_workflow.reply = requests.ConnectionError("refused")

    response = ask(client, auth_headers, {"message": "hi"})

    assert response.status_code == 500
    assert response.get_json()["details"] == "refused"


def test_chat_empty_reply_is_500(client, auth_headers, chat_workflow):
    chat_workflow.reply = FakeResponse([])

    assert ask(client, auth_headers, {"message": "hi"}).status_code == 500
