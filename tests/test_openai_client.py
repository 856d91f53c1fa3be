from types import SimpleNamespace

import httpx
import openai
import pytest

from speaking_coach.config import AppConfig
from speaking_coach.core.models import Message, Role
from speaking_coach.infra import openai_client as openai_client_module
from speaking_coach.infra.openai_client import LanguageModelClient

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


class FakeCompletions:
    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.kwargs = []

    def create(self, **kwargs):
        self.kwargs.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=outcome))])


def make_client(outcomes, **config_overrides):
    completions = FakeCompletions(outcomes)
    fake_openai = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    config = AppConfig(openai_api_key="test-key", **config_overrides)
    return LanguageModelClient(config, client=fake_openai), completions


def server_error():
    return openai.InternalServerError("boom", response=httpx.Response(500, request=REQUEST), body=None)


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    monkeypatch.setattr(openai_client_module.time, "sleep", lambda _: None)


def test_build_payload_puts_system_prompt_first():
    client, _ = make_client([])
    payload = client.build_payload(
        "persona",
        [Message(role=Role.USER, content="a"), Message(role=Role.ASSISTANT, content="b")],
    )
    assert payload == [
        {"role": "system", "content": "persona"},
        {"role": "user", "content": "a"},
        {"role": "assistant", "content": "b"},
    ]


def test_generate_reply_uses_token_cap_and_temperature():
    client, completions = make_client(["  Great job!  "], llm_max_tokens=150, llm_temperature=0.3)

    reply = client.generate_reply("persona", [Message(role=Role.USER, content="hi")], request_id="r1")

    assert reply == "Great job!"
    sent = completions.kwargs[0]
    assert sent["max_tokens"] == 150
    assert sent["temperature"] == 0.3
    assert sent["model"] == "gpt-4o-mini"
    assert sent["messages"][0] == {"role": "system", "content": "persona"}


@pytest.mark.parametrize("content", ["", "   ", None])
def test_empty_reply_raises(content):
    client, _ = make_client([content])
    with pytest.raises(ValueError):
        client.generate_reply("persona", [])


def test_single_attempt_by_default():
    client, completions = make_client([server_error(), "never reached"])
    with pytest.raises(openai.InternalServerError):
        client.generate_reply("persona", [])
    assert len(completions.kwargs) == 1


def test_transient_errors_are_retried_when_enabled():
    client, completions = make_client(
        [server_error(), openai.APITimeoutError(request=REQUEST), "recovered"],
        llm_max_retries=2,
    )
    assert client.generate_reply("persona", []) == "recovered"
    assert len(completions.kwargs) == 3


def test_client_errors_are_not_retried():
    bad_request = openai.BadRequestError("bad", response=httpx.Response(400, request=REQUEST), body=None)
    client, completions = make_client([bad_request, "never reached"], llm_max_retries=3)
    with pytest.raises(openai.BadRequestError):
        client.generate_reply("persona", [])
    assert len(completions.kwargs) == 1


def test_retry_delay_grows_exponentially():
    client, _ = make_client([], llm_max_retries=3, llm_retry_base_delay_ms=100)
    first = client._calculate_retry_delay(0)
    third = client._calculate_retry_delay(2)
    assert 0.1 <= first <= 0.12
    assert 0.4 <= third <= 0.48
