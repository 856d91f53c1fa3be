from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from speaking_coach.api.http import create_app
from speaking_coach.config import AppConfig
from speaking_coach.core.engine import CoachingEngine
from speaking_coach.core.models import Message
from speaking_coach.infra.speech_synthesis import SpeechSynthesizer


class FakeLanguageModelClient:
    """Registra as chamadas e devolve uma resposta fixa (ou levanta erro)."""

    def __init__(self, reply: str = "Nice try! Say 'I want'.", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    def generate_reply(self, system_prompt: str, messages: List[Message], request_id: Optional[str] = None) -> str:
        self.calls.append({"system_prompt": system_prompt, "messages": messages, "request_id": request_id})
        if self.error is not None:
            raise self.error
        return self.reply


class FakeSynthesizer(SpeechSynthesizer):
    name = "fake"

    def __init__(self, audio_base64: Optional[str] = "SUQzBAAAAAAA"):
        self.audio_base64 = audio_base64
        self.texts: List[str] = []

    def synthesize(self, text: str, request_id: Optional[str] = None) -> Optional[str]:
        self.texts.append(text)
        return self.audio_base64


@pytest.fixture
def static_dir(tmp_path):
    root = tmp_path / "static"
    root.mkdir()
    (root / "index.html").write_text("<html><body>coach spa</body></html>", encoding="utf-8")
    (root / "app.js").write_text("console.log('coach');", encoding="utf-8")
    return root


@pytest.fixture
def config(static_dir) -> AppConfig:
    return AppConfig(openai_api_key="test-key", tts_provider="none", static_dir=str(static_dir))


@pytest.fixture
def lm_client() -> FakeLanguageModelClient:
    return FakeLanguageModelClient()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def engine(config, lm_client, synthesizer) -> CoachingEngine:
    return CoachingEngine(config=config, lm_client=lm_client, synthesizer=synthesizer)


@pytest.fixture
def client(config, engine) -> TestClient:
    return TestClient(create_app(config=config, engine=engine))
