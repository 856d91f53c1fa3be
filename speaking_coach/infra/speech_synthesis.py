"""
Síntese de voz das respostas do tutor.

Todo sintetizador devolve o áudio já em base64 (pronto para o JSON da API)
ou None. Falha de síntese nunca derruba a requisição: a resposta segue só em texto.
"""

import base64
import json
import logging
import time
import urllib.error
import urllib.request
from typing import Optional

from openai import OpenAI

from ..config import AppConfig

logger = logging.getLogger(__name__)

ELEVENLABS_TTS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"


class SpeechSynthesizer:
    """Interface mínima de um provedor de síntese de voz."""

    name = "base"

    @property
    def configured(self) -> bool:
        return True

    def synthesize(self, text: str, request_id: Optional[str] = None) -> Optional[str]:
        raise NotImplementedError


class NullSynthesizer(SpeechSynthesizer):
    """Síntese desligada (TTS_PROVIDER=none)."""

    name = "none"

    @property
    def configured(self) -> bool:
        return False

    def synthesize(self, text: str, request_id: Optional[str] = None) -> Optional[str]:
        return None


class ElevenLabsSynthesizer(SpeechSynthesizer):
    """
    Gera áudio MP3 via API HTTP da ElevenLabs.
    POST via stdlib (sem dependências extras).
    """

    name = "elevenlabs"

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._timeout_s = config.tts_timeout_ms / 1000.0

    @property
    def configured(self) -> bool:
        return bool(self._config.elevenlabs_api_key.strip())

    def build_request(self, text: str) -> urllib.request.Request:
        payload = {
            "text": text,
            "model_id": self._config.elevenlabs_model_id,
            "voice_settings": {
                "stability": self._config.elevenlabs_stability,
                "similarity_boost": self._config.elevenlabs_similarity_boost,
            },
        }
        return urllib.request.Request(
            ELEVENLABS_TTS_URL.format(voice_id=self._config.elevenlabs_voice_id),
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={
                "Accept": "audio/mpeg",
                "Content-Type": "application/json",
                "xi-api-key": self._config.elevenlabs_api_key,
            },
        )

    def synthesize(self, text: str, request_id: Optional[str] = None) -> Optional[str]:
        if not self.configured:
            logger.warning(f"ElevenLabs sem API key, seguindo sem áudio: request_id={request_id}")
            return None

        logger.debug(f"Gerando TTS: request_id={request_id}, text_preview={text[:50]}")
        start_time = time.time()
        try:
            with urllib.request.urlopen(self.build_request(text), timeout=self._timeout_s) as resp:
                audio = resp.read()
        except urllib.error.HTTPError as e:
            try:
                body = e.read().decode("utf-8", errors="replace")[:200]
            except Exception:
                body = ""
            logger.warning(
                f"ElevenLabs respondeu erro: request_id={request_id}, status={e.code}, body={body}"
            )
            return None
        except Exception as e:
            logger.warning(
                f"Erro ao gerar TTS na ElevenLabs: request_id={request_id}, "
                f"error={type(e).__name__}: {e}"
            )
            return None

        if not audio:
            logger.warning(f"ElevenLabs devolveu áudio vazio: request_id={request_id}")
            return None

        audio_base64 = base64.b64encode(audio).decode("ascii")
        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Áudio gerado (ElevenLabs): request_id={request_id}, "
            f"audio_bytes={len(audio)}, duration_ms={duration_ms:.2f}"
        )
        return audio_base64


class OpenAISpeechSynthesizer(SpeechSynthesizer):
    """Gera áudio MP3 pelo endpoint de TTS da OpenAI."""

    name = "openai"

    def __init__(self, config: AppConfig, client: Optional[OpenAI] = None) -> None:
        self._config = config
        self._client = client or OpenAI(
            api_key=config.openai_api_key,
            timeout=config.tts_timeout_ms / 1000.0,
        )

    def synthesize(self, text: str, request_id: Optional[str] = None) -> Optional[str]:
        start_time = time.time()
        try:
            response = self._client.audio.speech.create(
                model=self._config.openai_tts_model,
                voice=self._config.openai_tts_voice,
                input=text,
                response_format="mp3",
            )
            audio = response.content
        except Exception as e:
            logger.warning(
                f"Erro ao gerar TTS na OpenAI: request_id={request_id}, "
                f"error={type(e).__name__}: {e}"
            )
            return None

        if not audio:
            logger.warning(f"OpenAI devolveu áudio vazio: request_id={request_id}")
            return None

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Áudio gerado (OpenAI): request_id={request_id}, "
            f"audio_bytes={len(audio)}, duration_ms={duration_ms:.2f}"
        )
        return base64.b64encode(audio).decode("ascii")


def build_synthesizer(config: AppConfig) -> SpeechSynthesizer:
    """
    Escolhe o provedor de TTS a partir de config.tts_provider.
    """
    if config.tts_provider == "openai":
        return OpenAISpeechSynthesizer(config)
    if config.tts_provider == "none":
        return NullSynthesizer()
    return ElevenLabsSynthesizer(config)
