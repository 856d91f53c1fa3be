import logging
from typing import List, Optional
from .models import Message, Role, SpeakResult, history_to_messages
from ..config import AppConfig
from ..infra.openai_client import LanguageModelClient
from ..infra.speech_synthesis import SpeechSynthesizer, build_synthesizer

logger = logging.getLogger(__name__)

USER_UTTERANCE_TEMPLATE = (
    'User said: "{text}"\n\n'
    "Provide a friendly response with feedback based on our conversation history."
)


class CoachingEngine:
    """
    Núcleo lógico do tutor de conversação.

    - Monta o contexto (persona + histórico do cliente + fala atual)
    - Faz a chamada ao LanguageModelClient
    - Converte a resposta em áudio com o SpeechSynthesizer
    - Não guarda estado: toda "memória" é o histórico reenviado pelo cliente
    """

    def __init__(
        self,
        config: AppConfig,
        lm_client: Optional[LanguageModelClient] = None,
        synthesizer: Optional[SpeechSynthesizer] = None,
    ) -> None:
        self._config = config
        self._lm_client = lm_client or LanguageModelClient(config)
        self._synthesizer = synthesizer or build_synthesizer(config)
        logger.info(
            f"CoachingEngine inicializado: model={config.llm_model}, "
            f"max_tokens={config.llm_max_tokens}, tts_provider={self._synthesizer.name}"
        )

    @property
    def synthesizer(self) -> SpeechSynthesizer:
        return self._synthesizer

    def build_messages(self, text: str, history: List[Message]) -> List[Message]:
        """
        Contexto enviado ao modelo: turnos anteriores (sem o último, que repete
        a fala atual) seguidos da fala atual embrulhada no template.
        """
        return history_to_messages(history) + [
            Message(role=Role.USER, content=USER_UTTERANCE_TEMPLATE.format(text=text))
        ]

    def handle_speak(
        self,
        text: str,
        history: List[Message],
        request_id: Optional[str] = None,
    ) -> SpeakResult:
        """
        Processa uma fala do usuário e retorna a resposta do tutor (+ áudio).

        Erros do modelo de linguagem são propagados; falha de síntese apenas
        resulta em resposta sem áudio.
        """
        messages = self.build_messages(text, history)
        logger.debug(
            f"handle_speak iniciado: request_id={request_id or 'N/A'}, "
            f"text_preview={text[:80]}, history_size={len(history)}, "
            f"context_messages={len(messages)}"
        )

        reply_text = self._lm_client.generate_reply(
            system_prompt=self._config.system_prompt,
            messages=messages,
            request_id=request_id,
        )

        try:
            audio_base64 = self._synthesizer.synthesize(reply_text, request_id=request_id)
        except Exception as e:
            logger.warning(
                f"Erro inesperado na síntese de voz: request_id={request_id or 'N/A'}, "
                f"error={type(e).__name__}: {e}"
            )
            audio_base64 = None

        if not audio_base64:
            logger.info(f"Resposta seguirá sem áudio: request_id={request_id or 'N/A'}")
            audio_base64 = None

        return SpeakResult(reply=reply_text, audio_base64=audio_base64)
