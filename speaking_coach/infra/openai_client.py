import logging
import random
import time
from typing import List, Dict, Optional
from openai import OpenAI, APITimeoutError, APIError, APIStatusError
from ..core.models import Message
from ..config import AppConfig

logger = logging.getLogger(__name__)


class LanguageModelClient:
    """
    Encapsula chamadas ao modelo de linguagem (API compatível com OpenAI).
    Facilita troca de provedor no futuro e centraliza tratamento de erros.
    Timeout e retry são configuráveis; por padrão é feita uma única tentativa.
    """

    def __init__(self, config: AppConfig, client: Optional[OpenAI] = None) -> None:
        self._config = config
        timeout_seconds = config.llm_timeout_ms / 1000.0
        if client is None:
            client = OpenAI(
                api_key=config.openai_api_key,
                base_url=config.llm_base_url or None,
                timeout=timeout_seconds,
                max_retries=0,  # retry controlado aqui, não pelo SDK
            )
        self._client = client
        self._max_retries = config.llm_max_retries
        self._retry_base_delay_ms = config.llm_retry_base_delay_ms

    def build_payload(self, system_prompt: str, messages: List[Message]) -> List[Dict[str, str]]:
        """
        Constrói a lista de mensagens no formato esperado pela API da OpenAI.
        """
        api_messages: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]
        for m in messages:
            api_messages.append({"role": m.role.value, "content": m.content})
        return api_messages

    def _should_retry(self, error: Exception, attempt: int) -> bool:
        """
        Retry apenas para erros transitórios (timeout, 429, 5xx, conexão).
        Erros de cliente (400, 401, 403) nunca são retentados.
        """
        if attempt >= self._max_retries:
            return False

        if isinstance(error, (APITimeoutError, TimeoutError)):
            return True

        if isinstance(error, APIStatusError):
            status_code = error.status_code
            return status_code == 429 or 500 <= status_code < 600

        # APIError genérico (ex: APIConnectionError)
        if isinstance(error, APIError):
            return True

        return False

    def _calculate_retry_delay(self, attempt: int) -> float:
        """
        Delay = base_delay * (2 ^ attempt) + jitter (0 a 20% do delay).
        """
        base_delay_seconds = self._retry_base_delay_ms / 1000.0
        exponential_delay = base_delay_seconds * (2 ** attempt)
        jitter = random.uniform(0, exponential_delay * 0.2)
        return exponential_delay + jitter

    def generate_reply(
        self,
        system_prompt: str,
        messages: List[Message],
        request_id: Optional[str] = None,
    ) -> str:
        """
        Envia mensagens ao modelo e retorna apenas o texto da resposta.

        Args:
            system_prompt: Persona do tutor
            messages: Turnos anteriores + fala atual do usuário
            request_id: ID da requisição para logs (opcional)

        Returns:
            Texto da resposta do modelo

        Raises:
            ValueError: Se resposta estiver vazia
            APIError: Se todas as tentativas falharem
        """
        api_messages = self.build_payload(system_prompt, messages)
        request_id_str = f"request_id={request_id}, " if request_id else ""

        logger.debug(
            f"Chamando modelo de linguagem: {request_id_str}model={self._config.llm_model}, "
            f"num_messages={len(api_messages)}, max_tokens={self._config.llm_max_tokens}"
        )

        last_error: Optional[Exception] = None
        for attempt in range(self._max_retries + 1):
            try:
                start_time = time.time()
                response = self._client.chat.completions.create(
                    model=self._config.llm_model,
                    messages=api_messages,
                    max_tokens=self._config.llm_max_tokens,
                    temperature=self._config.llm_temperature,
                )
                duration_ms = (time.time() - start_time) * 1000

                reply_text = (response.choices[0].message.content or "").strip()
                if not reply_text:
                    logger.error(
                        f"Resposta vazia recebida do modelo: {request_id_str}model={self._config.llm_model}, "
                        f"num_messages={len(api_messages)}"
                    )
                    raise ValueError("Resposta vazia recebida do modelo de linguagem.")

                logger.info(
                    f"Chamada ao modelo bem-sucedida: {request_id_str}model={self._config.llm_model}, "
                    f"attempt={attempt + 1}, reply_length={len(reply_text)}, duration_ms={duration_ms:.2f}"
                )
                return reply_text

            except Exception as e:
                last_error = e

                if not self._should_retry(e, attempt):
                    logger.error(
                        f"Erro não retentável ao chamar modelo: {request_id_str}model={self._config.llm_model}, "
                        f"attempt={attempt + 1}, error={type(e).__name__}: {e}",
                        exc_info=True,
                    )
                    raise

                delay_seconds = self._calculate_retry_delay(attempt)
                logger.warning(
                    f"Erro transitório ao chamar modelo (tentativa {attempt + 1}/{self._max_retries + 1}): "
                    f"{request_id_str}model={self._config.llm_model}, "
                    f"error={type(e).__name__}: {e}, retry_em={delay_seconds:.2f}s"
                )
                time.sleep(delay_seconds)

        # Inalcançável na prática: a última tentativa sempre relança acima
        raise last_error or RuntimeError("Erro desconhecido ao chamar modelo de linguagem")
