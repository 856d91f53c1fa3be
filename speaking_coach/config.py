from dataclasses import dataclass
import os
import logging
from pathlib import Path
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_STATIC_DIR = str(Path(__file__).resolve().parent / "static")
TTS_PROVIDERS = ("elevenlabs", "openai", "none")


@dataclass(frozen=True)
class AppConfig:
    """
    Configurações principais do relay de conversação.

    Centraliza chaves, modelo e parâmetros das chamadas externas
    (modelo de linguagem e síntese de voz) para facilitar revisão e testes.
    """
    openai_api_key: str
    llm_model: str = "gpt-4o-mini"
    llm_base_url: str = ""
    llm_max_tokens: int = 200
    llm_temperature: float = 0.7
    llm_timeout_ms: int = 60000
    llm_max_retries: int = 0  # 0 = uma única tentativa
    llm_retry_base_delay_ms: int = 400
    tts_provider: str = "elevenlabs"  # "elevenlabs", "openai" ou "none"
    elevenlabs_api_key: str = ""
    elevenlabs_voice_id: str = "21m00Tcm4TlvDq8ikWAM"
    elevenlabs_model_id: str = "eleven_multilingual_v2"
    elevenlabs_stability: float = 0.45
    elevenlabs_similarity_boost: float = 0.75
    openai_tts_model: str = "tts-1"
    openai_tts_voice: str = "alloy"
    tts_timeout_ms: int = 30000
    static_dir: str = DEFAULT_STATIC_DIR
    env: str = "dev"  # "dev" ou "prod"
    system_prompt: str = (
        """You are a friendly English speaking coach.
You sound like a calm human tutor, not a robot.
Keep responses short and encouraging.

When the user speaks:
1. Reply naturally to what they said.
2. Point out ONLY one grammar mistake if any.
3. Point out ONLY one pronunciation issue if any.
4. Be gentle and supportive.
5. Do not over-explain.
6. Avoid technical phonetics terms.
7. Never shame the user.
8. Keep it conversational.

Example style:
"Nice try! Small fix: instead of 'I am want', say 'I want'. Also, try to pronounce 'this' with your tongue slightly between your teeth. Want to try again?"

Do not mention rules or analysis."""
    )

    @classmethod
    def load_from_env(cls) -> "AppConfig":
        """
        Carrega configuração a partir de variáveis de ambiente.
        Primeiro tenta carregar do arquivo .env, depois do ambiente do sistema.
        Levanta erro explícito se algo crítico faltar.
        """
        load_dotenv()

        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError("Variável de ambiente OPENAI_API_KEY não definida.")

        env = os.getenv("ENV", "dev").lower()
        if env not in ("dev", "prod"):
            logger.warning(f"ENV inválido '{env}', usando 'dev' como padrão")
            env = "dev"

        tts_provider = os.getenv("TTS_PROVIDER", "elevenlabs").strip().lower()
        if tts_provider not in TTS_PROVIDERS:
            logger.warning(f"TTS_PROVIDER inválido '{tts_provider}', usando 'elevenlabs' como padrão")
            tts_provider = "elevenlabs"

        elevenlabs_api_key = os.getenv("ELEVENLABS_API_KEY", "")
        if tts_provider == "elevenlabs" and not elevenlabs_api_key.strip():
            logger.warning(
                "⚠️  ELEVENLABS_API_KEY não configurada. "
                "As respostas serão devolvidas somente em texto (sem áudio)."
            )

        return cls(
            openai_api_key=api_key,
            llm_model=os.getenv("LLM_MODEL", "gpt-4o-mini"),
            llm_base_url=os.getenv("LLM_BASE_URL", ""),
            llm_max_tokens=int(os.getenv("LLM_MAX_TOKENS", "200")),
            llm_temperature=float(os.getenv("LLM_TEMPERATURE", "0.7")),
            llm_timeout_ms=int(os.getenv("LLM_TIMEOUT_MS", "60000")),
            llm_max_retries=int(os.getenv("LLM_MAX_RETRIES", "0")),
            llm_retry_base_delay_ms=int(os.getenv("LLM_RETRY_BASE_DELAY_MS", "400")),
            tts_provider=tts_provider,
            elevenlabs_api_key=elevenlabs_api_key,
            elevenlabs_voice_id=os.getenv("ELEVENLABS_VOICE_ID", "21m00Tcm4TlvDq8ikWAM"),
            elevenlabs_model_id=os.getenv("ELEVENLABS_MODEL_ID", "eleven_multilingual_v2"),
            openai_tts_model=os.getenv("OPENAI_TTS_MODEL", "tts-1"),
            openai_tts_voice=os.getenv("OPENAI_TTS_VOICE", "alloy"),
            tts_timeout_ms=int(os.getenv("TTS_TIMEOUT_MS", "30000")),
            static_dir=os.getenv("STATIC_DIR", DEFAULT_STATIC_DIR),
            env=env,
        )
