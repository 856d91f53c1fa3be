import logging
import time
from pathlib import Path
from uuid import uuid4
from typing import Optional, List, Literal
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import BaseModel, ConfigDict, Field, field_validator
from ..config import AppConfig
from ..core.engine import CoachingEngine
from ..core.models import Message, Role

logger = logging.getLogger(__name__)

SPEAK_PATHS = ("/api/speak", "/speak")

# O cliente original marcava as respostas do tutor como "ai"
ROLE_ALIASES = {"ai": "assistant", "model": "assistant"}


class Turn(BaseModel):
    role: Literal["user", "assistant"]
    text: str

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            return ROLE_ALIASES.get(value, value)
        return value


class SpeakRequest(BaseModel):
    text: str
    history: List[Turn] = Field(default_factory=list)


class SpeakResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reply: str
    audio_base64: Optional[str] = Field(default=None, alias="audioBase64")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware que gera request_id único para cada requisição
    e adiciona aos logs e headers de resposta.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = uuid4().hex[:16]
        request.state.request_id = request_id

        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Request processado: request_id={request_id}, "
            f"method={request.method}, path={request.url.path}, "
            f"status={response.status_code}, duration_ms={duration_ms:.2f}"
        )
        return response


def create_app(
    config: Optional[AppConfig] = None,
    engine: Optional[CoachingEngine] = None,
) -> FastAPI:
    """
    Cria a aplicação FastAPI e injeta dependências principais (config + engine).
    """
    config = config or AppConfig.load_from_env()
    engine = engine or CoachingEngine(config=config)
    static_root = Path(config.static_dir).resolve()

    app = FastAPI(
        title="Speaking Coach API",
        version="0.1.0",
        description="Relay entre o cliente de voz e os serviços de IA (texto + TTS).",
    )

    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        # 405 do roteador vem do catch-all do SPA: fora das rotas /speak é 404
        if exc.status_code == 405:
            if request.url.path.rstrip("/") not in SPEAK_PATHS:
                return JSONResponse(status_code=404, content={"error": "Not found"})
            return JSONResponse(
                status_code=405,
                content={"error": "Method not allowed"},
                headers=getattr(exc, "headers", None),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.warning(
            f"Payload inválido: request_id={request_id}, path={request.url.path}, "
            f"errors={len(exc.errors())}"
        )
        return JSONResponse(status_code=400, content={"error": "Invalid request body"})

    @app.get("/health")
    def health_check():
        """
        Endpoint de health check para monitoramento.
        Não chama os serviços externos, só reporta a configuração ativa.
        """
        return {
            "status": "ok",
            "llm_model": config.llm_model,
            "tts_provider": engine.synthesizer.name,
            "tts_configured": engine.synthesizer.configured,
        }

    @app.post("/api/speak", response_model=SpeakResponse, response_model_exclude_none=True)
    @app.post("/speak", response_model=SpeakResponse, response_model_exclude_none=True)
    def speak_endpoint(payload: SpeakRequest, request: Request) -> SpeakResponse:
        request_id = getattr(request.state, "request_id", "unknown")
        logger.info(
            f"Recebida requisição /speak: request_id={request_id}, "
            f"text_length={len(payload.text)}, history_size={len(payload.history)}"
        )

        history = [Message(role=Role(turn.role), content=turn.text) for turn in payload.history]

        start_time = time.time()
        try:
            result = engine.handle_speak(
                text=payload.text,
                history=history,
                request_id=request_id,
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Erro ao gerar resposta: request_id={request_id}, "
                f"duration_ms={duration_ms:.2f}, error={type(e).__name__}: {e}",
                exc_info=True,
            )
            raise HTTPException(
                status_code=500,
                detail="Internal error while generating the reply",
            )

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"Resposta gerada: request_id={request_id}, reply_length={len(result.reply)}, "
            f"audio_base64_length={len(result.audio_base64 or '')}, duration_ms={duration_ms:.2f}"
        )
        return SpeakResponse(reply=result.reply, audio_base64=result.audio_base64)

    @app.api_route(
        "/api/speak",
        methods=["GET", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    @app.api_route(
        "/speak",
        methods=["GET", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    def speak_method_not_allowed():
        raise HTTPException(status_code=405, detail="Method not allowed")

    # Precisa ser a última rota: qualquer GET não casado cai no SPA
    @app.get("/{full_path:path}", include_in_schema=False)
    def spa_fallback(full_path: str):
        if full_path:
            candidate = (static_root / full_path).resolve()
            if candidate.is_file() and static_root in candidate.parents:
                return FileResponse(candidate)

        index_file = static_root / "index.html"
        if not index_file.is_file():
            logger.warning(f"index.html não encontrado em {static_root}")
            raise HTTPException(status_code=404, detail="Not found")
        return FileResponse(index_file)

    return app
