from dataclasses import dataclass
from enum import Enum
from typing import List, Optional


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass
class Message:
    role: Role
    content: str


@dataclass
class SpeakResult:
    """
    Resultado de um turno de conversa: texto do tutor + áudio (base64) opcional.
    """
    reply: str
    audio_base64: Optional[str] = None


def history_to_messages(history: List[Message]) -> List[Message]:
    """
    Converte o histórico enviado pelo cliente em contexto para o modelo.

    O último item do histórico é a própria fala atual do usuário, então é descartado.
    A ordem original dos turnos é mantida.
    """
    return list(history[:-1])
