"""
Cliente de texto para praticar sem microfone.
Mantém o histórico localmente e reenvia tudo a cada fala, como o cliente web.
"""

import os
from typing import Dict, List

import requests

DEFAULT_URL = os.getenv("SPEAK_API_URL", "http://localhost:5000/api/speak")


def send_turn(url: str, text: str, history: List[Dict[str, str]], timeout: float = 120.0) -> Dict:
    """
    Adiciona a fala ao histórico, chama o relay e registra a resposta do tutor.
    """
    history.append({"role": "user", "text": text})
    resp = requests.post(url, json={"text": text, "history": history}, timeout=timeout)
    resp.raise_for_status()
    data = resp.json()
    history.append({"role": "assistant", "text": data["reply"]})
    return data


def main() -> None:
    history: List[Dict[str, str]] = []
    while True:
        msg = input("Você: ")
        if msg.lower() in ["sair", "exit"]:
            break
        if not msg.strip():
            continue

        data = send_turn(DEFAULT_URL, msg.strip(), history)
        audio = "com áudio" if data.get("audioBase64") else "sem áudio"
        print(f"Coach ({audio}):", data["reply"])


if __name__ == "__main__":
    main()
