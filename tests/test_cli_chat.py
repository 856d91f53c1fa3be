import copy

import cli_chat


class FakeResponse:
    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        pass

    def json(self):
        return self._payload


def test_send_turn_resends_full_history(monkeypatch):
    posted = []

    def fake_post(url, json, timeout):
        posted.append({"url": url, "json": copy.deepcopy(json)})
        return FakeResponse({"reply": f"reply {len(posted)}"})

    monkeypatch.setattr(cli_chat.requests, "post", fake_post)

    history = []
    cli_chat.send_turn("http://relay/api/speak", "hello", history)
    cli_chat.send_turn("http://relay/api/speak", "I go to market", history)

    assert posted[1]["json"]["text"] == "I go to market"
    assert [t["text"] for t in posted[1]["json"]["history"]] == ["hello", "reply 1", "I go to market"]
    assert history[-1] == {"role": "assistant", "text": "reply 2"}
