import random

import pytest
import requests

from gamevui.domain.lottery import commentary
from gamevui.domain.lottery.commentary import (
    GENERIC_PHRASES,
    PHRASES,
    HttpCommentaryClient,
    announce,
    fallback_phrase,
)
from gamevui.domain.lottery.numbers import read_number_vi


@pytest.mark.parametrize(
    "num,text",
    [
        (0, "không"),
        (7, "bảy"),
        (10, "mười"),
        (11, "mười một"),
        (14, "mười bốn"),
        (15, "mười lăm"),
        (20, "hai mươi"),
        (21, "hai mươi mốt"),
        (24, "hai mươi tư"),
        (35, "ba mươi lăm"),
        (60, "sáu mươi"),
    ],
)
def test_read_number_vi(num, text):
    assert read_number_vi(num) == text


def test_read_number_vi_out_of_range():
    with pytest.raises(ValueError):
        read_number_vi(100)


def test_fallback_phrase_prefers_number_specific_rhyme():
    assert fallback_phrase(17) in PHRASES[17]
    assert fallback_phrase(33, random.Random(1)) in GENERIC_PHRASES


class FakeCommentary:
    def __init__(self, text):
        self.text = text
        self.asked = []

    async def generate(self, number):
        self.asked.append(number)
        return self.text


@pytest.mark.asyncio
async def test_announce_uses_service_text():
    svc = FakeCommentary("Hai mươi mốt, tuổi xuân phơi phới.")
    a = await announce(21, svc)
    assert svc.asked == [21]
    assert a.from_service
    assert a.phrase == "Hai mươi mốt, tuổi xuân phơi phới."
    assert a.spoken.endswith("Số hai mươi mốt.")


@pytest.mark.asyncio
async def test_announce_falls_back_when_service_gives_nothing():
    a = await announce(10, FakeCommentary(None))
    assert not a.from_service
    assert a.phrase in PHRASES[10]
    assert a.spoken == f"{a.phrase} Con số mười."


@pytest.mark.asyncio
async def test_announce_without_service():
    a = await announce(44, None, random.Random(0))
    assert a.phrase in GENERIC_PHRASES
    assert a.spoken.endswith("Con số bốn mươi tư.")


class FakeResponse:
    def __init__(self, status_code, data=None, text=""):
        self.status_code = status_code
        self._data = data
        self.text = text

    def json(self):
        if self._data is None:
            raise ValueError("no json")
        return self._data


@pytest.mark.asyncio
async def test_http_client_reads_response_field(monkeypatch):
    calls = []

    def fake_post(url, json, timeout):
        calls.append((url, json, timeout))
        return FakeResponse(200, {"response": "  Con 22 đây!  "})

    monkeypatch.setattr(commentary.requests, "post", fake_post)
    client = HttpCommentaryClient("http://mc.local/api/generate", model="m", timeout=1.5)

    assert await client.generate(22) == "Con 22 đây!"
    url, payload, timeout = calls[0]
    assert url == "http://mc.local/api/generate"
    assert payload["model"] == "m"
    assert "22" in payload["prompt"]
    assert timeout == 1.5


@pytest.mark.asyncio
async def test_http_client_gives_up_quietly(monkeypatch):
    def boom(url, json, timeout):
        raise requests.Timeout("slow MC")

    monkeypatch.setattr(commentary.requests, "post", boom)
    client = HttpCommentaryClient("http://mc.local/api/generate")
    assert await client.generate(5) is None

    monkeypatch.setattr(commentary.requests, "post", lambda url, json, timeout: FakeResponse(500, text="oops"))
    assert await client.generate(5) is None

    monkeypatch.setattr(
        commentary.requests, "post", lambda url, json, timeout: FakeResponse(200, {"choices": [{"text": "Số năm"}]})
    )
    assert await client.generate(5) == "Số năm"
