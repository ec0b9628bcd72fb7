from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol

import requests

from gamevui.domain.lottery.numbers import read_number_vi

logger = logging.getLogger(__name__)

# Rhymes used when no commentary service is configured (or it gives up)
PHRASES: Dict[int, List[str]] = {
    1: ["Gì ra con mấy, con mấy gì ra. Trúc xinh trúc mọc đầu đình, em xinh em đứng một mình cũng xinh. Là con số 1."],
    10: ["Tròn trĩnh như quả trứng gà, là con số 10."],
    17: ["Mười bảy bẻ gãy sừng trâu. Là con 17."],
    22: ["Tuy em nó xấu nhưng mà kết cấu nó đẹp. Là con 22."],
    30: ["Ba mươi Tết đến nơi rồi, con 30."],
    40: ["Bốn mươi, bốn mươi, ai cười thì cười."],
    50: ["Năm mươi, năm mươi, nửa đời người."],
    60: ["Sáu mươi năm cuộc đời. Con 60."],
}
GENERIC_PHRASES: List[str] = [
    "Cờ ra con mấy, con mấy gì ra.",
    "Lặng lặng mà nghe, tôi kêu con cờ ra.",
    "Gió thổi lung lay, bàn tay con số mấy.",
]

PROMPT_TEMPLATE = (
    "Bạn là một MC hoạt náo viên vui tính trong trò chơi Lô tô của Việt Nam. "
    "Số vừa bốc được là: {number}. "
    "Hãy tạo một câu rao lô tô ngắn (1-2 câu), hài hước hoặc vần điệu liên quan đến số {number}. "
    "Chỉ trả về nội dung câu rao, không thêm dẫn dắt."
)


def fallback_phrase(number: int, rng: random.Random = random) -> str:
    pool = PHRASES.get(number) or GENERIC_PHRASES
    return rng.choice(pool)


class CommentaryService(Protocol):
    async def generate(self, number: int) -> Optional[str]: ...


class HttpCommentaryClient:
    """
    Asks an Ollama-style /api/generate endpoint for a caller's rhyme.
    Any failure (HTTP error, timeout, bad payload) is logged and returns None.
    """
    def __init__(self, url: str, *, model: str = "llama3", timeout: float = 8.0) -> None:
        self.url = url
        self.model = model
        self.timeout = timeout

    def _request(self, number: int) -> Optional[str]:
        payload = {
            "model": self.model,
            "prompt": PROMPT_TEMPLATE.format(number=number),
            "stream": False,
            "options": {"num_predict": 80},
        }
        try:
            resp = requests.post(self.url, json=payload, timeout=self.timeout)
            if resp.status_code != 200:
                logger.warning("Commentary error %s: %s", resp.status_code, resp.text[:80])
                return None
            data = resp.json()
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Commentary request failed: %s", exc)
            return None

        text = data.get("response") if isinstance(data, dict) else None
        if not text and isinstance(data, dict) and isinstance(data.get("choices"), list) and data["choices"]:
            text = data["choices"][0].get("text")
        return text.strip() if text else None

    async def generate(self, number: int) -> Optional[str]:
        # requests blocks; keep it off the event loop
        return await asyncio.to_thread(self._request, number)


@dataclass
class Announcement:
    number: int
    phrase: str
    spoken: str
    from_service: bool = False


async def announce(
    number: int,
    service: Optional[CommentaryService] = None,
    rng: random.Random = random,
) -> Announcement:
    """Phrase shown on screen + the text handed to speech playback."""
    spoken_number = read_number_vi(number)
    if service is not None:
        comment = await service.generate(number)
        if comment:
            return Announcement(number, comment, f"{comment} Số {spoken_number}.", from_service=True)

    phrase = fallback_phrase(number, rng)
    return Announcement(number, phrase, f"{phrase} Con số {spoken_number}.")
