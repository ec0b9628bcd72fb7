from __future__ import annotations

import uuid
from collections import deque
from typing import Deque, List

from gamevui.domain.common.models import ChatMessage
from gamevui.util.timeutil import now_ts

CHAT_HISTORY_LIMIT = 50
SYSTEM_SENDER = "Hệ thống"


def make_message(sender: str, text: str, *, is_system: bool = False) -> ChatMessage:
    return ChatMessage(
        id=f"{now_ts()}-{uuid.uuid4().hex[:8]}",
        sender=sender,
        text=text,
        is_system=is_system,
        timestamp=now_ts(),
    )


class ChatLog:
    """
    Per-participant chat history in receipt order, capped at CHAT_HISTORY_LIMIT.
    The host echoes a player's own chat back to everyone, so ids are de-duplicated.
    """
    def __init__(self, limit: int = CHAT_HISTORY_LIMIT) -> None:
        self._items: Deque[ChatMessage] = deque(maxlen=limit)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def messages(self) -> List[ChatMessage]:
        return list(self._items)

    def add(self, message: ChatMessage) -> bool:
        if any(m.id == message.id for m in self._items):
            return False
        self._items.append(message)
        return True

    def post(self, sender: str, text: str) -> ChatMessage:
        msg = make_message(sender, text)
        self.add(msg)
        return msg

    def system(self, text: str) -> ChatMessage:
        msg = make_message(SYSTEM_SENDER, text, is_system=True)
        self.add(msg)
        return msg

    def clear(self) -> None:
        self._items.clear()
