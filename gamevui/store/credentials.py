from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from gamevui.store.models import RelayCredential

logger = logging.getLogger(__name__)


class RelayCredentialStore:
    """Single JSON blob on disk: {"endpoint", "user", "credential"}."""
    def __init__(self, path: str | os.PathLike) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> Optional[RelayCredential]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            return RelayCredential.model_validate(json.loads(raw))
        except (ValueError, ValidationError) as e:
            logger.warning("Ignoring unreadable relay credentials at %s: %s", self.path, e)
            return None

    def save(self, credential: RelayCredential) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(credential.model_dump_json(), encoding="utf-8")

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
