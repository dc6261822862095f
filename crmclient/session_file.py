from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

TOKEN_SLOT = "token"
USER_SLOT = "user"


class SessionFile:
    """Persisted session slots: ``token`` and the serialized ``user`` profile.

    Both slots live in one JSON document, so they are written and removed
    together.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> tuple[str | None, dict[str, Any] | None]:
        try:
            raw = self.path.read_text()
        except FileNotFoundError:
            return None, None
        except OSError as exc:
            logger.warning("session file read failed", exc_info=exc)
            return None, None
        if not raw.strip():
            return None, None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("session file is not valid json: %s", self.path)
            return None, None
        if not isinstance(data, dict):
            return None, None
        token = data.get(TOKEN_SLOT)
        user = data.get(USER_SLOT)
        if not isinstance(token, str) or not token:
            token = None
        if not isinstance(user, dict):
            user = None
        return token, user

    def save(self, token: str, user: dict[str, Any]) -> None:
        path = self.path
        path.parent.mkdir(parents=True, exist_ok=True)
        body = json.dumps({TOKEN_SLOT: token, USER_SLOT: user}, ensure_ascii=False, indent=2)
        tmp_path = path.with_name(f".{path.name}.tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(body + "\n")
        os.replace(tmp_path, path)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
