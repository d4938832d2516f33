"""Single-file persistence for the shared Google OAuth token."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

log = logging.getLogger("chat_scheduler.token_store")


class TokenStore:
    """Keeps one OAuth token object as pretty-printed JSON on disk.

    The file is overwritten on every save (initial code exchange and each
    refresh). There is no rotation, expiry bookkeeping or per-user scoping.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def load(self) -> dict[str, Any] | None:
        """Return the stored token, or None if nothing usable is on disk."""
        if not self._path.is_file():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            log.error("Token file %s is not valid JSON: %s", self._path, e)
            return None
        if not isinstance(data, dict) or not data:
            log.error("Token file %s does not hold a token object", self._path)
            return None
        return data

    def save(self, token: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(token, indent=2), encoding="utf-8")
        log.info("OAuth token saved to %s", self._path)

    def clear(self) -> None:
        if self._path.is_file():
            self._path.unlink()
            log.info("OAuth token removed from %s", self._path)
