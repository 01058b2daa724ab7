"""Persisted session record.

Exactly one record is kept, under :data:`SESSION_STORAGE_KEY`, in a small
JSON file. Nothing else about the partner is written to disk.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from pyfoodime._constants import SESSION_STORAGE_KEY
from pyfoodime.session import Session

_logger = logging.getLogger(__name__)


class SessionStorage:
    """Read/write the session record stored at *path*."""

    def __init__(self, path: Path, *, key: str = SESSION_STORAGE_KEY) -> None:
        self._path = path
        self._key = key

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Session | None:
        """Return the stored session, or ``None`` when absent or unreadable."""
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError:
            _logger.warning("Could not read session file %s", self._path, exc_info=True)
            return None

        try:
            document: Any = json.loads(text)
        except json.JSONDecodeError:
            _logger.warning("Session file %s is not JSON; ignoring it", self._path)
            return None

        record = document.get(self._key) if isinstance(document, dict) else None
        if not isinstance(record, dict):
            return None
        try:
            return Session.model_validate(record)
        except ValidationError:
            _logger.warning("Session record in %s is invalid; ignoring it", self._path)
            return None

    def save(self, session: Session) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        document = {self._key: session.model_dump(mode="json")}
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(document), encoding="utf-8")
        os.replace(tmp, self._path)

    def remove(self) -> None:
        try:
            self._path.unlink()
        except FileNotFoundError:
            return
