from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .logging import get_logger
from .models import SnapshotFormatError, UsageSnapshot

STORAGE_KEY = "apiUsage"

logger = get_logger(__name__)


class QuotaStore(ABC):
    """Durable home of the single usage snapshot.

    Subclasses supply the backing medium through ``_read``, ``_write`` and ``clear``.

    ``load`` returns ``None`` both when nothing has been saved and when what was
    saved can no longer be read as a snapshot.
    """

    def load(self) -> Optional[UsageSnapshot]:
        raw = self._read()
        if raw is None:
            return None
        try:
            return UsageSnapshot.load(raw)
        except SnapshotFormatError as exc:
            logger.warning("Discarding malformed usage snapshot: %s", exc)
            return None

    def save(self, snapshot: UsageSnapshot) -> None:
        self._write(snapshot.dump())

    @abstractmethod
    def clear(self) -> None:
        ...

    @abstractmethod
    def _read(self) -> Optional[Any]:
        ...

    @abstractmethod
    def _write(self, payload: Dict[str, Any]) -> None:
        ...


class JsonFileQuotaStore(QuotaStore):
    """Filesystem-backed store holding one JSON document keyed by ``STORAGE_KEY``."""

    def __init__(self, path: Union[str, os.PathLike[str]]):
        self.path = Path(path).expanduser()
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> Optional[Any]:
        if not self.path.exists():
            return None
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                document = json.load(fh)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            logger.warning("Usage file %s is not valid JSON: %s", self.path, exc)
            return None
        if not isinstance(document, dict):
            return document
        return document.get(STORAGE_KEY)

    def _write(self, payload: Dict[str, Any]) -> None:
        tmp = self.path.with_name(self.path.name + ".tmp")
        with tmp.open("w", encoding="utf-8") as fh:
            json.dump({STORAGE_KEY: payload}, fh, ensure_ascii=False, indent=2)
        os.replace(tmp, self.path)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


class MemoryQuotaStore(QuotaStore):
    """Process-local store; the payload is kept in its serialised form."""

    def __init__(self) -> None:
        self._payload: Optional[str] = None

    def _read(self) -> Optional[Any]:
        if self._payload is None:
            return None
        return json.loads(self._payload)

    def _write(self, payload: Dict[str, Any]) -> None:
        self._payload = json.dumps(payload)

    def clear(self) -> None:
        self._payload = None
