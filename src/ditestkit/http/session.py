"""Session storage.

Sessions hold named sections of data. ``FileSession`` persists them as
JSON under a save path so data written during one request survives until
the session is closed or destroyed.
"""

import json
import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class Session(ABC):
    """Abstract session.

    Usage:
        session.start()
        cart = session.get_section("cart")
        cart["items"] = [42]
        session.close()  # writes data
    """

    @property
    @abstractmethod
    def is_started(self) -> bool:
        pass

    @abstractmethod
    def start(self) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        """Write session data and end the session."""
        pass

    @abstractmethod
    def destroy(self) -> None:
        """Drop all session data."""
        pass

    @abstractmethod
    def get_section(self, name: str) -> dict[str, Any]:
        pass

    def has_section(self, name: str) -> bool:
        return name in self.get_sections()

    @abstractmethod
    def get_sections(self) -> list[str]:
        pass


class FileSession(Session):
    """Session persisted to ``<save_path>/sess_<id>.json``."""

    def __init__(self, save_path: str, session_id: Optional[str] = None):
        self.save_path = Path(save_path)
        self.id = session_id or uuid.uuid4().hex
        self._data: dict[str, dict[str, Any]] = {}
        self._started = False

    @property
    def file(self) -> Path:
        return self.save_path / f"sess_{self.id}.json"

    @property
    def is_started(self) -> bool:
        return self._started

    def start(self) -> None:
        if self._started:
            return
        self.save_path.mkdir(parents=True, exist_ok=True)
        if self.file.exists():
            with open(self.file, encoding="utf-8") as f:
                self._data = json.load(f)
        self._started = True
        logger.debug(f"Session {self.id} started")

    def close(self) -> None:
        if not self._started:
            return
        self.save_path.mkdir(parents=True, exist_ok=True)
        with open(self.file, "w", encoding="utf-8") as f:
            json.dump(self._data, f)
        self._started = False
        logger.debug(f"Session {self.id} closed")

    def destroy(self) -> None:
        self._data = {}
        self._started = False
        if self.file.exists():
            self.file.unlink()

    def get_section(self, name: str) -> dict[str, Any]:
        self.start()
        return self._data.setdefault(name, {})

    def get_sections(self) -> list[str]:
        self.start()
        return list(self._data)
