"""Prompt history storage for optimization sessions."""
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional
from models.history import PromptHistory
from utils.logging_utils import setup_logging

logger = setup_logging()


class HistoryStore(ABC):
    """Keyed store of session id -> PromptHistory."""

    def create(self, session_id: str, global_prompt: str, original_prompt: str) -> PromptHistory:
        """Create and save an empty history for a new session."""
        if self.get(session_id) is not None:
            raise ValueError(f"Prompt history {session_id} already exists")

        history = PromptHistory(
            id=session_id,
            global_prompt=global_prompt,
            original_prompt=original_prompt,
            final_prompt=original_prompt
        )
        self.save(history)
        return history

    @abstractmethod
    def save(self, history: PromptHistory):
        """Insert or replace the history stored under ``history.id``."""

    @abstractmethod
    def get(self, session_id: str) -> Optional[PromptHistory]:
        """Get a history, or None if unknown."""

    @abstractmethod
    def list_ids(self) -> List[str]:
        """All stored session ids, oldest first."""


class InMemoryHistoryStore(HistoryStore):
    """Process-local store; nothing survives a restart."""

    def __init__(self):
        self._histories: Dict[str, PromptHistory] = {}

    def save(self, history: PromptHistory):
        self._histories[history.id] = history
        logger.debug("Saved prompt history", session_id=history.id, iterations=len(history.iterations))

    def get(self, session_id: str) -> Optional[PromptHistory]:
        return self._histories.get(session_id)

    def list_ids(self) -> List[str]:
        return list(self._histories.keys())


class JsonFileHistoryStore(HistoryStore):
    """One JSON file per session under a directory."""

    _SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")

    def __init__(self, directory: Path):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path_for(self, session_id: str) -> Path:
        if not self._SAFE_ID.match(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.directory / f"{session_id}.json"

    def save(self, history: PromptHistory):
        path = self._path_for(history.id)
        path.write_text(history.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
        logger.debug("Saved prompt history", session_id=history.id, filepath=str(path))

    def get(self, session_id: str) -> Optional[PromptHistory]:
        path = self._path_for(session_id)
        if not path.exists():
            return None
        return PromptHistory.model_validate_json(path.read_text(encoding="utf-8"))

    def list_ids(self) -> List[str]:
        files = sorted(self.directory.glob("*.json"), key=lambda p: p.stat().st_mtime)
        return [p.stem for p in files]
