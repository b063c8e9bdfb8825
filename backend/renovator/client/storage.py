"""Client-side storage of the current token pair.

Every call site reads tokens through ``TokenStorage`` so the backend can be
swapped (memory, file, OS keychain) without touching the gateway or guard.
"""
import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class StoredTokens:
    access_token: str
    refresh_token: str
    expires_in: int
    session_id: str | None = None


class TokenStorage(ABC):
    """Abstract get/set/clear interface over the stored token pair."""

    @abstractmethod
    def get(self) -> StoredTokens | None:
        pass

    @abstractmethod
    def set(self, tokens: StoredTokens) -> None:
        pass

    @abstractmethod
    def clear(self) -> None:
        pass


class MemoryTokenStorage(TokenStorage):
    def __init__(self, tokens: StoredTokens | None = None):
        self._tokens = tokens

    def get(self) -> StoredTokens | None:
        return self._tokens

    def set(self, tokens: StoredTokens) -> None:
        self._tokens = tokens

    def clear(self) -> None:
        self._tokens = None


class JsonFileTokenStorage(TokenStorage):
    """Tokens in a JSON file readable only by the owner."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def get(self) -> StoredTokens | None:
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text())
            return StoredTokens(
                access_token=data["access_token"],
                refresh_token=data["refresh_token"],
                expires_in=int(data["expires_in"]),
                session_id=data.get("session_id"),
            )
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable token file {self.path}: {e.__class__.__name__}")
            return None

    def set(self, tokens: StoredTokens) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(asdict(tokens), f)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
