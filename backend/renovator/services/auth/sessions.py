"""Session persistence. CRUD over Session records, no business logic."""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from renovator.models.session import Session
from renovator.schemas.auth import TokenSet

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_expired(session: Session, now: datetime | None = None) -> bool:
    """True when the session's access token must be treated as invalid."""
    expires_at = session.expires_at
    # Some drivers hand back naive datetimes; they are stored as UTC
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return expires_at < (now or utcnow())


def _require_tokens(token_set: TokenSet) -> None:
    if not token_set.access_token or not token_set.refresh_token:
        raise ValueError("Session requires both an access token and a refresh token")


class SessionStore(ABC):
    """Abstract interface for session persistence."""

    def __init__(self, clock: Clock = utcnow):
        self.clock = clock

    def expires_at_for(self, token_set: TokenSet) -> datetime:
        return self.clock() + timedelta(seconds=token_set.expires_in)

    def is_expired(self, session: Session) -> bool:
        return is_expired(session, self.clock())

    @abstractmethod
    async def create(self, user_id: UUID, token_set: TokenSet) -> Session:
        """Persist a new session for a freshly issued token pair."""
        pass

    @abstractmethod
    async def get_by_id(self, session_id: UUID) -> Session | None:
        pass

    @abstractmethod
    async def get_by_access_token(self, access_token: str) -> Session | None:
        pass

    @abstractmethod
    async def get_by_refresh_token(self, refresh_token: str) -> Session | None:
        pass

    @abstractmethod
    async def update(self, session_id: UUID, token_set: TokenSet) -> Session | None:
        """Overwrite the token fields and expiry in place.

        Returns None if the session no longer exists.
        """
        pass

    @abstractmethod
    async def delete(self, session_id: UUID) -> None:
        """Delete a session. Deleting a missing session is not an error."""
        pass

    @abstractmethod
    async def delete_all_for_user(self, user_id: UUID) -> None:
        pass

    @abstractmethod
    async def list_for_user(self, user_id: UUID) -> list[Session]:
        """All sessions of a user, newest first."""
        pass

    @abstractmethod
    async def delete_expired(self) -> int:
        """Remove every session whose expiry has passed; return how many."""
        pass


class SqlAlchemySessionStore(SessionStore):
    """Session store backed by the application database.

    Each write commits on its own; the subsystem needs no multi-row
    transactions.
    """

    def __init__(self, session: AsyncSession, clock: Clock = utcnow):
        super().__init__(clock)
        self.session = session

    async def create(self, user_id: UUID, token_set: TokenSet) -> Session:
        _require_tokens(token_set)
        record = Session(
            id=uuid4(),
            user_id=user_id,
            access_token=token_set.access_token,
            refresh_token=token_set.refresh_token,
            expires_at=self.expires_at_for(token_set),
            created_at=self.clock(),
        )
        self.session.add(record)
        await self.session.commit()
        return record

    async def get_by_id(self, session_id: UUID) -> Session | None:
        result = await self.session.execute(select(Session).where(Session.id == session_id))
        return result.scalar_one_or_none()

    async def get_by_access_token(self, access_token: str) -> Session | None:
        result = await self.session.execute(
            select(Session).where(Session.access_token == access_token)
        )
        return result.scalar_one_or_none()

    async def get_by_refresh_token(self, refresh_token: str) -> Session | None:
        result = await self.session.execute(
            select(Session).where(Session.refresh_token == refresh_token)
        )
        return result.scalar_one_or_none()

    async def update(self, session_id: UUID, token_set: TokenSet) -> Session | None:
        _require_tokens(token_set)
        record = await self.get_by_id(session_id)
        if record is None:
            return None

        record.access_token = token_set.access_token
        record.refresh_token = token_set.refresh_token
        record.expires_at = self.expires_at_for(token_set)
        await self.session.commit()
        return record

    async def delete(self, session_id: UUID) -> None:
        await self.session.execute(delete(Session).where(Session.id == session_id))
        await self.session.commit()

    async def delete_all_for_user(self, user_id: UUID) -> None:
        await self.session.execute(delete(Session).where(Session.user_id == user_id))
        await self.session.commit()

    async def list_for_user(self, user_id: UUID) -> list[Session]:
        result = await self.session.execute(
            select(Session)
            .where(Session.user_id == user_id)
            .order_by(Session.created_at.desc())
        )
        return list(result.scalars().all())

    async def delete_expired(self) -> int:
        result = await self.session.execute(
            delete(Session).where(Session.expires_at < self.clock())
        )
        await self.session.commit()
        return result.rowcount or 0


class InMemorySessionStore(SessionStore):
    """Process-local session store for tests and single-process deployments."""

    def __init__(self, clock: Clock = utcnow):
        super().__init__(clock)
        self._sessions: dict[UUID, Session] = {}

    async def create(self, user_id: UUID, token_set: TokenSet) -> Session:
        _require_tokens(token_set)
        record = Session(
            id=uuid4(),
            user_id=user_id,
            access_token=token_set.access_token,
            refresh_token=token_set.refresh_token,
            expires_at=self.expires_at_for(token_set),
            created_at=self.clock(),
        )
        self._sessions[record.id] = record
        return record

    async def get_by_id(self, session_id: UUID) -> Session | None:
        return self._sessions.get(session_id)

    async def get_by_access_token(self, access_token: str) -> Session | None:
        for record in self._sessions.values():
            if record.access_token == access_token:
                return record
        return None

    async def get_by_refresh_token(self, refresh_token: str) -> Session | None:
        for record in self._sessions.values():
            if record.refresh_token == refresh_token:
                return record
        return None

    async def update(self, session_id: UUID, token_set: TokenSet) -> Session | None:
        _require_tokens(token_set)
        record = self._sessions.get(session_id)
        if record is None:
            return None

        record.access_token = token_set.access_token
        record.refresh_token = token_set.refresh_token
        record.expires_at = self.expires_at_for(token_set)
        return record

    async def delete(self, session_id: UUID) -> None:
        self._sessions.pop(session_id, None)

    async def delete_all_for_user(self, user_id: UUID) -> None:
        for session_id in [s.id for s in self._sessions.values() if s.user_id == user_id]:
            del self._sessions[session_id]

    async def list_for_user(self, user_id: UUID) -> list[Session]:
        sessions = [s for s in self._sessions.values() if s.user_id == user_id]
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)

    async def delete_expired(self) -> int:
        now = self.clock()
        expired = [s.id for s in self._sessions.values() if is_expired(s, now)]
        for session_id in expired:
            del self._sessions[session_id]
        return len(expired)
