"""Local identity records for people who sign in through the provider.

Users are matched by email, not by the provider's subject id: identity
providers may reassign internal ids (realm re-imports, provider migrations),
while the email is what the rest of the application keys on. The latest
subject id is stored on the record so ``get_by_external_id`` keeps working.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from renovator.models.user import User
from renovator.schemas.auth import Identity

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _apply_profile(
    user: User,
    given_name: str | None,
    family_name: str | None,
    external_id: str,
    phone: str | None,
    company: str | None,
) -> None:
    user.first_name = given_name or ""
    user.last_name = family_name or ""
    user.idp_user_id = external_id
    user.phone = phone
    user.company = company
    user.last_login_at = datetime.now(timezone.utc)


class UserDirectory(ABC):
    """Abstract interface for the identity upsert collaborator."""

    @abstractmethod
    async def find_or_create_user(
        self,
        email: str,
        given_name: str | None,
        family_name: str | None,
        external_id: str,
        phone: str | None = None,
        company: str | None = None,
    ) -> Identity:
        """Create the user if no record has this email, else update its profile."""
        pass

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Identity | None:
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Identity | None:
        pass

    @abstractmethod
    async def get_by_external_id(self, external_id: str) -> Identity | None:
        pass


class SqlAlchemyUserDirectory(UserDirectory):
    """User directory backed by the ``users`` table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_or_create_user(
        self,
        email: str,
        given_name: str | None,
        family_name: str | None,
        external_id: str,
        phone: str | None = None,
        company: str | None = None,
    ) -> Identity:
        email = normalize_email(email)
        result = await self.session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if not user:
            user = User(id=uuid4(), email=email, is_active=True)
            self.session.add(user)
            logger.info(f"Creating user {user.id} on first login")
        elif user.idp_user_id and user.idp_user_id != external_id:
            logger.info(f"Provider subject changed for user {user.id}; keeping the email match")

        _apply_profile(user, given_name, family_name, external_id, phone, company)
        await self.session.commit()
        return Identity.model_validate(user)

    async def get_by_id(self, user_id: UUID) -> Identity | None:
        result = await self.session.execute(
            select(User).where(User.id == user_id, User.is_active.is_(True))
        )
        user = result.scalar_one_or_none()
        return Identity.model_validate(user) if user else None

    async def get_by_email(self, email: str) -> Identity | None:
        result = await self.session.execute(
            select(User).where(User.email == normalize_email(email), User.is_active.is_(True))
        )
        user = result.scalar_one_or_none()
        return Identity.model_validate(user) if user else None

    async def get_by_external_id(self, external_id: str) -> Identity | None:
        result = await self.session.execute(
            select(User).where(User.idp_user_id == external_id, User.is_active.is_(True))
        )
        user = result.scalar_one_or_none()
        return Identity.model_validate(user) if user else None


class InMemoryUserDirectory(UserDirectory):
    """Process-local user directory for tests and demos."""

    def __init__(self):
        self._users: dict[UUID, User] = {}

    def __len__(self) -> int:
        return len(self._users)

    async def find_or_create_user(
        self,
        email: str,
        given_name: str | None,
        family_name: str | None,
        external_id: str,
        phone: str | None = None,
        company: str | None = None,
    ) -> Identity:
        email = normalize_email(email)
        user = next((u for u in self._users.values() if u.email == email), None)
        if user is None:
            user = User(id=uuid4(), email=email, is_active=True)
            self._users[user.id] = user

        _apply_profile(user, given_name, family_name, external_id, phone, company)
        return Identity.model_validate(user)

    async def get_by_id(self, user_id: UUID) -> Identity | None:
        user = self._users.get(user_id)
        return Identity.model_validate(user) if user and user.is_active else None

    async def get_by_email(self, email: str) -> Identity | None:
        email = normalize_email(email)
        for user in self._users.values():
            if user.email == email and user.is_active:
                return Identity.model_validate(user)
        return None

    async def get_by_external_id(self, external_id: str) -> Identity | None:
        for user in self._users.values():
            if user.idp_user_id == external_id and user.is_active:
                return Identity.model_validate(user)
        return None
