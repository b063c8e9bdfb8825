# backend/renovator/models/session.py
from uuid import UUID, uuid4
from datetime import datetime
from sqlalchemy import Text, DateTime, ForeignKey, Index, func
from sqlalchemy.orm import Mapped, mapped_column
from renovator.models.base import Base


class Session(Base):
    """Server-side record binding a user to an issued token pair.

    The token strings are opaque; they are stored for lookup and never parsed.
    """
    __tablename__ = "sessions"
    # Hash indexes: provider JWTs can exceed the B-tree row size limit
    __table_args__ = (
        Index("ix_sessions_access_token", "access_token", postgresql_using="hash"),
        Index("ix_sessions_refresh_token", "refresh_token", postgresql_using="hash"),
    )

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str] = mapped_column(Text, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
