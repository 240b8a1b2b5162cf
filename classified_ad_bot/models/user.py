"""User and Reviewer models for the Classified Ad Bot."""

from datetime import datetime
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from classified_ad_bot.database.connection import Base

if TYPE_CHECKING:
    from classified_ad_bot.models.ad import Ad


class User(Base):
    """User model representing people who submit ads through the bot."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    telegram_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False, index=True)
    username: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    first_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Quota overrides: unlimited skips the free-ad quota entirely,
    # bonus placements are spent one by one once the quota is exhausted
    unlimited_placements: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    bonus_placements: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    ads: Mapped[List["Ad"]] = relationship(
        "Ad",
        back_populates="user",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        """String representation of User."""
        return f"<User(id={self.id}, telegram_id={self.telegram_id}, bonus={self.bonus_placements})>"

    @property
    def has_bonus(self) -> bool:
        """Check if user can spend a bonus placement."""
        return self.bonus_placements > 0


class Reviewer(Base):
    """Operator account that receives moderation requests in private chat."""

    __tablename__ = "reviewers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    telegram_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Reviewer(id={self.id}, telegram_id={self.telegram_id}, active={self.is_active})>"
