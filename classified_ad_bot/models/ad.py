"""Ad and AdPublication models for the Classified Ad Bot."""

from datetime import datetime
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, DateTime, Enum as SQLEnum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from classified_ad_bot.database.connection import Base

if TYPE_CHECKING:
    from classified_ad_bot.models.user import User
    from classified_ad_bot.models.category import Category
    from classified_ad_bot.models.channel import Channel
    from classified_ad_bot.models.moderation import ModerationRequest


class AdStatus(Enum):
    """Ad lifecycle status."""
    DRAFT = "draft"
    PENDING_MODERATION = "pending_moderation"
    PUBLISHED = "published"
    REJECTED = "rejected"


class MediaType(Enum):
    """Media attached to a paid ad."""
    NONE = "none"
    PHOTO = "photo"
    VIDEO = "video"


class Ad(Base):
    """Ad model representing a single classified-ad submission."""

    __tablename__ = "ads"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), nullable=False, index=True)

    # Location snapshot taken from the user profile at submission time
    country: Mapped[str] = mapped_column(String(64), default="", nullable=False)
    city: Mapped[str] = mapped_column(String(64), default="", nullable=False)

    title: Mapped[str] = mapped_column(String(200), default="", nullable=False)
    text: Mapped[str] = mapped_column(Text, default="", nullable=False)
    contacts: Mapped[str] = mapped_column(String(256), default="", nullable=False)

    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    media_type: Mapped[MediaType] = mapped_column(SQLEnum(MediaType), default=MediaType.NONE, nullable=False)
    media_file_id: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)

    status: Mapped[AdStatus] = mapped_column(
        SQLEnum(AdStatus),
        default=AdStatus.DRAFT,
        nullable=False,
        index=True
    )
    bump_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

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

    user: Mapped["User"] = relationship("User", back_populates="ads")
    category: Mapped["Category"] = relationship("Category")

    publications: Mapped[List["AdPublication"]] = relationship(
        "AdPublication",
        back_populates="ad",
        cascade="all, delete-orphan"
    )
    moderation_requests: Mapped[List["ModerationRequest"]] = relationship(
        "ModerationRequest",
        back_populates="ad",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        """String representation of Ad."""
        return f"<Ad(id={self.id}, status={self.status.value}, paid={self.is_paid})>"

    @property
    def has_media(self) -> bool:
        """Check if the ad carries a photo or video to send."""
        return self.media_type != MediaType.NONE and bool(self.media_file_id)

    @property
    def text_fields(self) -> List[str]:
        """Fields screened by the content guard, each checked on its own."""
        return [self.title, self.text, self.contacts]


class AdPublication(Base):
    """Append-only record of one message sent to a channel."""

    __tablename__ = "ad_publications"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    ad_id: Mapped[int] = mapped_column(ForeignKey("ads.id", ondelete="CASCADE"), nullable=False, index=True)
    channel_id: Mapped[int] = mapped_column(ForeignKey("channels.id"), nullable=False, index=True)

    telegram_message_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    link: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    is_bump: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    published_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    ad: Mapped["Ad"] = relationship("Ad", back_populates="publications")
    channel: Mapped["Channel"] = relationship("Channel")

    def __repr__(self) -> str:
        """String representation of AdPublication."""
        return (
            f"<AdPublication(id={self.id}, ad_id={self.ad_id}, channel_id={self.channel_id}, "
            f"message_id={self.telegram_message_id})>"
        )
