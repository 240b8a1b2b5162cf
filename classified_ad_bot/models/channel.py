"""Channel model for the Classified Ad Bot."""

from datetime import datetime
from enum import Enum
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import BigInteger, Boolean, DateTime, Enum as SQLEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from classified_ad_bot.database.connection import Base

if TYPE_CHECKING:
    from classified_ad_bot.models.category import CategoryChannel


class ChannelModerationMode(Enum):
    """How ads reach a channel."""
    AUTO = "auto"
    MODERATED = "moderated"


class Channel(Base):
    """Channel model representing a Telegram destination for ads."""

    __tablename__ = "channels"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    telegram_chat_id: Mapped[int] = mapped_column(BigInteger, unique=True, nullable=False, index=True)
    telegram_username: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    moderation_mode: Mapped[ChannelModerationMode] = mapped_column(
        SQLEnum(ChannelModerationMode),
        default=ChannelModerationMode.AUTO,
        nullable=False
    )

    enable_spam_filter: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    spam_filter_free_only: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    require_subscription: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    subscription_channel_username: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    footer_link_text: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    footer_link_url: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)

    # Message with the "publish" button, see PinService
    pinned_message_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

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

    category_links: Mapped[List["CategoryChannel"]] = relationship(
        "CategoryChannel",
        back_populates="channel",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        """String representation of Channel."""
        return f"<Channel(id={self.id}, title={self.title}, mode={self.moderation_mode.value})>"

    @property
    def is_moderated(self) -> bool:
        """Check if ads for this channel need a reviewer decision."""
        return self.moderation_mode == ChannelModerationMode.MODERATED

    @property
    def handle(self) -> Optional[str]:
        """Public username without the leading @, if the channel has one."""
        if not self.telegram_username:
            return None
        return self.telegram_username.strip().lstrip("@") or None

    @property
    def display_name(self) -> str:
        """Get display name for the channel."""
        return self.title or f"Channel {self.telegram_chat_id}"

    def spam_filter_applies(self, is_paid: bool) -> bool:
        """Check if the per-channel spam filter must run for an ad."""
        if not self.enable_spam_filter:
            return False
        return not is_paid if self.spam_filter_free_only else True
