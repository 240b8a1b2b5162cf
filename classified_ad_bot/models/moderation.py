"""ModerationRequest model for the Classified Ad Bot."""

from datetime import datetime
from enum import Enum
from typing import Optional, TYPE_CHECKING

from sqlalchemy import BigInteger, DateTime, Enum as SQLEnum, ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from classified_ad_bot.database.connection import Base

if TYPE_CHECKING:
    from classified_ad_bot.models.ad import Ad
    from classified_ad_bot.models.channel import Channel


class ModerationStatus(Enum):
    """Moderation request status. APPROVED and REJECTED are terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# SQLEnum persists member names
_PENDING_ONLY = text("status = 'PENDING'")


class ModerationRequest(Base):
    """Review request for publishing one ad into one moderated channel."""

    __tablename__ = "moderation_requests"
    __table_args__ = (
        # At most one open request per (ad, channel)
        Index(
            "uq_moderation_requests_pending",
            "ad_id",
            "channel_id",
            unique=True,
            sqlite_where=_PENDING_ONLY,
            postgresql_where=_PENDING_ONLY,
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    ad_id: Mapped[int] = mapped_column(ForeignKey("ads.id", ondelete="CASCADE"), nullable=False, index=True)
    channel_id: Mapped[int] = mapped_column(ForeignKey("channels.id"), nullable=False, index=True)

    status: Mapped[ModerationStatus] = mapped_column(
        SQLEnum(ModerationStatus),
        default=ModerationStatus.PENDING,
        nullable=False,
        index=True
    )
    reject_reason: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    reviewed_by_telegram_id: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    ad: Mapped["Ad"] = relationship("Ad", back_populates="moderation_requests")
    channel: Mapped["Channel"] = relationship("Channel")

    def __repr__(self) -> str:
        """String representation of ModerationRequest."""
        return (
            f"<ModerationRequest(id={self.id}, ad_id={self.ad_id}, channel_id={self.channel_id}, "
            f"status={self.status.value})>"
        )

    @property
    def is_pending(self) -> bool:
        """Check if the request still waits for a decision."""
        return self.status == ModerationStatus.PENDING
