"""Quota counter and runtime settings models for the Classified Ad Bot."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from classified_ad_bot.database.connection import Base


FREE_AD_PUBLISH_KEY = "FreeAdPublish"


class DailyCounter(Base):
    """Per-user, per-calendar-day usage counter."""

    __tablename__ = "daily_counters"
    __table_args__ = (
        UniqueConstraint("user_id", "day", "counter_key", name="uq_daily_counters_user_day_key"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    day: Mapped[date] = mapped_column(Date, nullable=False)
    counter_key: Mapped[str] = mapped_column(String(64), default=FREE_AD_PUBLISH_KEY, nullable=False)
    count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def __repr__(self) -> str:
        """String representation of DailyCounter."""
        return f"<DailyCounter(user_id={self.user_id}, day={self.day}, key={self.counter_key}, count={self.count})>"


class AppSetting(Base):
    """Key/value runtime setting editable by operators."""

    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, default="", nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<AppSetting(key={self.key})>"
