"""Category and CategoryChannel models for the Classified Ad Bot."""

from typing import List, Optional, TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from classified_ad_bot.database.connection import Base

if TYPE_CHECKING:
    from classified_ad_bot.models.channel import Channel


class Category(Base):
    """Category tree node. Parents are assigned on creation only, so the tree has no cycles."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    slug: Mapped[str] = mapped_column(String(128), default="", nullable=False)
    parent_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id"), nullable=True, index=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    channel_links: Mapped[List["CategoryChannel"]] = relationship(
        "CategoryChannel",
        back_populates="category",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        """String representation of Category."""
        return f"<Category(id={self.id}, name={self.name}, parent_id={self.parent_id})>"

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


class CategoryChannel(Base):
    """Link between a category and a channel it publishes into."""

    __tablename__ = "category_channels"

    category_id: Mapped[int] = mapped_column(ForeignKey("categories.id"), primary_key=True)
    channel_id: Mapped[int] = mapped_column(ForeignKey("channels.id"), primary_key=True)

    # Soft-disable keeps the link row instead of deleting it
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    category: Mapped["Category"] = relationship("Category", back_populates="channel_links")
    channel: Mapped["Channel"] = relationship("Channel", back_populates="category_links")

    def __repr__(self) -> str:
        """String representation of CategoryChannel."""
        return (
            f"<CategoryChannel(category_id={self.category_id}, channel_id={self.channel_id}, "
            f"enabled={self.is_enabled})>"
        )
