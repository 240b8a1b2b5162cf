from typing import Iterable, List, Optional
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from classified_ad_bot.models.category import Category, CategoryChannel
from classified_ad_bot.models.channel import Channel, ChannelModerationMode
from classified_ad_bot.database.connection import create_db_session
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)


class ChannelServiceError(Exception):
    pass


class ChannelNotFoundError(ChannelServiceError):
    pass


class CategoryNotFoundError(ChannelServiceError):
    pass


_CHANNEL_FIELDS = (
    "title",
    "telegram_username",
    "is_active",
    "moderation_mode",
    "enable_spam_filter",
    "spam_filter_free_only",
    "require_subscription",
    "subscription_channel_username",
    "footer_link_text",
    "footer_link_url",
)


class ChannelService:
    def __init__(self, session: Optional[AsyncSession] = None):
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> AsyncSession:
        if self._session:
            return self._session
        return await create_db_session()

    async def resolve_channels(self, category_id: int) -> List[Channel]:
        """Publication targets of a category.

        Direct enabled links to active channels win. A category without any
        inherits from its nearest ancestor that has some; a root category
        without links resolves to an empty list.
        """
        session = await self._get_session()
        try:
            current_id: Optional[int] = category_id
            while current_id is not None:
                stmt = (
                    select(Channel)
                    .join(CategoryChannel, CategoryChannel.channel_id == Channel.id)
                    .where(
                        CategoryChannel.category_id == current_id,
                        CategoryChannel.is_enabled == True,
                        Channel.is_active == True
                    )
                    .distinct()
                    .order_by(Channel.title)
                )
                result = await session.execute(stmt)
                channels = list(result.scalars().all())

                if channels:
                    logger.debug(
                        f"Category {category_id} resolved to {len(channels)} channels via category {current_id}"
                    )
                    return channels

                parent = await session.execute(select(Category.parent_id).where(Category.id == current_id))
                current_id = parent.scalar_one_or_none()

            logger.debug(f"Category {category_id} has no publication channels")
            return []

        except SQLAlchemyError as e:
            logger.error(f"Database error resolving channels for category {category_id}: {e}")
            raise ChannelServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def get_channel_by_id(self, channel_id: int) -> Optional[Channel]:
        session = await self._get_session()
        try:
            return await session.get(Channel, channel_id)
        except SQLAlchemyError as e:
            logger.error(f"Database error getting channel by ID {channel_id}: {e}")
            raise ChannelServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def get_active_channels(self) -> List[Channel]:
        session = await self._get_session()
        try:
            stmt = select(Channel).where(Channel.is_active == True).order_by(Channel.title)
            result = await session.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Database error getting active channels: {e}")
            raise ChannelServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def ensure_channel(self, telegram_chat_id: int, title: str,
                             moderation_mode: ChannelModerationMode = ChannelModerationMode.AUTO,
                             **options) -> Channel:
        """Create a channel or update the existing one with the same chat id."""
        unknown = set(options) - set(_CHANNEL_FIELDS)
        if unknown:
            raise ChannelServiceError(f"Unknown channel fields: {', '.join(sorted(unknown))}")

        session = await self._get_session()
        try:
            stmt = select(Channel).where(Channel.telegram_chat_id == telegram_chat_id)
            channel = (await session.execute(stmt)).scalar_one_or_none()

            if channel is None:
                channel = Channel(telegram_chat_id=telegram_chat_id, title=title, moderation_mode=moderation_mode)
                session.add(channel)
                logger.info(f"Registered channel {telegram_chat_id} ({title})")
            else:
                channel.title = title
                channel.moderation_mode = moderation_mode
                logger.info(f"Updated channel {telegram_chat_id} ({title})")

            for field, value in options.items():
                setattr(channel, field, value)

            await session.commit()
            await session.refresh(channel)
            return channel

        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error saving channel {telegram_chat_id}: {e}")
            raise ChannelServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def set_category_channels(self, category_id: int, channel_ids: Iterable[int]) -> List[CategoryChannel]:
        """Replace all links of a category with enabled links to the given channels."""
        session = await self._get_session()
        try:
            if not await session.get(Category, category_id):
                raise CategoryNotFoundError(f"Category {category_id} not found")

            wanted = list(dict.fromkeys(channel_ids))
            for channel_id in wanted:
                if not await session.get(Channel, channel_id):
                    raise ChannelNotFoundError(f"Channel {channel_id} not found")

            await session.execute(delete(CategoryChannel).where(CategoryChannel.category_id == category_id))

            links = [
                CategoryChannel(category_id=category_id, channel_id=channel_id, is_enabled=True)
                for channel_id in wanted
            ]
            session.add_all(links)
            await session.commit()

            logger.info(f"Category {category_id} linked to channels {wanted}")
            return links

        except (CategoryNotFoundError, ChannelNotFoundError):
            # Nothing was written yet
            raise
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error linking channels to category {category_id}: {e}")
            raise ChannelServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def set_link_enabled(self, category_id: int, channel_id: int, enabled: bool) -> bool:
        session = await self._get_session()
        try:
            stmt = (
                update(CategoryChannel)
                .where(CategoryChannel.category_id == category_id, CategoryChannel.channel_id == channel_id)
                .values(is_enabled=enabled)
            )
            result = await session.execute(stmt)
            await session.commit()

            success = result.rowcount > 0
            if success:
                logger.info(f"Link category {category_id} -> channel {channel_id} enabled={enabled}")
            else:
                logger.warning(f"Link category {category_id} -> channel {channel_id} not found")
            return success

        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error updating category link: {e}")
            raise ChannelServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()
