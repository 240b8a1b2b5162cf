from typing import Optional
from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest, TelegramForbiddenError
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from classified_ad_bot.models.channel import Channel
from classified_ad_bot.services.settings_service import SettingsService
from classified_ad_bot.database.connection import create_db_session
from classified_ad_bot.config.settings import settings
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)


class PinServiceError(Exception):
    pass


class PinningError(PinServiceError):
    pass


def publish_button_keyboard(bot_username: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="📝 PUBLISH", url=f"https://t.me/{bot_username}?start=publish")]
    ])


class PinService:
    """Pins a "publish an ad" button message in a channel and removes it again."""

    def __init__(self, bot: Bot, session: Optional[AsyncSession] = None):
        self.bot = bot
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> AsyncSession:
        if self._session:
            return self._session
        return await create_db_session()

    async def pin_publish_button(self, channel_id: int) -> bool:
        session = await self._get_session()
        try:
            channel = await session.get(Channel, channel_id)
            if channel is None:
                logger.warning(f"Cannot pin: channel {channel_id} not found")
                return False

            me = await self.bot.get_me()
            if not me.username:
                raise PinningError("Bot username is unknown")

            text = await SettingsService(session).get_str("App.DefaultPinText", "")
            text = text.strip() or settings.default_pin_text

            message = await self.bot.send_message(
                chat_id=channel.telegram_chat_id,
                text=text,
                reply_markup=publish_button_keyboard(me.username)
            )
            await self.bot.pin_chat_message(
                chat_id=channel.telegram_chat_id,
                message_id=message.message_id,
                disable_notification=True
            )

            channel.pinned_message_id = message.message_id
            await session.commit()

            logger.info(f"Pinned publish button {message.message_id} in channel {channel_id}")
            return True

        except (TelegramBadRequest, TelegramForbiddenError) as e:
            logger.error(f"Cannot pin publish button in channel {channel_id}: {e}")
            raise PinningError(f"Failed to pin message: {e}")
        except TelegramAPIError as e:
            logger.error(f"Telegram API error pinning in channel {channel_id}: {e}")
            raise PinningError(f"API error: {e}")
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error pinning in channel {channel_id}: {e}")
            raise PinServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def unpin_publish_button(self, channel_id: int) -> bool:
        session = await self._get_session()
        try:
            channel = await session.get(Channel, channel_id)
            if channel is None:
                logger.warning(f"Cannot unpin: channel {channel_id} not found")
                return False

            if channel.pinned_message_id is not None:
                await self.bot.unpin_chat_message(
                    chat_id=channel.telegram_chat_id,
                    message_id=channel.pinned_message_id
                )
                channel.pinned_message_id = None
                await session.commit()
                logger.info(f"Unpinned publish button in channel {channel_id}")
            else:
                # Nothing recorded, drop the most recent pin instead
                await self.bot.unpin_chat_message(chat_id=channel.telegram_chat_id)
                logger.info(f"Unpinned latest pinned message in channel {channel_id}")

            return True

        except TelegramAPIError as e:
            logger.error(f"Telegram API error unpinning in channel {channel_id}: {e}")
            raise PinningError(f"API error: {e}")
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error unpinning in channel {channel_id}: {e}")
            raise PinServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()
