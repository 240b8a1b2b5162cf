from typing import Optional, Tuple
from aiogram import Bot
from aiogram.exceptions import AiogramError, TelegramAPIError, TelegramBadRequest, TelegramForbiddenError

from classified_ad_bot.models.ad import Ad, MediaType
from classified_ad_bot.models.category import Category
from classified_ad_bot.models.channel import Channel
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)


class PublishError(Exception):
    pass


def build_message_link(channel: Channel, message_id: int) -> Optional[str]:
    """Public link to a channel message; private channels have none."""
    if not channel.handle:
        return None
    return f"https://t.me/{channel.handle}/{message_id}"


class TelegramPublisher:
    """Sends rendered ads into channels. Recording the publication is the caller's job."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def publish(self, ad: Ad, category: Category, channel: Channel,
                      text: str, is_bump: bool = False) -> Tuple[int, Optional[str]]:
        chat_id = channel.telegram_chat_id
        try:
            if ad.is_paid and ad.has_media:
                if ad.media_type == MediaType.PHOTO:
                    message = await self.bot.send_photo(
                        chat_id=chat_id,
                        photo=ad.media_file_id,
                        caption=text,
                        parse_mode="HTML"
                    )
                else:
                    message = await self.bot.send_video(
                        chat_id=chat_id,
                        video=ad.media_file_id,
                        caption=text,
                        parse_mode="HTML"
                    )
            else:
                message = await self.bot.send_message(
                    chat_id=chat_id,
                    text=text,
                    parse_mode="HTML",
                    disable_web_page_preview=True
                )

        except TelegramBadRequest as e:
            logger.error(f"Bad request publishing ad {ad.id} to channel {channel.id}: {e}")
            raise PublishError(f"Failed to post message: {e}")
        except TelegramForbiddenError as e:
            logger.error(f"Forbidden publishing ad {ad.id} to channel {channel.id}: {e}")
            raise PublishError(f"Not authorized to post: {e}")
        except TelegramAPIError as e:
            logger.error(f"Telegram API error publishing ad {ad.id} to channel {channel.id}: {e}")
            raise PublishError(f"API error: {e}")
        except AiogramError as e:
            logger.error(f"Client error publishing ad {ad.id} to channel {channel.id}: {e}")
            raise PublishError(f"Client error: {e}")

        link = build_message_link(channel, message.message_id)
        logger.info(
            f"Published ad {ad.id} to channel {channel.id} "
            f"(message {message.message_id}, bump={is_bump}, link={link})"
        )
        return message.message_id, link
