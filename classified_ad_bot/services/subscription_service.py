import re
from typing import Optional
from aiogram import Bot
from aiogram.enums import ChatMemberStatus
from aiogram.exceptions import TelegramAPIError

from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)

_MEMBER_STATUSES = {
    ChatMemberStatus.MEMBER,
    ChatMemberStatus.ADMINISTRATOR,
    ChatMemberStatus.CREATOR,
}

_CHANNEL_LINK_PREFIX = re.compile(r"^(?:https?://)?(?:www\.)?(?:t|telegram)\.me/", re.IGNORECASE)


def normalize_handle(handle: Optional[str]) -> str:
    """Reduce ``@name``, ``t.me/name`` or ``https://t.me/name/`` to ``name``."""
    value = _CHANNEL_LINK_PREFIX.sub("", (handle or "").strip())
    return value.strip("/").lstrip("@")


class SubscriptionService:
    """Channel membership lookups. Any lookup failure counts as not subscribed."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def is_member(self, telegram_user_id: int, channel_handle: Optional[str]) -> bool:
        handle = normalize_handle(channel_handle)
        if not handle:
            return True

        chat_id = f"@{handle}"
        try:
            member = await self.bot.get_chat_member(chat_id, telegram_user_id)
        except TelegramAPIError as e:
            logger.warning(f"Cannot check subscription of user {telegram_user_id} to {chat_id}: {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error checking subscription of user {telegram_user_id} to {chat_id}: {e}")
            return False

        is_member = member.status in _MEMBER_STATUSES
        logger.debug(f"User {telegram_user_id} membership in {chat_id}: {member.status} -> {is_member}")
        return is_member
