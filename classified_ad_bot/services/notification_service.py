from typing import Optional
from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)


def moderation_keyboard(approve_action: str, reject_action: str) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [
            InlineKeyboardButton(text="✅ Approve", callback_data=approve_action),
            InlineKeyboardButton(text="❌ Reject", callback_data=reject_action),
        ]
    ])


def approved_text(link: Optional[str]) -> str:
    if link:
        return f"✅ Your ad passed moderation and is published: {link}"
    return "✅ Your ad passed moderation and is published."


def rejected_text(reason: Optional[str]) -> str:
    if reason:
        return f"❌ Your ad was rejected by a moderator.\nReason: {reason}"
    return "❌ Your ad was rejected by a moderator."


class NotificationService:
    """Best-effort messages to submitters and reviewers. Failures are logged, never raised."""

    def __init__(self, bot: Bot):
        self.bot = bot

    async def send_to_user(self, telegram_id: int, text: str) -> bool:
        try:
            await self.bot.send_message(telegram_id, text, disable_web_page_preview=True)
            logger.info(f"Sent notification to user {telegram_id}")
            return True
        except TelegramAPIError as e:
            logger.error(f"Failed to notify user {telegram_id}: {e}")
            return False

    async def send_to_reviewer(self, telegram_id: int, text: str,
                               approve_action: str, reject_action: str) -> bool:
        try:
            await self.bot.send_message(
                telegram_id,
                text,
                parse_mode="HTML",
                reply_markup=moderation_keyboard(approve_action, reject_action),
                disable_web_page_preview=True
            )
            logger.info(f"Sent moderation request to reviewer {telegram_id}")
            return True
        except TelegramAPIError as e:
            logger.error(f"Failed to send moderation request to reviewer {telegram_id}: {e}")
            return False
