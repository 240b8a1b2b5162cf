"""Helper functions for the moderation handlers."""

from typing import Optional, Tuple
from aiogram.exceptions import TelegramBadRequest
from aiogram.types import CallbackQuery

from classified_ad_bot.services.moderation_service import APPROVE_ACTION, REJECT_ACTION, ModerationResult
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)

MODERATION_PREFIX = "mod:"


def parse_moderation_callback(data: Optional[str]) -> Optional[Tuple[str, int]]:
    """Split ``mod:<action>:<request id>`` callback data, None when malformed."""
    if not data or not data.startswith(MODERATION_PREFIX):
        return None

    parts = data.split(":")
    if len(parts) != 3 or parts[1] not in (APPROVE_ACTION, REJECT_ACTION):
        return None

    try:
        request_id = int(parts[2])
    except ValueError:
        return None

    if request_id <= 0:
        return None
    return parts[1], request_id


def format_decision(action: str, result: ModerationResult, reviewer_name: str) -> str:
    if not result.ok:
        return f"ℹ️ {result.message}"
    if action == APPROVE_ACTION:
        suffix = f"\n{result.link}" if result.link else ""
        return f"✅ Approved by {reviewer_name}{suffix}"
    return f"❌ Rejected by {reviewer_name}"


async def close_moderation_message(callback_query: CallbackQuery, footer: str) -> None:
    """Drop the decision buttons from a reviewer's message and note the outcome."""
    message = callback_query.message
    if message is None:
        return

    try:
        await message.edit_reply_markup(reply_markup=None)
        await message.reply(footer, disable_web_page_preview=True)
    except TelegramBadRequest as e:
        logger.warning(f"Could not update moderation message {message.message_id}: {e}")
