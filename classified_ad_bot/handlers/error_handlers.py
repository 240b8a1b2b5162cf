"""Centralized error handling for bot handlers."""

from typing import Union
from aiogram.types import Message, CallbackQuery
from aiogram.exceptions import TelegramAPIError

from classified_ad_bot.services.user_service import UserServiceError
from classified_ad_bot.services.moderation_service import ModerationServiceError
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)


async def _reply(update: Union[Message, CallbackQuery], message: str) -> None:
    if isinstance(update, CallbackQuery):
        await update.answer(message, show_alert=True)
    else:
        await update.answer(message)


async def handle_user_service_error(
    update: Union[Message, CallbackQuery],
    error: UserServiceError,
    context: str = "operation"
) -> None:
    """Handle user service errors with appropriate user feedback."""
    logger.error(f"User service error in {context}: {error}")
    await _reply(update, f"Could not check your access for {context}. Please try again later.")


async def handle_moderation_service_error(
    update: Union[Message, CallbackQuery],
    error: ModerationServiceError,
    context: str = "operation"
) -> None:
    """Handle moderation errors; the request stays pending and can be decided again."""
    logger.error(f"Moderation service error in {context}: {error}")
    await _reply(update, f"The {context} failed, the request is still pending. Please try again.")


async def handle_telegram_api_error(
    update: Union[Message, CallbackQuery],
    error: TelegramAPIError,
    context: str = "operation"
) -> None:
    """Handle Telegram API errors with appropriate user feedback."""
    logger.error(f"Telegram API error in {context}: {error}")
    await _reply(update, "Communication error. Please try again.")


async def handle_unexpected_error(
    update: Union[Message, CallbackQuery],
    error: Exception,
    context: str = "operation"
) -> None:
    logger.exception(f"Unexpected error in {context}: {error}")
    await _reply(update, "An unexpected error occurred. Please try again.")
