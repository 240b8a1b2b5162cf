"""Reviewer decisions arriving as inline button presses."""

from aiogram import Bot, Router, F
from aiogram.types import CallbackQuery
from aiogram.exceptions import TelegramAPIError

from classified_ad_bot.handlers.helpers import (
    MODERATION_PREFIX, close_moderation_message, format_decision, parse_moderation_callback
)
from classified_ad_bot.handlers.error_handlers import (
    handle_user_service_error, handle_moderation_service_error,
    handle_telegram_api_error, handle_unexpected_error
)
from classified_ad_bot.services.user_service import UserService, UserServiceError
from classified_ad_bot.services.moderation_service import (
    ALREADY_DECIDED, APPROVE_ACTION, ModerationService, ModerationServiceError
)
from classified_ad_bot.services.notification_service import NotificationService
from classified_ad_bot.services.telegram_publisher import TelegramPublisher
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)

router = Router()


def build_moderation_service(bot: Bot) -> ModerationService:
    return ModerationService(TelegramPublisher(bot), NotificationService(bot))


@router.callback_query(F.data.startswith(MODERATION_PREFIX))
async def handle_moderation_decision(callback_query: CallbackQuery):
    """Approve or reject a moderation request from a reviewer's button press."""
    try:
        parsed = parse_moderation_callback(callback_query.data)
        if parsed is None:
            await callback_query.answer("Unknown moderation action.", show_alert=True)
            return
        action, request_id = parsed

        reviewer = callback_query.from_user
        if not await UserService().is_active_reviewer(reviewer.id):
            logger.warning(f"User {reviewer.id} tried to {action} request {request_id} without reviewer rights")
            await callback_query.answer("Access denied. Reviewers only.", show_alert=True)
            return

        service = build_moderation_service(callback_query.bot)
        if action == APPROVE_ACTION:
            result = await service.approve(request_id, reviewer_id=reviewer.id)
        else:
            result = await service.reject(request_id, reviewer_id=reviewer.id)

        await callback_query.answer(result.message, show_alert=not result.ok)

        if result.ok or result.message == ALREADY_DECIDED:
            reviewer_name = f"@{reviewer.username}" if reviewer.username else reviewer.full_name
            await close_moderation_message(callback_query, format_decision(action, result, reviewer_name))

    except UserServiceError as e:
        await handle_user_service_error(callback_query, e, "moderation")
    except ModerationServiceError as e:
        await handle_moderation_service_error(callback_query, e, "moderation decision")
    except TelegramAPIError as e:
        await handle_telegram_api_error(callback_query, e, "moderation decision")
    except Exception as e:
        await handle_unexpected_error(callback_query, e, "moderation decision")
