"""Handlers package: routers for the bot dispatcher."""

from classified_ad_bot.handlers import moderation_handlers

from aiogram import Router

main_router = Router()
main_router.include_router(moderation_handlers.router)

router = main_router

__all__ = [
    'router',
    'moderation_handlers',
]
