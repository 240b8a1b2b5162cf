"""Main entry point for the Classified Ad Bot."""

import asyncio
import logging
from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage

from classified_ad_bot.config.logging import setup_logging
from classified_ad_bot.config.settings import settings
from classified_ad_bot.database.migrations import migrate_database
from classified_ad_bot.handlers import router


async def main():
    """Main application entry point."""
    setup_logging(settings.log_file)

    logger = logging.getLogger(__name__)
    logger.info("Starting Classified Ad Bot...")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.debug}")

    bot = None
    try:
        await migrate_database()
        logger.info("Database initialized successfully")

        bot = Bot(token=settings.bot_token)
        storage = MemoryStorage()
        dp = Dispatcher(storage=storage)

        dp.include_router(router)

        logger.info("Bot handlers registered")

        await dp.start_polling(bot)

    except Exception as e:
        logger.error(f"Failed to start bot: {e}", exc_info=True)
        raise
    finally:
        if bot:
            await bot.session.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.info("Bot stopped by user")
    except Exception as e:
        logging.error(f"Bot crashed: {e}", exc_info=True)
