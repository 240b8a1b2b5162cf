"""Database migration utilities for the Classified Ad Bot."""

import asyncio
from typing import Dict

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from classified_ad_bot.config.logging import get_logger
from classified_ad_bot.config.settings import settings
from classified_ad_bot.database.connection import AsyncSessionLocal, init_database, drop_database, engine

logger = get_logger(__name__)


def default_app_settings() -> Dict[str, str]:
    """Runtime settings written on first start so operators can edit them in place."""
    return {
        "App.GlobalRequiredSubscriptionChannel": settings.global_required_subscription_channel,
        "App.DefaultPinText": settings.default_pin_text,
        "Limits.FreeAdsPeriod": settings.free_ads_period,
        "Limits.FreeAdsPerPeriod": str(settings.free_ads_per_period),
        "Ads.FreeLinkGuardEnabled": "true",
        "Post.IncludeLocationTags": "true",
        "Post.IncludeCategoryTag": "true",
        "Post.IncludeFooterLink": "true",
    }


async def seed_app_settings() -> int:
    """Insert missing app settings. Existing values are never overwritten."""
    from classified_ad_bot.models import AppSetting

    created = 0
    async with AsyncSessionLocal() as session:
        try:
            result = await session.execute(select(AppSetting.key))
            existing = set(result.scalars().all())

            for key, value in default_app_settings().items():
                if key in existing:
                    continue
                session.add(AppSetting(key=key, value=value))
                created += 1

            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Failed to seed app settings: {e}")
            raise

    logger.info(f"Seeded {created} app settings")
    return created


async def migrate_database(drop_existing: bool = False):
    """
    Create tables and seed default settings.

    Args:
        drop_existing: If True, drop all existing tables before creating new ones
    """
    try:
        if drop_existing:
            await drop_database()

        logger.info("Running database migrations...")
        await init_database()
        await seed_app_settings()
        logger.info("Database migrations completed successfully")

    except Exception as e:
        logger.error(f"Database migration failed: {e}")
        raise


async def check_database_connection() -> bool:
    """Check if database connection is working."""
    try:
        async with engine.begin() as conn:
            result = await conn.execute(text("SELECT 1"))
            result.fetchone()

        logger.info("Database connection successful")
        return True

    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        return False


async def reset_database():
    """Reset database by dropping and recreating all tables."""
    logger.warning("Resetting database - all data will be lost!")
    await migrate_database(drop_existing=True)


if __name__ == "__main__":
    import sys

    async def main():
        command = sys.argv[1].lower() if len(sys.argv) > 1 else "migrate"

        if command == "migrate":
            await migrate_database()
        elif command == "reset":
            await reset_database()
        elif command == "seed":
            await seed_app_settings()
        elif command == "check":
            success = await check_database_connection()
            sys.exit(0 if success else 1)
        else:
            print("Usage: python -m classified_ad_bot.database.migrations [migrate|reset|seed|check]")
            sys.exit(1)

    asyncio.run(main())
