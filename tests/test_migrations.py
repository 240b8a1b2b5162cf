# tests/test_migrations.py

import pytest
from unittest.mock import patch
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from classified_ad_bot.database import migrations
from classified_ad_bot.models import AppSetting


class TestSeedAppSettings:

    @pytest.mark.asyncio
    async def test_seed_keeps_existing_values(self, engine, session, set_setting):
        await set_setting("Limits.FreeAdsPerPeriod", "5")
        factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        with patch.object(migrations, "AsyncSessionLocal", factory):
            created = await migrations.seed_app_settings()
            again = await migrations.seed_app_settings()

        assert created == len(migrations.default_app_settings()) - 1
        assert again == 0

        result = await session.execute(select(AppSetting.value).where(AppSetting.key == "Limits.FreeAdsPerPeriod"))
        assert result.scalar_one() == "5"

    def test_defaults_cover_runtime_keys(self):
        keys = set(migrations.default_app_settings())

        assert {
            "App.GlobalRequiredSubscriptionChannel",
            "Limits.FreeAdsPeriod",
            "Limits.FreeAdsPerPeriod",
            "Ads.FreeLinkGuardEnabled",
            "Post.IncludeFooterLink",
        } <= keys
