# tests/conftest.py

import os

os.environ.setdefault("BOT_TOKEN", "123456:TEST-TOKEN")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import itertools
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from classified_ad_bot.database.connection import Base
from classified_ad_bot.models import (
    Ad, AdStatus, AppSetting, Category, CategoryChannel, Channel, Reviewer, User
)

_ids = itertools.count(1000)


@pytest_asyncio.fixture
async def engine():
    """A fresh in-memory database per test, shared by every session on it."""
    test_engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    async with AsyncSession(engine, expire_on_commit=False) as db_session:
        yield db_session


@pytest.fixture
def today():
    return date(2024, 5, 15)


@pytest.fixture
def clock(today):
    return lambda: today


# --- Factories ---

@pytest.fixture
def make_user(session):
    async def _make_user(**fields) -> User:
        fields.setdefault("telegram_id", next(_ids))
        user = User(**fields)
        session.add(user)
        await session.commit()
        return user
    return _make_user


@pytest.fixture
def make_category(session):
    async def _make_category(name: str = "Sewing machines", parent: Category = None, **fields) -> Category:
        category = Category(
            name=name,
            slug=name.lower().replace(" ", "_"),
            parent_id=parent.id if parent else None,
            **fields
        )
        session.add(category)
        await session.commit()
        return category
    return _make_category


@pytest.fixture
def make_channel(session):
    async def _make_channel(title: str = "Main channel", categories=(), **fields) -> Channel:
        fields.setdefault("telegram_chat_id", -100 * next(_ids))
        fields.setdefault("telegram_username", title.lower().replace(" ", "_"))
        channel = Channel(title=title, **fields)
        session.add(channel)
        await session.flush()
        for category in categories:
            session.add(CategoryChannel(category_id=category.id, channel_id=channel.id))
        await session.commit()
        return channel
    return _make_channel


@pytest.fixture
def make_ad(session):
    async def _make_ad(user: User, category: Category, **fields) -> Ad:
        fields.setdefault("title", "Singer 974 for sale")
        fields.setdefault("text", "Industrial machine in good condition, serviced last month.")
        fields.setdefault("contacts", "Call Anna after 6 pm")
        fields.setdefault("country", "Kazakhstan")
        fields.setdefault("city", "Almaty")
        fields.setdefault("status", AdStatus.DRAFT)
        ad = Ad(user_id=user.id, category_id=category.id, **fields)
        session.add(ad)
        await session.commit()
        return ad
    return _make_ad


@pytest.fixture
def make_reviewer(session):
    async def _make_reviewer(telegram_id: int = None, is_active: bool = True) -> Reviewer:
        reviewer = Reviewer(telegram_id=telegram_id or next(_ids), is_active=is_active)
        session.add(reviewer)
        await session.commit()
        return reviewer
    return _make_reviewer


@pytest.fixture
def set_setting(session):
    async def _set_setting(key: str, value: str) -> None:
        session.add(AppSetting(key=key, value=value))
        await session.commit()
    return _set_setting


# --- Telegram-side collaborators ---

@pytest.fixture
def publisher():
    """Publisher mock returning increasing message ids and public links."""
    message_ids = itertools.count(1)

    async def _publish(ad, category, channel, text, is_bump=False):
        message_id = next(message_ids)
        link = f"https://t.me/{channel.handle}/{message_id}" if channel.handle else None
        return message_id, link

    mock = MagicMock()
    mock.publish = AsyncMock(side_effect=_publish)
    return mock


@pytest.fixture
def subscriptions():
    mock = MagicMock()
    mock.is_member = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def notifier():
    mock = MagicMock()
    mock.send_to_user = AsyncMock(return_value=True)
    mock.send_to_reviewer = AsyncMock(return_value=True)
    return mock
