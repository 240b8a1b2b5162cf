# tests/test_telegram_collaborators.py
"""
Tests for the aiogram-backed publisher, subscription checker, notifier and pin service.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from aiogram.enums import ChatMemberStatus
from aiogram.exceptions import ClientDecodeError, TelegramBadRequest, TelegramForbiddenError

from classified_ad_bot.models import Ad, Category, Channel, MediaType
from classified_ad_bot.services.notification_service import NotificationService
from classified_ad_bot.services.pin_service import PinningError, PinService
from classified_ad_bot.services.subscription_service import SubscriptionService, normalize_handle
from classified_ad_bot.services.telegram_publisher import PublishError, TelegramPublisher, build_message_link


def telegram_error(cls, text="chat not found"):
    return cls(method=MagicMock(), message=text)


@pytest.fixture
def bot():
    mock = MagicMock()
    mock.send_message = AsyncMock(return_value=MagicMock(message_id=42))
    mock.send_photo = AsyncMock(return_value=MagicMock(message_id=43))
    mock.send_video = AsyncMock(return_value=MagicMock(message_id=44))
    mock.get_chat_member = AsyncMock()
    mock.get_me = AsyncMock(return_value=MagicMock(username="sewing_ads_bot"))
    mock.pin_chat_message = AsyncMock(return_value=True)
    mock.unpin_chat_message = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def public_channel():
    return Channel(id=1, title="Sewing ads", telegram_chat_id=-1001, telegram_username="@sewing_ads")


@pytest.fixture
def category():
    return Category(id=1, name="Machines", slug="Machines")


class TestTelegramPublisher:

    @pytest.mark.asyncio
    async def test_text_ad_returns_link(self, bot, public_channel, category):
        ad = Ad(id=1, is_paid=False, media_type=MediaType.NONE)

        message_id, link = await TelegramPublisher(bot).publish(ad, category, public_channel, "<b>hi</b>")

        assert (message_id, link) == (42, "https://t.me/sewing_ads/42")
        bot.send_message.assert_awaited_once()
        assert bot.send_message.await_args.kwargs["chat_id"] == -1001

    @pytest.mark.asyncio
    async def test_paid_photo_ad_sends_photo(self, bot, public_channel, category):
        ad = Ad(id=2, is_paid=True, media_type=MediaType.PHOTO, media_file_id="photo-file")

        message_id, _ = await TelegramPublisher(bot).publish(ad, category, public_channel, "caption")

        assert message_id == 43
        assert bot.send_photo.await_args.kwargs["photo"] == "photo-file"
        bot.send_message.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_free_ad_media_is_ignored(self, bot, public_channel, category):
        ad = Ad(id=3, is_paid=False, media_type=MediaType.VIDEO, media_file_id="video-file")

        await TelegramPublisher(bot).publish(ad, category, public_channel, "text")

        bot.send_video.assert_not_awaited()
        bot.send_message.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_private_channel_has_no_link(self, bot, category):
        private = Channel(id=2, title="Private", telegram_chat_id=-1002)
        ad = Ad(id=4, is_paid=False, media_type=MediaType.NONE)

        _, link = await TelegramPublisher(bot).publish(ad, category, private, "text")

        assert link is None
        assert build_message_link(private, 42) is None

    @pytest.mark.asyncio
    async def test_telegram_errors_become_publish_errors(self, bot, public_channel, category):
        bot.send_message.side_effect = telegram_error(TelegramForbiddenError, "bot was kicked")
        ad = Ad(id=5, is_paid=False, media_type=MediaType.NONE)

        with pytest.raises(PublishError):
            await TelegramPublisher(bot).publish(ad, category, public_channel, "text")

    @pytest.mark.asyncio
    async def test_client_errors_become_publish_errors(self, bot, public_channel, category):
        bot.send_message.side_effect = ClientDecodeError("bad json", ValueError("truncated"), "{")
        ad = Ad(id=6, is_paid=False, media_type=MediaType.NONE)

        with pytest.raises(PublishError):
            await TelegramPublisher(bot).publish(ad, category, public_channel, "text")


class TestSubscriptionService:

    @pytest.mark.asyncio
    async def test_empty_handle_needs_no_subscription(self, bot):
        assert await SubscriptionService(bot).is_member(1, "  ") is True
        bot.get_chat_member.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status, expected", [
        (ChatMemberStatus.MEMBER, True),
        (ChatMemberStatus.ADMINISTRATOR, True),
        (ChatMemberStatus.CREATOR, True),
        (ChatMemberStatus.LEFT, False),
        (ChatMemberStatus.KICKED, False),
    ])
    async def test_membership_statuses(self, bot, status, expected):
        bot.get_chat_member.return_value = MagicMock(status=status)

        assert await SubscriptionService(bot).is_member(1, "@sewing_news") is expected
        bot.get_chat_member.assert_awaited_once_with("@sewing_news", 1)

    @pytest.mark.asyncio
    async def test_lookup_failure_counts_as_not_member(self, bot):
        bot.get_chat_member.side_effect = telegram_error(TelegramBadRequest)

        assert await SubscriptionService(bot).is_member(1, "sewing_news") is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        ClientDecodeError("bad json", ValueError("truncated"), "{"),
        RuntimeError("session closed"),
    ])
    async def test_any_lookup_error_counts_as_not_member(self, bot, error):
        bot.get_chat_member.side_effect = error

        assert await SubscriptionService(bot).is_member(1, "sewing_news") is False

    @pytest.mark.asyncio
    async def test_channel_link_target(self, bot):
        bot.get_chat_member.return_value = MagicMock(status=ChatMemberStatus.MEMBER)

        assert await SubscriptionService(bot).is_member(1, "https://t.me/sewing_news") is True
        bot.get_chat_member.assert_awaited_once_with("@sewing_news", 1)

    @pytest.mark.parametrize("raw, expected", [
        ("@sewing_news", "sewing_news"),
        (" sewing_news ", "sewing_news"),
        ("t.me/sewing_news", "sewing_news"),
        ("https://t.me/sewing_news/", "sewing_news"),
        ("http://telegram.me/@sewing_news", "sewing_news"),
        (None, ""),
    ])
    def test_normalize_handle(self, raw, expected):
        assert normalize_handle(raw) == expected


class TestNotificationService:

    @pytest.mark.asyncio
    async def test_reviewer_message_carries_actions(self, bot):
        sent = await NotificationService(bot).send_to_reviewer(10, "preview", "mod:approve:1", "mod:reject:1")

        assert sent is True
        markup = bot.send_message.await_args.kwargs["reply_markup"]
        callbacks = [button.callback_data for button in markup.inline_keyboard[0]]
        assert callbacks == ["mod:approve:1", "mod:reject:1"]

    @pytest.mark.asyncio
    async def test_failures_reported_not_raised(self, bot):
        bot.send_message.side_effect = telegram_error(TelegramForbiddenError, "bot was blocked by the user")
        notifier = NotificationService(bot)

        assert await notifier.send_to_user(10, "hello") is False
        assert await notifier.send_to_reviewer(10, "preview", "a", "b") is False


class TestPinService:

    @pytest.mark.asyncio
    async def test_pin_then_unpin(self, session, bot, make_channel):
        channel = await make_channel("Sewing ads")
        service = PinService(bot, session=session)

        assert await service.pin_publish_button(channel.id) is True
        assert channel.pinned_message_id == 42
        button = bot.send_message.await_args.kwargs["reply_markup"].inline_keyboard[0][0]
        assert button.url == "https://t.me/sewing_ads_bot?start=publish"
        bot.pin_chat_message.assert_awaited_once()

        assert await service.unpin_publish_button(channel.id) is True
        assert channel.pinned_message_id is None
        bot.unpin_chat_message.assert_awaited_once_with(chat_id=channel.telegram_chat_id, message_id=42)

    @pytest.mark.asyncio
    async def test_pin_text_from_settings(self, session, bot, make_channel, set_setting):
        await set_setting("App.DefaultPinText", "Post your ad here")
        channel = await make_channel()

        await PinService(bot, session=session).pin_publish_button(channel.id)

        assert bot.send_message.await_args.kwargs["text"] == "Post your ad here"

    @pytest.mark.asyncio
    async def test_unknown_channel(self, session, bot):
        assert await PinService(bot, session=session).pin_publish_button(9999) is False

    @pytest.mark.asyncio
    async def test_pin_failure_raises(self, session, bot, make_channel):
        channel = await make_channel()
        bot.pin_chat_message.side_effect = telegram_error(TelegramBadRequest, "not enough rights")

        with pytest.raises(PinningError):
            await PinService(bot, session=session).pin_publish_button(channel.id)
