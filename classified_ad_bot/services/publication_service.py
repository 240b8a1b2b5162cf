"""Ad submission and bump: validation gates, channel fan-out and status aggregation."""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional, Tuple, Union
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from classified_ad_bot.models.ad import Ad, AdPublication, AdStatus
from classified_ad_bot.models.category import Category
from classified_ad_bot.models.channel import Channel
from classified_ad_bot.models.user import User
from classified_ad_bot.services.category_service import CategoryService, CategoryServiceError
from classified_ad_bot.services.channel_service import ChannelService, ChannelServiceError
from classified_ad_bot.services.content_guard import ContentGuard
from classified_ad_bot.services.moderation_service import (
    ModerationService, ModerationServiceError, recalculate_ad_status
)
from classified_ad_bot.services.post_formatter import PostFormatter
from classified_ad_bot.services.quota_service import QuotaService, QuotaServiceError
from classified_ad_bot.services.settings_service import SettingsService, SettingsServiceError
from classified_ad_bot.services.subscription_service import normalize_handle
from classified_ad_bot.services.telegram_publisher import PublishError
from classified_ad_bot.services.user_service import UserService, UserServiceError
from classified_ad_bot.database.connection import create_db_session
from classified_ad_bot.config.settings import settings
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)


LINKS_FORBIDDEN_MESSAGE = (
    "Free ads may not contain links to channels, groups, sites, bots, services or Google Sheets. "
    "Choose a paid ad to include links."
)
NO_CHANNELS_MESSAGE = "No publication channels are configured for this category. Please contact an administrator."
NOTHING_ACCEPTED_MESSAGE = "Could not publish: the ad did not pass the checks of any channel."
NOT_BUMPABLE_MESSAGE = "Only ads that were published or sent to moderation can be bumped."

# Bump skips the subscription, quota and link gates, so only accepted ads qualify
BUMPABLE_STATUSES = frozenset({AdStatus.PUBLISHED, AdStatus.PENDING_MODERATION})


class PublicationServiceError(Exception):
    pass


@dataclass
class PublicationResult:
    ok: bool
    message: str
    published_links: List[str] = field(default_factory=list)
    pending_count: int = 0
    published_count: int = 0


def summary_message(published: int, pending: int) -> str:
    if published and pending:
        return f"Published in {published} channel(s). {pending} more channel(s) awaiting moderation."
    if published:
        return f"Published in {published} channel(s)."
    if pending:
        return f"Sent to moderation in {pending} channel(s). The link will arrive after approval."
    return NOTHING_ACCEPTED_MESSAGE


class PublicationService:
    """Entry point for publishing an ad into the channels of its category.

    Hard validation failures come back as an unsuccessful PublicationResult.
    Per-channel problems (missing subscription, spam filter, a failed send)
    only skip that channel. Database failures raise PublicationServiceError.
    """

    def __init__(self, publisher, subscriptions, notifier,
                 renderer: Optional[PostFormatter] = None,
                 content_guard: Optional[ContentGuard] = None,
                 session: Optional[AsyncSession] = None,
                 clock: Optional[Callable[[], date]] = None):
        self.publisher = publisher
        self.subscriptions = subscriptions
        self.notifier = notifier
        self._renderer = renderer
        self._content_guard = content_guard
        self._session = session
        self._owns_session = session is None
        self._clock = clock

    async def _get_session(self) -> AsyncSession:
        if self._session:
            return self._session
        return await create_db_session()

    async def _get_renderer(self, store: SettingsService) -> PostFormatter:
        if self._renderer is None:
            self._renderer = await PostFormatter.from_settings(store)
        return self._renderer

    async def _get_content_guard(self, store: SettingsService) -> ContentGuard:
        if self._content_guard is None:
            self._content_guard = await ContentGuard.from_settings(store)
        return self._content_guard

    async def submit(self, telegram_user_id: int, ad_id: int) -> PublicationResult:
        session = await self._get_session()
        try:
            loaded = await self._load_owned_ad(session, telegram_user_id, ad_id)
            if isinstance(loaded, PublicationResult):
                return loaded
            user, ad, category = loaded

            store = SettingsService(session)
            guard = await self._get_content_guard(store)
            quota = QuotaService(session, clock=self._clock)

            global_target = await self._global_subscription_target(store)
            if global_target and not await self._is_subscribed(telegram_user_id, global_target):
                logger.info(f"User {telegram_user_id} is not subscribed to @{global_target}")
                return PublicationResult(
                    ok=False,
                    message=f"Subscribe to https://t.me/{global_target} before publishing."
                )

            allowance = None
            if not ad.is_paid:
                allowance = await quota.check_free_allowance(user.id)
                if not allowance.allowed:
                    return PublicationResult(
                        ok=False,
                        message=(
                            f"Free ad limit: {allowance.limit} per {allowance.period_label}. "
                            f"Already used: {allowance.used}."
                        )
                    )

                if await store.get_bool("Ads.FreeLinkGuardEnabled", True) and guard.any_forbidden(ad.text_fields):
                    logger.info(f"Ad {ad.id} rejected by the free link guard")
                    return PublicationResult(ok=False, message=LINKS_FORBIDDEN_MESSAGE)

            channels = await ChannelService(session).resolve_channels(category.id)
            if not channels:
                return PublicationResult(ok=False, message=NO_CHANNELS_MESSAGE)

            ad.status = AdStatus.PENDING_MODERATION
            await session.commit()

            renderer = await self._get_renderer(store)
            moderation = ModerationService(self.publisher, self.notifier, renderer=renderer, session=session)

            links: List[str] = []
            published = 0
            pending = 0

            for channel in channels:
                if not await self._channel_accepts(telegram_user_id, ad, channel, global_target, guard):
                    continue

                if channel.is_moderated:
                    await moderation.create_request(ad.id, channel.id)
                    pending += 1
                    continue

                text = renderer.build_post_text(ad, category, channel)
                try:
                    message_id, link = await self.publisher.publish(ad, category, channel, text, is_bump=False)
                except PublishError as e:
                    logger.warning(f"Skipping channel {channel.id} for ad {ad.id}: {e}")
                    continue
                except Exception as e:
                    logger.exception(f"Unexpected publisher failure in channel {channel.id} for ad {ad.id}: {e}")
                    continue

                session.add(AdPublication(
                    ad_id=ad.id,
                    channel_id=channel.id,
                    telegram_message_id=message_id,
                    link=link,
                    is_bump=False
                ))
                published += 1
                if link:
                    links.append(link)

            await recalculate_ad_status(session, ad.id)
            await session.commit()

            accepted = published > 0 or pending > 0
            if accepted and allowance is not None and not allowance.unlimited:
                await quota.register_consumption(user.id, used_bonus=allowance.uses_bonus)

            logger.info(
                f"Ad {ad.id} submitted by {telegram_user_id}: "
                f"{published} published, {pending} pending of {len(channels)} channels"
            )

            return PublicationResult(
                ok=accepted,
                message=summary_message(published, pending),
                published_links=links,
                pending_count=pending,
                published_count=published
            )

        except (SQLAlchemyError, QuotaServiceError, ChannelServiceError, CategoryServiceError,
                ModerationServiceError, SettingsServiceError, UserServiceError) as e:
            await session.rollback()
            logger.error(f"Error submitting ad {ad_id}: {e}")
            raise PublicationServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def bump(self, telegram_user_id: int, ad_id: int) -> PublicationResult:
        """Republish an ad into the auto-publishing channels of its category."""
        session = await self._get_session()
        try:
            loaded = await self._load_owned_ad(session, telegram_user_id, ad_id)
            if isinstance(loaded, PublicationResult):
                return loaded
            _, ad, category = loaded

            if ad.status not in BUMPABLE_STATUSES:
                logger.info(f"Refusing to bump ad {ad.id} in status {ad.status.value}")
                return PublicationResult(ok=False, message=NOT_BUMPABLE_MESSAGE)

            store = SettingsService(session)
            guard = await self._get_content_guard(store)
            renderer = await self._get_renderer(store)
            global_target = await self._global_subscription_target(store)

            channels = await ChannelService(session).resolve_channels(category.id)

            links: List[str] = []
            published = 0
            for channel in channels:
                if channel.is_moderated:
                    continue
                if not await self._channel_accepts(telegram_user_id, ad, channel, global_target, guard):
                    continue

                text = renderer.build_post_text(ad, category, channel)
                try:
                    message_id, link = await self.publisher.publish(ad, category, channel, text, is_bump=True)
                except PublishError as e:
                    logger.warning(f"Skipping channel {channel.id} for bump of ad {ad.id}: {e}")
                    continue
                except Exception as e:
                    logger.exception(f"Unexpected publisher failure in channel {channel.id} for bump of ad {ad.id}: {e}")
                    continue

                session.add(AdPublication(
                    ad_id=ad.id,
                    channel_id=channel.id,
                    telegram_message_id=message_id,
                    link=link,
                    is_bump=True
                ))
                published += 1
                if link:
                    links.append(link)

            ad.bump_count += 1
            await recalculate_ad_status(session, ad.id)
            await session.commit()

            logger.info(f"Ad {ad.id} bumped into {published} channels (bump #{ad.bump_count})")

            if not published:
                return PublicationResult(ok=False, message="The ad was not republished in any channel.")

            return PublicationResult(
                ok=True,
                message=f"Bumped in {published} channel(s).",
                published_links=links,
                published_count=published
            )

        except (SQLAlchemyError, ChannelServiceError, CategoryServiceError,
                SettingsServiceError, UserServiceError) as e:
            await session.rollback()
            logger.error(f"Error bumping ad {ad_id}: {e}")
            raise PublicationServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def _load_owned_ad(self, session: AsyncSession, telegram_user_id: int, ad_id: int
                             ) -> Union[PublicationResult, Tuple[User, Ad, Category]]:
        user = await UserService(session).get_user_by_telegram_id(telegram_user_id)
        if user is None:
            return PublicationResult(ok=False, message="User not found.")

        result = await session.execute(select(Ad).where(Ad.id == ad_id, Ad.user_id == user.id))
        ad = result.scalar_one_or_none()
        if ad is None:
            return PublicationResult(ok=False, message="Ad not found.")

        category = await CategoryService(session).get_active_category(ad.category_id)
        if category is None:
            return PublicationResult(ok=False, message="Category not found.")

        return user, ad, category

    async def _global_subscription_target(self, store: SettingsService) -> str:
        target = await store.get_str("App.GlobalRequiredSubscriptionChannel", "")
        return normalize_handle(target) or normalize_handle(settings.global_required_subscription_channel)

    async def _is_subscribed(self, telegram_user_id: int, target: str) -> bool:
        try:
            return await self.subscriptions.is_member(telegram_user_id, target)
        except Exception as e:
            logger.warning(f"Subscription lookup of user {telegram_user_id} in @{target} failed: {e}")
            return False

    async def _channel_accepts(self, telegram_user_id: int, ad: Ad, channel: Channel,
                               global_target: str, guard: ContentGuard) -> bool:
        if channel.require_subscription:
            target = (
                normalize_handle(channel.subscription_channel_username)
                or normalize_handle(channel.telegram_username)
                or global_target
            )
            if target and not await self._is_subscribed(telegram_user_id, target):
                logger.info(f"User {telegram_user_id} is not subscribed to @{target}, skipping channel {channel.id}")
                return False

        if channel.spam_filter_applies(ad.is_paid) and guard.any_forbidden(ad.text_fields):
            logger.info(f"Ad {ad.id} failed the spam filter of channel {channel.id}")
            return False

        return True
