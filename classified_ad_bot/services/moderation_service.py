from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from classified_ad_bot.models.ad import Ad, AdPublication, AdStatus
from classified_ad_bot.models.category import Category
from classified_ad_bot.models.channel import Channel
from classified_ad_bot.models.moderation import ModerationRequest, ModerationStatus
from classified_ad_bot.models.user import User
from classified_ad_bot.services.notification_service import approved_text, rejected_text
from classified_ad_bot.services.post_formatter import PostFormatter
from classified_ad_bot.services.settings_service import SettingsService
from classified_ad_bot.services.telegram_publisher import PublishError
from classified_ad_bot.services.user_service import UserService, UserServiceError
from classified_ad_bot.database.connection import create_db_session
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)


ALREADY_DECIDED = "This request has already been decided."
DEFAULT_REJECT_REASON = "Rejected by moderator"

APPROVE_ACTION = "approve"
REJECT_ACTION = "reject"


def moderation_callback(action: str, request_id: int) -> str:
    return f"mod:{action}:{request_id}"


class ModerationServiceError(Exception):
    pass


@dataclass(frozen=True)
class ModerationResult:
    ok: bool
    message: str
    link: Optional[str] = None


async def recalculate_ad_status(session: AsyncSession, ad_id: int) -> Optional[AdStatus]:
    """Derive an ad's status from its publications and moderation requests.

    Published as soon as any publication exists, whatever happens to the
    remaining requests; otherwise pending while any request is open;
    otherwise rejected.
    """
    ad = await session.get(Ad, ad_id)
    if ad is None:
        return None

    published = await session.execute(
        select(AdPublication.id).where(AdPublication.ad_id == ad_id).limit(1)
    )
    pending = await session.execute(
        select(ModerationRequest.id)
        .where(ModerationRequest.ad_id == ad_id, ModerationRequest.status == ModerationStatus.PENDING)
        .limit(1)
    )

    if published.first() is not None:
        ad.status = AdStatus.PUBLISHED
    elif pending.first() is not None:
        ad.status = AdStatus.PENDING_MODERATION
    else:
        ad.status = AdStatus.REJECTED

    await session.flush()
    logger.debug(f"Ad {ad_id} status recalculated: {ad.status.value}")
    return ad.status


class ModerationService:
    """Moderation requests: creation, reviewer fan-out and the one-time decision."""

    def __init__(self, publisher, notifier, renderer: Optional[PostFormatter] = None,
                 session: Optional[AsyncSession] = None):
        self.publisher = publisher
        self.notifier = notifier
        self._renderer = renderer
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> AsyncSession:
        if self._session:
            return self._session
        return await create_db_session()

    async def _get_renderer(self, session: AsyncSession) -> PostFormatter:
        if self._renderer is None:
            self._renderer = await PostFormatter.from_settings(SettingsService(session))
        return self._renderer

    async def create_request(self, ad_id: int, channel_id: int) -> Optional[ModerationRequest]:
        """Open a request and send it to every active reviewer.

        Returns None without notifying anyone when a pending request for the
        same ad and channel already exists.
        """
        session = await self._get_session()
        try:
            stmt = select(ModerationRequest.id).where(
                ModerationRequest.ad_id == ad_id,
                ModerationRequest.channel_id == channel_id,
                ModerationRequest.status == ModerationStatus.PENDING
            )
            if (await session.execute(stmt)).first() is not None:
                logger.info(f"Pending request for ad {ad_id} in channel {channel_id} already exists")
                return None

            request = ModerationRequest(ad_id=ad_id, channel_id=channel_id, status=ModerationStatus.PENDING)
            try:
                async with session.begin_nested():
                    session.add(request)
            except IntegrityError:
                logger.info(f"Pending request for ad {ad_id} in channel {channel_id} was created concurrently")
                return None

            await session.commit()
            logger.info(f"Created moderation request {request.id}: ad {ad_id} -> channel {channel_id}")

            await self._notify_reviewers(session, request)
            return request

        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error creating moderation request: {e}")
            raise ModerationServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def approve(self, request_id: int, reviewer_id: Optional[int] = None) -> ModerationResult:
        """Claim, publish, then record the publication.

        The claim is committed before the Telegram call so no write
        transaction stays open across it. A failed send releases the claim
        and the request can be approved again.
        """
        session = await self._get_session()
        try:
            loaded = await self._load_pending(session, request_id)
            if isinstance(loaded, ModerationResult):
                return loaded
            request, ad, category, channel = loaded

            renderer = await self._get_renderer(session)
            text = renderer.build_post_text(ad, category, channel)

            if not await self._claim(session, request_id, ModerationStatus.APPROVED, reviewer_id):
                await session.rollback()
                logger.info(f"Request {request_id} was decided by someone else first")
                return ModerationResult(False, ALREADY_DECIDED)
            await session.commit()

            try:
                message_id, link = await self.publisher.publish(ad, category, channel, text, is_bump=False)
            except PublishError as e:
                await self._release_claim(session, request_id)
                logger.error(f"Approving request {request_id} failed while publishing: {e}")
                return ModerationResult(False, f"Publishing failed, the request stays pending: {e}")
            except Exception as e:
                await self._release_claim(session, request_id)
                logger.exception(f"Unexpected publisher failure approving request {request_id}: {e}")
                return ModerationResult(False, f"Publishing failed, the request stays pending: {e}")

            session.add(AdPublication(
                ad_id=ad.id,
                channel_id=channel.id,
                telegram_message_id=message_id,
                link=link,
                is_bump=False
            ))
            await recalculate_ad_status(session, ad.id)
            await session.commit()

            submitter = await session.get(User, ad.user_id)
            submitter_telegram_id = submitter.telegram_id if submitter else None

            logger.info(f"Request {request_id} approved by {reviewer_id}, ad {ad.id} published to channel {channel.id}")

        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error approving request {request_id}: {e}")
            raise ModerationServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

        await self._notify_submitter(submitter_telegram_id, approved_text(link))
        return ModerationResult(True, "Approved and published.", link=link)

    async def reject(self, request_id: int, reviewer_id: Optional[int] = None,
                     reason: Optional[str] = None) -> ModerationResult:
        reason = reason.strip() if reason and reason.strip() else DEFAULT_REJECT_REASON

        session = await self._get_session()
        try:
            loaded = await self._load_pending(session, request_id)
            if isinstance(loaded, ModerationResult):
                return loaded
            request, ad, _, _ = loaded

            if not await self._claim(session, request_id, ModerationStatus.REJECTED, reviewer_id, reason):
                await session.rollback()
                logger.info(f"Request {request_id} was decided by someone else first")
                return ModerationResult(False, ALREADY_DECIDED)

            await recalculate_ad_status(session, ad.id)
            await session.commit()

            submitter = await session.get(User, ad.user_id)
            submitter_telegram_id = submitter.telegram_id if submitter else None

            logger.info(f"Request {request_id} rejected by {reviewer_id}: {reason}")

        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error rejecting request {request_id}: {e}")
            raise ModerationServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

        await self._notify_submitter(submitter_telegram_id, rejected_text(reason))
        return ModerationResult(True, "Rejected.")

    async def list_pending(self, limit: int = 50) -> List[ModerationRequest]:
        session = await self._get_session()
        try:
            stmt = (
                select(ModerationRequest)
                .where(ModerationRequest.status == ModerationStatus.PENDING)
                .order_by(ModerationRequest.created_at, ModerationRequest.id)
                .limit(limit)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Database error listing pending requests: {e}")
            raise ModerationServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def _load_pending(self, session: AsyncSession, request_id: int
                            ) -> Union[ModerationResult, Tuple[ModerationRequest, Ad, Category, Channel]]:
        request = await session.get(ModerationRequest, request_id)
        if request is None:
            return ModerationResult(False, "Moderation request not found.")

        if not request.is_pending:
            return ModerationResult(False, ALREADY_DECIDED)

        ad = await session.get(Ad, request.ad_id)
        if ad is None:
            return ModerationResult(False, "Ad not found.")

        category = await session.get(Category, ad.category_id)
        if category is None:
            return ModerationResult(False, "Category not found.")

        channel = await session.get(Channel, request.channel_id)
        if channel is None:
            return ModerationResult(False, "Channel not found.")

        return request, ad, category, channel

    async def _claim(self, session: AsyncSession, request_id: int, status: ModerationStatus,
                     reviewer_id: Optional[int], reason: Optional[str] = None) -> bool:
        """Move a request out of PENDING with a single conditional update.

        Only one of two racing decisions can match the PENDING filter.
        """
        values = {
            "status": status,
            "reviewed_by_telegram_id": reviewer_id,
            "reviewed_at": datetime.now(timezone.utc),
        }
        if status == ModerationStatus.REJECTED:
            values["reject_reason"] = reason

        stmt = (
            update(ModerationRequest)
            .where(ModerationRequest.id == request_id, ModerationRequest.status == ModerationStatus.PENDING)
            .values(**values)
        )
        result = await session.execute(stmt)
        return result.rowcount == 1

    async def _release_claim(self, session: AsyncSession, request_id: int) -> None:
        """Put an approved request that was never published back to PENDING."""
        stmt = (
            update(ModerationRequest)
            .where(ModerationRequest.id == request_id, ModerationRequest.status == ModerationStatus.APPROVED)
            .values(status=ModerationStatus.PENDING, reviewed_by_telegram_id=None, reviewed_at=None)
        )
        await session.execute(stmt)
        await session.commit()
        logger.info(f"Request {request_id} is pending again")

    async def _notify_reviewers(self, session: AsyncSession, request: ModerationRequest) -> int:
        try:
            ad = await session.get(Ad, request.ad_id)
            channel = await session.get(Channel, request.channel_id)
            category = await session.get(Category, ad.category_id) if ad else None
            reviewers = await UserService(session).get_active_reviewers()
            renderer = await self._get_renderer(session)
        except (SQLAlchemyError, UserServiceError) as e:
            logger.error(f"Cannot prepare notifications for request {request.id}: {e}")
            return 0

        if ad is None or category is None or channel is None:
            logger.warning(f"Request {request.id} references missing data, reviewers not notified")
            return 0

        if not reviewers:
            logger.warning(f"No active reviewers, request {request.id} waits unseen")
            return 0

        preview = renderer.build_moderation_preview(ad, category, channel)
        approve = moderation_callback(APPROVE_ACTION, request.id)
        reject = moderation_callback(REJECT_ACTION, request.id)

        sent = 0
        for reviewer in reviewers:
            try:
                if await self.notifier.send_to_reviewer(reviewer.telegram_id, preview, approve, reject):
                    sent += 1
            except Exception as e:
                logger.warning(f"Failed to send request {request.id} to reviewer {reviewer.telegram_id}: {e}")

        logger.info(f"Request {request.id} sent to {sent}/{len(reviewers)} reviewers")
        return sent

    async def _notify_submitter(self, telegram_id: Optional[int], text: str) -> None:
        if telegram_id is None:
            logger.warning("Submitter not found, decision notification skipped")
            return
        try:
            await self.notifier.send_to_user(telegram_id, text)
        except Exception as e:
            logger.warning(f"Failed to notify submitter {telegram_id}: {e}")
