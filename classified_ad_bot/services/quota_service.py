from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional, Tuple
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from classified_ad_bot.models.user import User
from classified_ad_bot.models.counter import DailyCounter, FREE_AD_PUBLISH_KEY
from classified_ad_bot.services.settings_service import SettingsService
from classified_ad_bot.database.connection import create_db_session
from classified_ad_bot.config.settings import settings
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)


PERIOD_DAY = "day"
PERIOD_WEEK = "week"
PERIOD_MONTH = "month"
PERIOD_NONE = "none"

PERIODS = (PERIOD_DAY, PERIOD_WEEK, PERIOD_MONTH, PERIOD_NONE)


class QuotaServiceError(Exception):
    pass


class QuotaUserNotFoundError(QuotaServiceError):
    pass


@dataclass(frozen=True)
class QuotaCheck:
    allowed: bool
    used: int
    limit: int
    period_label: str
    uses_bonus: bool = False
    unlimited: bool = False


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def period_window(period: str, today: date) -> Tuple[date, date]:
    """Inclusive date range counted for a quota period ending today."""
    if period == PERIOD_WEEK:
        return today - timedelta(days=today.weekday()), today
    if period == PERIOD_MONTH:
        return today.replace(day=1), today
    return today, today


class QuotaService:
    """Free-submission quota per user and period, with unlimited and bonus overrides."""

    def __init__(self, session: Optional[AsyncSession] = None,
                 clock: Optional[Callable[[], date]] = None):
        self._session = session
        self._owns_session = session is None
        self._today = clock or utc_today

    async def _get_session(self) -> AsyncSession:
        if self._session:
            return self._session
        return await create_db_session()

    async def get_policy(self, session: AsyncSession) -> Tuple[str, int]:
        store = SettingsService(session)

        period = (await store.get_str("Limits.FreeAdsPeriod", settings.free_ads_period)).lower()
        if period not in PERIODS:
            logger.warning(f"Unknown quota period {period!r}, falling back to {PERIOD_DAY}")
            period = PERIOD_DAY

        legacy_limit = await store.get_int("Limits.FreeAdsPerCalendarDay", settings.free_ads_per_period)
        limit = await store.get_int("Limits.FreeAdsPerPeriod", legacy_limit)
        return period, limit

    async def check_free_allowance(self, user_id: int) -> QuotaCheck:
        session = await self._get_session()
        try:
            user = await session.get(User, user_id)
            if not user:
                raise QuotaUserNotFoundError(f"User {user_id} not found")

            period, limit = await self.get_policy(session)

            if user.unlimited_placements or period == PERIOD_NONE:
                logger.debug(f"User {user_id} has unlimited free placements")
                return QuotaCheck(allowed=True, used=0, limit=limit, period_label=period, unlimited=True)

            start, end = period_window(period, self._today())
            stmt = select(func.coalesce(func.sum(DailyCounter.count), 0)).where(
                DailyCounter.user_id == user_id,
                DailyCounter.counter_key == FREE_AD_PUBLISH_KEY,
                DailyCounter.day >= start,
                DailyCounter.day <= end
            )
            used = int((await session.execute(stmt)).scalar_one())

            if used < limit:
                return QuotaCheck(allowed=True, used=used, limit=limit, period_label=period)

            if user.has_bonus:
                logger.debug(f"User {user_id} exhausted quota ({used}/{limit}), bonus available")
                return QuotaCheck(allowed=True, used=used, limit=limit, period_label=period, uses_bonus=True)

            logger.info(f"User {user_id} exceeded free quota: {used}/{limit} per {period}")
            return QuotaCheck(allowed=False, used=used, limit=limit, period_label=period)

        except QuotaServiceError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Database error checking quota for user {user_id}: {e}")
            raise QuotaServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def register_consumption(self, user_id: int, used_bonus: bool) -> None:
        session = await self._get_session()
        try:
            if used_bonus:
                stmt = (
                    update(User)
                    .where(User.id == user_id, User.bonus_placements > 0)
                    .values(bonus_placements=User.bonus_placements - 1)
                )
                result = await session.execute(stmt)
                if result.rowcount == 0:
                    logger.warning(f"User {user_id} had no bonus placement left to spend")
                else:
                    logger.info(f"User {user_id} spent a bonus placement")
            else:
                await self._increment_counter(session, user_id, self._today())

            await session.commit()

        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error registering consumption for user {user_id}: {e}")
            raise QuotaServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def _increment_counter(self, session: AsyncSession, user_id: int, day: date) -> None:
        criteria = (
            DailyCounter.user_id == user_id,
            DailyCounter.day == day,
            DailyCounter.counter_key == FREE_AD_PUBLISH_KEY,
        )
        bump = update(DailyCounter).where(*criteria).values(count=DailyCounter.count + 1)

        result = await session.execute(bump)
        if result.rowcount:
            return

        try:
            async with session.begin_nested():
                session.add(DailyCounter(user_id=user_id, day=day, counter_key=FREE_AD_PUBLISH_KEY, count=1))
        except IntegrityError:
            # A concurrent submission created today's row first
            await session.execute(bump)

        logger.debug(f"Incremented free-ad counter for user {user_id} on {day}")
