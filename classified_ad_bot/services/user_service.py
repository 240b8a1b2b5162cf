from typing import Optional, List
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from classified_ad_bot.models.user import User, Reviewer
from classified_ad_bot.database.connection import create_db_session
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)


class UserServiceError(Exception):
    pass


class UserNotFoundError(UserServiceError):
    pass


class UserService:
    def __init__(self, session: Optional[AsyncSession] = None):
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> AsyncSession:
        if self._session:
            return self._session
        return await create_db_session()

    async def register_user(self, telegram_id: int, username: Optional[str] = None,
                            first_name: Optional[str] = None) -> User:
        session = await self._get_session()
        try:
            stmt = select(User).where(User.telegram_id == telegram_id)
            existing_user = (await session.execute(stmt)).scalar_one_or_none()
            if existing_user:
                logger.info(f"User {telegram_id} already exists, returning existing user")
                return existing_user

            user = User(
                telegram_id=telegram_id,
                username=username,
                first_name=first_name,
                is_active=True
            )

            session.add(user)
            await session.commit()
            await session.refresh(user)

            logger.info(f"Registered new user: {telegram_id}")
            return user

        except IntegrityError as e:
            await session.rollback()
            logger.error(f"Failed to register user {telegram_id}: {e}")
            raise UserServiceError(f"User registration failed: {e}")
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error during user registration: {e}")
            raise UserServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def get_user_by_telegram_id(self, telegram_id: int) -> Optional[User]:
        session = await self._get_session()
        try:
            stmt = select(User).where(User.telegram_id == telegram_id)
            result = await session.execute(stmt)
            user = result.scalar_one_or_none()

            if user:
                logger.debug(f"Found user: {telegram_id}")
            else:
                logger.debug(f"User not found: {telegram_id}")

            return user

        except SQLAlchemyError as e:
            logger.error(f"Database error getting user {telegram_id}: {e}")
            raise UserServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def set_location(self, user_id: int, country: str, city: str) -> User:
        session = await self._get_session()
        try:
            user = await session.get(User, user_id)
            if not user:
                raise UserNotFoundError(f"User {user_id} not found")

            user.country = country.strip()
            user.city = city.strip()
            await session.commit()
            await session.refresh(user)

            logger.info(f"User {user_id} location set to {user.country}/{user.city}")
            return user

        except UserNotFoundError:
            raise
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error updating user location: {e}")
            raise UserServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def grant_bonus_placements(self, user_id: int, amount: int) -> User:
        if amount <= 0:
            raise UserServiceError(f"Bonus amount must be positive, got {amount}")

        session = await self._get_session()
        try:
            stmt = (
                update(User)
                .where(User.id == user_id)
                .values(bonus_placements=User.bonus_placements + amount)
            )
            result = await session.execute(stmt)
            if result.rowcount == 0:
                raise UserNotFoundError(f"User {user_id} not found")

            await session.commit()
            user = await session.get(User, user_id)

            logger.info(f"Granted {amount} bonus placements to user {user_id}")
            return user

        except UserNotFoundError:
            await session.rollback()
            raise
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error granting bonus placements: {e}")
            raise UserServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def set_unlimited(self, user_id: int, unlimited: bool) -> bool:
        session = await self._get_session()
        try:
            stmt = update(User).where(User.id == user_id).values(unlimited_placements=unlimited)
            result = await session.execute(stmt)
            await session.commit()

            success = result.rowcount > 0
            if success:
                logger.info(f"User {user_id} unlimited placements set to {unlimited}")
            else:
                logger.warning(f"User {user_id} not found for unlimited toggle")

            return success

        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error toggling unlimited placements: {e}")
            raise UserServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def get_active_reviewers(self) -> List[Reviewer]:
        session = await self._get_session()
        try:
            stmt = select(Reviewer).where(Reviewer.is_active == True).order_by(Reviewer.id)
            result = await session.execute(stmt)
            reviewers = result.scalars().all()

            logger.debug(f"Found {len(reviewers)} active reviewers")
            return list(reviewers)

        except SQLAlchemyError as e:
            logger.error(f"Database error getting reviewers: {e}")
            raise UserServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def is_active_reviewer(self, telegram_id: int) -> bool:
        session = await self._get_session()
        try:
            stmt = select(Reviewer.id).where(Reviewer.telegram_id == telegram_id, Reviewer.is_active == True)
            result = await session.execute(stmt)
            return result.scalar_one_or_none() is not None

        except SQLAlchemyError as e:
            logger.error(f"Database error checking reviewer {telegram_id}: {e}")
            raise UserServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def add_reviewer(self, telegram_id: int) -> Reviewer:
        session = await self._get_session()
        try:
            stmt = select(Reviewer).where(Reviewer.telegram_id == telegram_id)
            reviewer = (await session.execute(stmt)).scalar_one_or_none()

            if reviewer is None:
                reviewer = Reviewer(telegram_id=telegram_id, is_active=True)
                session.add(reviewer)
            else:
                reviewer.is_active = True

            await session.commit()
            await session.refresh(reviewer)

            logger.info(f"Reviewer {telegram_id} is active")
            return reviewer

        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error adding reviewer {telegram_id}: {e}")
            raise UserServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()
