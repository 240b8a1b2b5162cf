from typing import Dict, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from classified_ad_bot.models.counter import AppSetting
from classified_ad_bot.database.connection import create_db_session
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)

_TRUE_VALUES = {"true", "1", "yes", "y"}
_FALSE_VALUES = {"false", "0", "no", "n"}


class SettingsServiceError(Exception):
    pass


class SettingsService:
    """Typed access to the app_settings table.

    Values are cached for the lifetime of the instance, which is one unit
    of work (a submission or a moderation decision).
    """

    def __init__(self, session: Optional[AsyncSession] = None):
        self._session = session
        self._owns_session = session is None
        self._cache: Dict[str, Optional[str]] = {}

    async def _get_session(self) -> AsyncSession:
        if self._session:
            return self._session
        return await create_db_session()

    async def get(self, key: str) -> Optional[str]:
        if key in self._cache:
            return self._cache[key]

        session = await self._get_session()
        try:
            stmt = select(AppSetting.value).where(AppSetting.key == key)
            result = await session.execute(stmt)
            value = result.scalar_one_or_none()

            self._cache[key] = value
            return value

        except SQLAlchemyError as e:
            logger.error(f"Database error reading setting {key}: {e}")
            raise SettingsServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def get_str(self, key: str, default: str = "") -> str:
        value = await self.get(key)
        if value is None or not value.strip():
            return default
        return value.strip()

    async def get_int(self, key: str, default: int) -> int:
        value = await self.get(key)
        try:
            return int(value.strip()) if value is not None else default
        except ValueError:
            logger.warning(f"Setting {key}={value!r} is not an integer, using {default}")
            return default

    async def get_bool(self, key: str, default: bool) -> bool:
        value = (await self.get(key) or "").strip().lower()
        if value in _TRUE_VALUES:
            return True
        if value in _FALSE_VALUES:
            return False
        return default

    async def set(self, key: str, value: str) -> None:
        session = await self._get_session()
        try:
            item = await session.get(AppSetting, key)
            if item is None:
                session.add(AppSetting(key=key, value=value))
            else:
                item.value = value

            await session.commit()
            self._cache[key] = value

            logger.info(f"Setting {key} updated")

        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error writing setting {key}: {e}")
            raise SettingsServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()
