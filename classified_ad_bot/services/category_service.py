import re
from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from classified_ad_bot.models.category import Category
from classified_ad_bot.database.connection import create_db_session
from classified_ad_bot.config.logging import get_logger

logger = get_logger(__name__)

_NON_WORD_RE = re.compile(r"[\W_]+")


def to_slug(value: Optional[str]) -> str:
    """Slug usable as a Telegram hashtag. Non-Latin letters are kept as is."""
    if not value or not value.strip():
        return ""
    return _NON_WORD_RE.sub("_", value.strip()).strip("_")


def to_hashtag(value: Optional[str]) -> str:
    slug = to_slug(value)
    return f"#{slug}" if slug else ""


class CategoryServiceError(Exception):
    pass


class ParentCategoryNotFoundError(CategoryServiceError):
    pass


class CategoryService:
    def __init__(self, session: Optional[AsyncSession] = None):
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> AsyncSession:
        if self._session:
            return self._session
        return await create_db_session()

    async def get_active_category(self, category_id: int) -> Optional[Category]:
        session = await self._get_session()
        try:
            category = await session.get(Category, category_id)
            if category is None or not category.is_active:
                logger.debug(f"Active category not found: {category_id}")
                return None
            return category
        except SQLAlchemyError as e:
            logger.error(f"Database error getting category {category_id}: {e}")
            raise CategoryServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def get_children(self, parent_id: Optional[int]) -> List[Category]:
        """Active children of a category, or root categories when parent_id is None."""
        session = await self._get_session()
        try:
            parent_clause = Category.parent_id.is_(None) if parent_id is None else Category.parent_id == parent_id
            stmt = (
                select(Category)
                .where(parent_clause, Category.is_active == True)
                .order_by(Category.sort_order, Category.name)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Database error listing children of {parent_id}: {e}")
            raise CategoryServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def ensure_category(self, name: str, parent_id: Optional[int] = None, sort_order: int = 0) -> Category:
        """Create a category or reactivate the one with the same name under the same parent.

        The parent is only ever set here, on creation; an existing category is
        never moved, which keeps the tree free of cycles.
        """
        session = await self._get_session()
        try:
            if parent_id is not None and not await session.get(Category, parent_id):
                raise ParentCategoryNotFoundError(f"Parent category {parent_id} not found")

            parent_clause = Category.parent_id.is_(None) if parent_id is None else Category.parent_id == parent_id
            stmt = select(Category).where(Category.name == name, parent_clause)
            category = (await session.execute(stmt)).scalar_one_or_none()

            if category is None:
                category = Category(
                    name=name,
                    slug=to_slug(name),
                    parent_id=parent_id,
                    sort_order=sort_order,
                    is_active=True
                )
                session.add(category)
                logger.info(f"Created category {name!r} under {parent_id}")
            else:
                category.is_active = True
                category.sort_order = sort_order
                if not category.slug:
                    category.slug = to_slug(name)

            await session.commit()
            await session.refresh(category)
            return category

        except ParentCategoryNotFoundError:
            raise
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error saving category {name!r}: {e}")
            raise CategoryServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()

    async def deactivate(self, category_id: int) -> bool:
        session = await self._get_session()
        try:
            category = await session.get(Category, category_id)
            if not category:
                return False

            category.is_active = False
            await session.commit()

            logger.info(f"Deactivated category {category_id}")
            return True

        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Database error deactivating category: {e}")
            raise CategoryServiceError(f"Database error: {e}")
        finally:
            if self._owns_session:
                await session.close()
