# tests/test_category_service.py

import pytest

from classified_ad_bot.services.category_service import (
    CategoryService, ParentCategoryNotFoundError, to_hashtag, to_slug
)


class TestSlugs:

    def test_to_slug_collapses_separators(self):
        assert to_slug("  Sewing machines & parts ") == "Sewing_machines_parts"

    def test_to_slug_keeps_non_latin_letters(self):
        assert to_slug("Швейные машины") == "Швейные_машины"

    def test_to_hashtag(self):
        assert to_hashtag("New York") == "#New_York"
        assert to_hashtag("   ") == ""
        assert to_hashtag(None) == ""


class TestCategoryService:

    @pytest.mark.asyncio
    async def test_ensure_category_creates_and_reactivates(self, session):
        service = CategoryService(session)

        root = await service.ensure_category("Equipment")
        assert root.slug == "Equipment"
        assert root.is_root is True

        await service.deactivate(root.id)
        assert await service.get_active_category(root.id) is None

        again = await service.ensure_category("Equipment", sort_order=5)
        assert again.id == root.id
        assert again.is_active is True
        assert again.sort_order == 5

    @pytest.mark.asyncio
    async def test_ensure_category_under_parent(self, session):
        service = CategoryService(session)
        root = await service.ensure_category("Equipment")

        child = await service.ensure_category("Overlockers", parent_id=root.id)

        assert child.parent_id == root.id
        assert [c.id for c in await service.get_children(root.id)] == [child.id]
        assert [c.id for c in await service.get_children(None)] == [root.id]

    @pytest.mark.asyncio
    async def test_missing_parent(self, session):
        with pytest.raises(ParentCategoryNotFoundError):
            await CategoryService(session).ensure_category("Orphan", parent_id=9999)

    @pytest.mark.asyncio
    async def test_children_ordered_by_sort_order(self, session):
        service = CategoryService(session)
        root = await service.ensure_category("Fabrics")
        await service.ensure_category("Wool", parent_id=root.id, sort_order=2)
        await service.ensure_category("Cotton", parent_id=root.id, sort_order=1)

        children = await service.get_children(root.id)

        assert [c.name for c in children] == ["Cotton", "Wool"]
