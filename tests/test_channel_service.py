# tests/test_channel_service.py
"""
Tests for channel resolution by category and the channel admin helpers.
"""

import pytest

from classified_ad_bot.models import CategoryChannel, ChannelModerationMode
from classified_ad_bot.services.channel_service import (
    CategoryNotFoundError, ChannelNotFoundError, ChannelService, ChannelServiceError
)


class TestResolveChannels:
    """Tests for ChannelService.resolve_channels."""

    @pytest.mark.asyncio
    async def test_direct_links_sorted_by_title(self, session, make_category, make_channel):
        category = await make_category()
        await make_channel("Zeta ads", categories=[category])
        await make_channel("Alpha ads", categories=[category])

        channels = await ChannelService(session).resolve_channels(category.id)

        assert [c.title for c in channels] == ["Alpha ads", "Zeta ads"]

    @pytest.mark.asyncio
    async def test_child_without_links_inherits_from_parent(self, session, make_category, make_channel):
        """Root linked to C1, child has no links: the child resolves to C1."""
        root = await make_category("Equipment")
        child = await make_category("Overlockers", parent=root)
        c1 = await make_channel("Equipment channel", categories=[root])

        channels = await ChannelService(session).resolve_channels(child.id)

        assert [c.id for c in channels] == [c1.id]

    @pytest.mark.asyncio
    async def test_child_links_override_parent(self, session, make_category, make_channel):
        root = await make_category("Equipment")
        child = await make_category("Overlockers", parent=root)
        await make_channel("Equipment channel", categories=[root])
        c2 = await make_channel("Overlocker channel", categories=[child])

        channels = await ChannelService(session).resolve_channels(child.id)

        assert [c.id for c in channels] == [c2.id]

    @pytest.mark.asyncio
    async def test_fallback_walks_several_levels(self, session, make_category, make_channel):
        root = await make_category("Equipment")
        middle = await make_category("Machines", parent=root)
        leaf = await make_category("Industrial", parent=middle)
        c1 = await make_channel("Equipment channel", categories=[root])

        channels = await ChannelService(session).resolve_channels(leaf.id)

        assert [c.id for c in channels] == [c1.id]

    @pytest.mark.asyncio
    async def test_root_without_links_is_empty(self, session, make_category):
        root = await make_category("Fabrics")

        assert await ChannelService(session).resolve_channels(root.id) == []

    @pytest.mark.asyncio
    async def test_disabled_links_and_inactive_channels_ignored(self, session, make_category, make_channel):
        root = await make_category("Equipment")
        child = await make_category("Overlockers", parent=root)
        c1 = await make_channel("Equipment channel", categories=[root])
        await make_channel("Closed channel", categories=[child], is_active=False)
        disabled = await make_channel("Paused channel", categories=[child])

        link = await session.get(CategoryChannel, (child.id, disabled.id))
        link.is_enabled = False
        await session.commit()

        channels = await ChannelService(session).resolve_channels(child.id)

        assert [c.id for c in channels] == [c1.id]


class TestChannelAdmin:
    """Tests for the channel registration and linking helpers."""

    @pytest.mark.asyncio
    async def test_ensure_channel_creates_then_updates(self, session):
        service = ChannelService(session)

        created = await service.ensure_channel(-1001, "Ads", telegram_username="@sewing_ads")
        updated = await service.ensure_channel(
            -1001, "Sewing ads", ChannelModerationMode.MODERATED, require_subscription=True
        )

        assert updated.id == created.id
        assert updated.title == "Sewing ads"
        assert updated.is_moderated is True
        assert updated.require_subscription is True
        assert updated.handle == "sewing_ads"

    @pytest.mark.asyncio
    async def test_ensure_channel_rejects_unknown_fields(self, session):
        with pytest.raises(ChannelServiceError):
            await ChannelService(session).ensure_channel(-1002, "Ads", owner_id=5)

    @pytest.mark.asyncio
    async def test_set_category_channels_replaces_links(self, session, make_category, make_channel):
        category = await make_category()
        old = await make_channel("Old channel", categories=[category])
        new = await make_channel("New channel")
        service = ChannelService(session)

        links = await service.set_category_channels(category.id, [new.id, new.id])

        assert [link.channel_id for link in links] == [new.id]
        channels = await service.resolve_channels(category.id)
        assert [c.id for c in channels] == [new.id]
        assert old.id not in [c.id for c in channels]

    @pytest.mark.asyncio
    async def test_set_category_channels_unknown_ids(self, session, make_category, make_channel):
        """A rejected call leaves the caller's objects usable and the existing links intact."""
        category = await make_category()
        channel = await make_channel(categories=[category])
        service = ChannelService(session)

        with pytest.raises(CategoryNotFoundError):
            await service.set_category_channels(9999, [])
        with pytest.raises(ChannelNotFoundError):
            await service.set_category_channels(category.id, [channel.id, 9999])

        channels = await service.resolve_channels(category.id)
        assert [c.id for c in channels] == [channel.id]

    @pytest.mark.asyncio
    async def test_set_link_enabled(self, session, make_category, make_channel):
        category = await make_category()
        channel = await make_channel(categories=[category])
        service = ChannelService(session)

        assert await service.set_link_enabled(category.id, channel.id, False) is True
        assert await service.resolve_channels(category.id) == []
        assert await service.set_link_enabled(category.id, 9999, True) is False

    @pytest.mark.asyncio
    async def test_lookups(self, session, make_channel):
        active = await make_channel("Sewing ads")
        await make_channel("Archive", is_active=False)
        service = ChannelService(session)

        assert await service.get_channel_by_id(active.id) is active
        assert await service.get_channel_by_id(9999) is None
        assert [c.title for c in await service.get_active_channels()] == ["Sewing ads"]
