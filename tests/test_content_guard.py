# tests/test_content_guard.py
"""
Unit tests for the content guard that keeps links out of free ads.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from classified_ad_bot.services.content_guard import ContentGuard, normalize


class TestNormalize:
    """Tests for the text folding used by the slow path."""

    def test_spaced_out_domain_collapses(self):
        assert normalize("T . M E") == "t.me"

    def test_dot_spellings_become_dots(self):
        assert normalize("vk[dot]com") == "vk.com"
        assert normalize("vk(dot)com") == "vk.com"
        assert normalize("vk{dot}com") == "vk.com"
        assert normalize("vk dot com") == "vk.com"

    def test_cyrillic_lookalikes_map_to_latin(self):
        assert normalize("т.ме") == "t.me"

    def test_digits_replace_letters(self):
        assert normalize("y0utube 1ink") == "youtubelink"

    def test_noise_characters_dropped(self):
        assert normalize("(t).`me`") == "t.me"


class TestContentGuard:
    """Tests for ContentGuard.contains_forbidden_reference."""

    @pytest.fixture
    def guard(self):
        return ContentGuard()

    @pytest.mark.parametrize("text", [
        "Join us at t.me/sewing_club",
        "https://example.com/catalog",
        "Write me on WhatsApp",
        "instagram: @atelier_anna",
        "t . me / sewingclub",
        "t[dot]me/sewingclub",
        "т.ме/sewingclub",
        "vk(dot)com/club123",
        "my y0utube channel",
        "write me on whats app",
        "www . atelier . kz",
        "catalog: sewing-world.ru",
    ])
    def test_detects_references(self, guard, text):
        assert guard.contains_forbidden_reference(text) is True

    @pytest.mark.parametrize("text", [
        "Selling a sewing machine, barely used. Price negotiable.",
        "Overlocker Juki MO-654DE, 4 threads, with manual",
        "Hand-made dresses for kids, sizes 98-128",
        "Call Anna after 6 pm",
    ])
    def test_plain_prose_passes(self, guard, text):
        assert guard.contains_forbidden_reference(text) is False

    @pytest.mark.parametrize("text", [None, "", "   ", "\n\t"])
    def test_empty_input_passes(self, guard, text):
        assert guard.contains_forbidden_reference(text) is False

    def test_fields_checked_independently(self, guard):
        """A domain split across two fields is not a match."""
        assert guard.any_forbidden(["t.", "me/club"]) is False
        assert guard.any_forbidden(["Nice machine", "t.me/club"]) is True

    def test_custom_lists_replace_defaults(self):
        guard = ContentGuard(domain_hints=["avito.kz"], tlds=["kz"])

        assert guard.contains_forbidden_reference("see avito . kz") is True
        assert guard.contains_forbidden_reference("atelier.kz") is True
        assert guard.contains_forbidden_reference("buy at shop.com") is False


class TestContentGuardFromSettings:
    """Tests for building a guard from runtime settings."""

    @pytest.mark.asyncio
    async def test_extra_domains_and_tlds(self):
        values = {
            "ContentGuard.ExtraDomains": "olx, avito",
            "ContentGuard.Tlds": "kz",
        }
        store = MagicMock()
        store.get = AsyncMock(side_effect=lambda key: values.get(key))

        guard = await ContentGuard.from_settings(store)

        assert guard.contains_forbidden_reference("find me on olx") is True
        assert guard.contains_forbidden_reference("t.me/club") is True
        assert guard.contains_forbidden_reference("buy at shop.com") is False

    @pytest.mark.asyncio
    async def test_defaults_without_settings(self):
        store = MagicMock()
        store.get = AsyncMock(return_value=None)

        guard = await ContentGuard.from_settings(store)

        assert guard.contains_forbidden_reference("buy at shop.com") is True
