"""Rendering of ad posts and reviewer previews as Telegram HTML."""

from dataclasses import dataclass
from typing import Optional

from aiogram.utils.text_decorations import html_decoration

from classified_ad_bot.models.ad import Ad
from classified_ad_bot.models.category import Category
from classified_ad_bot.models.channel import Channel
from classified_ad_bot.services.category_service import to_hashtag
from classified_ad_bot.config.settings import settings


def _quote(value: Optional[str]) -> str:
    return html_decoration.quote(value or "")


@dataclass
class PostFormatter:
    include_location_tags: bool = True
    include_category_tag: bool = True
    include_footer_link: bool = True
    default_footer_text: str = settings.default_footer_link_text
    default_footer_url: str = settings.default_footer_link_url

    @classmethod
    async def from_settings(cls, settings_service) -> "PostFormatter":
        return cls(
            include_location_tags=await settings_service.get_bool("Post.IncludeLocationTags", True),
            include_category_tag=await settings_service.get_bool("Post.IncludeCategoryTag", True),
            include_footer_link=await settings_service.get_bool("Post.IncludeFooterLink", True),
        )

    def build_post_text(self, ad: Ad, category: Category, channel: Channel) -> str:
        lines = []

        if self.include_location_tags:
            lines.append(f"{to_hashtag(ad.country)} {to_hashtag(ad.city)}".strip())

        lines.append(html_decoration.bold(_quote(ad.title)))
        lines.append(_quote(ad.text))
        lines.append(f"{html_decoration.bold('Contacts:')} {_quote(ad.contacts)}")

        if self.include_category_tag:
            lines.append(to_hashtag(category.slug or category.name))

        if self.include_footer_link:
            footer_text = channel.footer_link_text or self.default_footer_text
            footer_url = channel.footer_link_url or self.default_footer_url
            if footer_text and footer_url:
                lines.append(html_decoration.link(_quote(footer_text), footer_url))
            elif footer_text:
                lines.append(_quote(footer_text))

        return "\n\n".join(line for line in lines if line and line.strip())

    def build_moderation_preview(self, ad: Ad, category: Category, channel: Channel) -> str:
        header = (
            f"{html_decoration.bold('Moderation')}\n"
            f"Channel: {html_decoration.bold(_quote(channel.display_name))}\n"
            f"Ad #{ad.id}{' (paid)' if ad.is_paid else ''}"
        )
        return f"{header}\n\n{self.build_post_text(ad, category, channel)}"
