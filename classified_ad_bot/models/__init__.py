"""Database models for the Classified Ad Bot."""

from classified_ad_bot.models.user import User, Reviewer
from classified_ad_bot.models.channel import Channel, ChannelModerationMode
from classified_ad_bot.models.category import Category, CategoryChannel
from classified_ad_bot.models.ad import Ad, AdPublication, AdStatus, MediaType
from classified_ad_bot.models.moderation import ModerationRequest, ModerationStatus
from classified_ad_bot.models.counter import AppSetting, DailyCounter, FREE_AD_PUBLISH_KEY

__all__ = [
    # Models
    "User",
    "Reviewer",
    "Channel",
    "Category",
    "CategoryChannel",
    "Ad",
    "AdPublication",
    "ModerationRequest",
    "DailyCounter",
    "AppSetting",
    # Enums
    "ChannelModerationMode",
    "AdStatus",
    "MediaType",
    "ModerationStatus",
    # Constants
    "FREE_AD_PUBLISH_KEY",
]
