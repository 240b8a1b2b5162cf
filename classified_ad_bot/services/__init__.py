from .settings_service import SettingsService, SettingsServiceError
from .content_guard import ContentGuard
from .user_service import UserService, UserServiceError, UserNotFoundError
from .category_service import CategoryService, CategoryServiceError, ParentCategoryNotFoundError
from .channel_service import ChannelService, ChannelServiceError, ChannelNotFoundError, CategoryNotFoundError
from .quota_service import QuotaService, QuotaServiceError, QuotaUserNotFoundError, QuotaCheck
from .post_formatter import PostFormatter
from .telegram_publisher import TelegramPublisher, PublishError
from .subscription_service import SubscriptionService
from .notification_service import NotificationService
from .moderation_service import ModerationService, ModerationServiceError, ModerationResult, recalculate_ad_status
from .publication_service import PublicationService, PublicationServiceError, PublicationResult
from .pin_service import PinService, PinServiceError, PinningError

__all__ = [
    'SettingsService',
    'SettingsServiceError',
    'ContentGuard',
    'UserService',
    'UserServiceError',
    'UserNotFoundError',
    'CategoryService',
    'CategoryServiceError',
    'ParentCategoryNotFoundError',
    'ChannelService',
    'ChannelServiceError',
    'ChannelNotFoundError',
    'CategoryNotFoundError',
    'QuotaService',
    'QuotaServiceError',
    'QuotaUserNotFoundError',
    'QuotaCheck',
    'PostFormatter',
    'TelegramPublisher',
    'PublishError',
    'SubscriptionService',
    'NotificationService',
    'ModerationService',
    'ModerationServiceError',
    'ModerationResult',
    'recalculate_ad_status',
    'PublicationService',
    'PublicationServiceError',
    'PublicationResult',
    'PinService',
    'PinServiceError',
    'PinningError',
]
