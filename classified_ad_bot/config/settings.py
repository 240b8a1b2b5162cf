"""Configuration management for the Classified Ad Bot."""

import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.bot_token: str = self._get_required_env("BOT_TOKEN")
        self.database_url: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./classified_ad_bot.db")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")
        self.log_file: Optional[str] = os.getenv("LOG_FILE")
        self.environment: str = os.getenv("ENVIRONMENT", "development")
        self.debug: bool = os.getenv("DEBUG", "false").lower() == "true"

        # Compiled-in fallbacks for the runtime settings stored in app_settings
        self.global_required_subscription_channel: str = os.getenv("GLOBAL_REQUIRED_SUBSCRIPTION_CHANNEL", "")
        self.free_ads_period: str = os.getenv("FREE_ADS_PERIOD", "day")
        self.free_ads_per_period: int = int(os.getenv("FREE_ADS_PER_PERIOD", "1"))
        self.default_footer_link_text: str = os.getenv("DEFAULT_FOOTER_LINK_TEXT", "Classifieds")
        self.default_footer_link_url: str = os.getenv("DEFAULT_FOOTER_LINK_URL", "")
        self.default_pin_text: str = os.getenv(
            "DEFAULT_PIN_TEXT", "Press the button below to publish your ad."
        )

    def _get_required_env(self, key: str) -> str:
        """Get required environment variable or raise error."""
        value = os.getenv(key)
        if not value:
            raise ValueError(f"Required environment variable {key} is not set")
        return value

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


settings = Settings()
