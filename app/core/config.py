"""
app/core/config.py

Purpose: Application configuration

- Loads environment variables
- Centralizes config values (DB URI, Messenger, AI, MoMo, limits)
- Validates configuration on startup
- Environment-specific settings
"""

from pydantic import Field, field_validator, ValidationInfo
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional, Literal


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Validates all required configs on startup.
    """

    # Environment
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"

    # MongoDB
    MONGODB_URL: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI"
    )
    MONGODB_DB_NAME: str = Field(
        default="answerbot",
        description="MongoDB database name"
    )
    MONGODB_MAX_POOL_SIZE: int = Field(default=50, ge=1)
    MONGODB_CONNECT_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        description="Startup connection attempts before giving up"
    )

    # Messenger (Facebook Graph API)
    VERIFY_TOKEN: Optional[str] = Field(
        default=None,
        description="Token echoed back during webhook subscription handshake"
    )
    PAGE_ACCESS_TOKEN: Optional[str] = Field(
        default=None,
        description="Page access token for the Send API"
    )
    FB_APP_SECRET: Optional[str] = Field(
        default=None,
        description="App secret used to verify X-Hub-Signature-256"
    )
    GRAPH_API_VERSION: str = Field(
        default="v17.0",
        description="Graph API version used for outbound messages"
    )

    # AI completion (OpenAI-compatible endpoint)
    OPENAI_API_KEY: Optional[str] = Field(
        default=None,
        description="API key for the completion provider"
    )
    AI_BASE_URL: str = Field(
        default="https://openrouter.ai/api/v1",
        description="Base URL of the OpenAI-compatible API"
    )
    AI_MODEL: str = Field(
        default="mistralai/mistral-nemo:free",
        description="Model used to answer user questions"
    )
    SYSTEM_PROMPT: str = Field(
        default=(
            "You are a helpful AI assistant focusing on academics, business, "
            "agriculture, health, and general knowledge. Provide accurate, "
            "concise responses."
        ),
        description="System prompt sent with every completion"
    )
    AI_MAX_TOKENS: int = Field(default=800, description="Completion token cap")
    AI_TIMEOUT_SECONDS: float = Field(default=30.0, description="Completion request timeout")

    # MTN MoMo collection API
    MOMO_ENVIRONMENT: Literal["sandbox", "production"] = "sandbox"
    MOMO_BASE_URL: Optional[str] = Field(
        default=None,
        description="Override for the MoMo API host"
    )
    MOMO_TARGET_ENVIRONMENT: Optional[str] = Field(
        default=None,
        description="X-Target-Environment header value (defaults to MOMO_ENVIRONMENT)"
    )
    MOMO_API_USER_ID: Optional[str] = None
    MOMO_API_KEY: Optional[str] = None
    MOMO_SUBSCRIPTION_KEY: Optional[str] = None
    CALLBACK_HOST: Optional[str] = Field(
        default=None,
        description="Public base URL the gateway calls back to"
    )
    MOMO_TIMEOUT_SECONDS: float = Field(default=15.0, description="Gateway request timeout")

    # Sandbox bypass (development only)
    SANDBOX_BYPASS_ENABLED: bool = False
    SANDBOX_TEST_NUMBERS: List[str] = Field(default_factory=list)

    # Usage limits and plans
    TIMEZONE: str = Field(
        default="Africa/Juba",
        description="Timezone that defines the daily quota boundary"
    )
    TRIAL_MESSAGES_PER_DAY: int = 3
    SUBSCRIPTION_MESSAGES_PER_DAY: int = 30
    WEEKLY_PLAN_PRICE: int = 3000
    MONTHLY_PLAN_PRICE: int = 6500
    DISPLAY_CURRENCY: str = "SSP"
    PAYMENT_TIMEOUT_MINUTES: int = 15

    # Validation
    MOBILE_NUMBER_PATTERN: str = Field(
        default=r"^092\d{7}$",
        description="Accepted MTN South Sudan mobile number format"
    )
    MAX_MESSAGE_LENGTH: int = 1000

    # Application
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode"
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    API_PREFIX: str = Field(
        default="",
        description="API route prefix"
    )
    CORS_ORIGINS: list = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    # Security
    ADMIN_API_KEY: Optional[str] = Field(
        default=None,
        description="Shared key required on payment admin routes (X-Admin-Key)"
    )

    @field_validator("SANDBOX_BYPASS_ENABLED")
    @classmethod
    def validate_sandbox_bypass(cls, v: bool, info: ValidationInfo) -> bool:
        """Sandbox bypass must never be active in production."""
        if v and info.data.get("ENVIRONMENT") == "production":
            raise ValueError("SANDBOX_BYPASS_ENABLED cannot be set in production environment")
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    @property
    def momo_base_url(self) -> str:
        if self.MOMO_BASE_URL:
            return self.MOMO_BASE_URL.rstrip("/")
        if self.MOMO_ENVIRONMENT == "sandbox":
            return "https://sandbox.momodeveloper.mtn.com"
        return "https://proxy.momoapi.mtn.com"

    @property
    def momo_target_environment(self) -> str:
        return self.MOMO_TARGET_ENVIRONMENT or self.MOMO_ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Global settings instance
settings = Settings()


def validate_settings():
    """
    Validates critical settings on application startup.
    Raises ValueError if any required setting is missing or invalid.
    """
    errors = []

    if not settings.MONGODB_URL:
        errors.append("MONGODB_URL is required")

    if settings.TRIAL_MESSAGES_PER_DAY < 0 or settings.SUBSCRIPTION_MESSAGES_PER_DAY < 0:
        errors.append("Daily message limits must not be negative")

    if settings.CALLBACK_HOST and not settings.CALLBACK_HOST.startswith("http"):
        errors.append("CALLBACK_HOST must be a valid HTTP/HTTPS URL")

    # Production-specific validations
    if settings.is_production:
        required = {
            "PAGE_ACCESS_TOKEN": settings.PAGE_ACCESS_TOKEN,
            "FB_APP_SECRET": settings.FB_APP_SECRET,
            "VERIFY_TOKEN": settings.VERIFY_TOKEN,
            "OPENAI_API_KEY": settings.OPENAI_API_KEY,
            "MOMO_API_USER_ID": settings.MOMO_API_USER_ID,
            "MOMO_API_KEY": settings.MOMO_API_KEY,
            "MOMO_SUBSCRIPTION_KEY": settings.MOMO_SUBSCRIPTION_KEY,
            "CALLBACK_HOST": settings.CALLBACK_HOST,
        }
        for name, value in required.items():
            if not value:
                errors.append(f"{name} is required in production")

    if errors:
        raise ValueError(f"Configuration validation failed: {', '.join(errors)}")

    return True
