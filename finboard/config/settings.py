"""
Configuration Management for Finboard

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Thresholds that shape user-facing behavior (challenge tiers, deposit
labels) live next to the external service settings so they can be
tuned without touching the ledger code.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from finboard.models.profile import ProfileType


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration for the AI prompt flows."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        extra="ignore"
    )

    api_key: str = Field(
        ...,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-1.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Model temperature (lower = more deterministic)"
    )


class SavingsSettings(BaseSettings):
    """Savings-goal ledger configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SAVINGS_",
        extra="ignore"
    )

    easy_challenge_max: Decimal = Field(
        default=Decimal("50"),
        gt=0,
        description="Largest withdrawal (absolute) that gets an easy challenge"
    )
    medium_challenge_max: Decimal = Field(
        default=Decimal("200"),
        gt=0,
        description="Largest withdrawal (absolute) that gets a medium challenge"
    )
    deposit_description: str = Field(
        default="Deposit",
        min_length=1,
        max_length=200,
        description="History label for deposits made without a reason"
    )

    @model_validator(mode='after')
    def validate_thresholds(self) -> 'SavingsSettings':
        """Tiers must be ordered easy < medium."""
        if self.medium_challenge_max <= self.easy_challenge_max:
            raise ValueError(
                "SAVINGS_MEDIUM_CHALLENGE_MAX must be greater than "
                "SAVINGS_EASY_CHALLENGE_MAX"
            )
        return self


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Dashboard defaults
    default_profile: ProfileType = Field(
        default=ProfileType.PRIVATE,
        description="Profile that is active when the dashboard starts"
    )
    audit_user: str = Field(
        default="Max Mustermann",
        min_length=1,
        description="User name recorded on audit events"
    )
    currency: str = Field(
        default="EUR",
        min_length=3,
        max_length=3,
        description="ISO currency code for all amounts"
    )

    @field_validator('currency')
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        return v.upper()


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so a missing Gemini key does not
    # prevent the ledger from working.

    @property
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def savings(self) -> SavingsSettings:
        return SavingsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    {setting_name}_error entries for sections that failed to load.
    Useful for startup checks.
    """
    results: dict[str, object] = {}
    settings = get_settings()

    for name in ("gemini", "savings", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
