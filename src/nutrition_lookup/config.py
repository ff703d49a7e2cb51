"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from nutrition_lookup.services.products import WriteBackMode

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    product_table: str = "food_products"
    fatsecret_client_id: str | None = None
    fatsecret_client_secret: str | None = None
    fatsecret_premier_access: bool = False
    fatsecret_token_url: str = "https://oauth.fatsecret.com/connect/token"
    fatsecret_api_url: str = "https://platform.fatsecret.com/rest/server.api"
    fatsecret_timeout_seconds: float = 10.0
    openfoodfacts_base_url: str = "https://world.openfoodfacts.org"
    openfoodfacts_user_agent: str = (
        "NutritionLookup/0.1 (https://github.com/nutrition-lookup)"
    )
    openfoodfacts_timeout_seconds: float = 15.0
    fdc_api_key: str | None = None
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    fdc_timeout_seconds: float = 15.0
    write_back_mode: WriteBackMode = WriteBackMode.AWAIT
    max_search_providers: int = 2
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    @property
    def fatsecret_enabled(self) -> bool:
        """FatSecret is consulted only when both credentials are set."""
        return bool(self.fatsecret_client_id and self.fatsecret_client_secret)

    @property
    def fdc_enabled(self) -> bool:
        """FoodData Central is consulted only when an API key is set."""
        return bool(self.fdc_api_key)
