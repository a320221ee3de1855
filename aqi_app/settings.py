from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized configuration.

    Loaded from:
    - environment variables
    - .env file (if present)

    Provider tokens live here and are handed to the clients explicitly;
    the clients themselves never read the environment.
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Required when AQI_PROVIDER=waqi (checked when the provider is built)
    waqi_token: str = ""

    # Only needed when AQI_PROVIDER=openweather
    openweather_api_key: str = ""

    # "waqi" or "openweather"; chosen once, never used as a fallback chain
    aqi_provider: str = "waqi"

    # Every outbound call carries this timeout (seconds)
    http_timeout_s: float = 10.0

    history_days_default: int = 365

    # Non-secret cosmetics
    app_name: str = "Air Quality & Weather"
    log_level: str = "INFO"


settings = Settings()
