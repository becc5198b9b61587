from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    google_sheet_id: str | None = None
    google_api_key: str | None = None
    google_access_token: str | None = None
    sheets_api_base: str = "https://sheets.googleapis.com/v4"
    sheets_timeout_s: float = 30.0
    # JSON workbook for offline runs; wins over Google Sheets when set
    sheets_fixture_path: str | None = None

    cache_ttl_seconds: int = 1800
    sheet_names_ttl_seconds: int = 3600
    fulfillment_fee: float = 1.50
    log_level: str = "INFO"

    # NOTE: extra="ignore" avoids validation errors if stray keys appear in .env
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

settings = Settings()
