"""Application settings loaded from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    # Exhibit device authentication
    nfc_auth_token: str = ""  # Empty = every device request is rejected

    # Rate limiting (fixed window per client identity)
    rate_limit_max_requests: int = 10
    rate_limit_window_seconds: float = 60.0
    rate_limit_backend: str = "memory"  # "memory" | "dynamodb"
    rate_limit_table_name: str = "nfc-rate-limits"
    rate_limit_timeout_seconds: float = 1.0

    # Caller classification (comma-separated substring lists)
    trusted_device_signatures: str = "ArduinoCalendar,ESP32,ArtCalendar"
    trusted_device_types: str = "arduino"  # accepted X-Device-Type values
    suspicious_tool_signatures: str = (
        "curl,wget,python-requests,python-urllib,python-httpx,aiohttp,"
        "Go-http-client,libwww-perl,Java/,okhttp,PostmanRuntime,"
        "HeadlessChrome,PhantomJS,Scrapy"
    )
    bot_signatures: str = (
        "Googlebot,bingbot,Slurp,DuckDuckBot,Baiduspider,YandexBot,"
        "facebookexternalhit,Twitterbot,LinkedInBot,Applebot,AhrefsBot,"
        "SemrushBot,MJ12bot,PetalBot,GPTBot,ClaudeBot,CCBot,Bytespider,"
        "crawler,spider"
    )
    signature_case_sensitive: bool = False

    # Artwork store
    artwork_store_backend: str = "json"  # "json" | "dynamodb"
    artwork_data_path: str = "artworks.json"
    artwork_table_name: str = "nfc-artworks"
    artwork_store_timeout_seconds: float = 3.0
    aws_region: str = "us-east-1"

    # Response construction
    public_base_url: str = "https://dogame.art"
    api_base_url: str = "https://nfc.dogame.art"
    cache_control: str = "public, s-maxage=3600, stale-while-revalidate=86400"

    # Machine-to-machine token provider (empty URL = disabled)
    machine_token_url: str = ""
    machine_token_client_id: str = ""
    machine_token_client_secret: str = ""
    machine_token_audience: str = ""
    machine_token_timeout_seconds: float = 2.0

    # Logging
    log_level: str = "INFO"
    audit_log_file: str = ""  # Empty = stdout only

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def trusted_device_signatures_list(self) -> list[str]:
        return _split_csv(self.trusted_device_signatures)

    @property
    def trusted_device_types_list(self) -> list[str]:
        return _split_csv(self.trusted_device_types)

    @property
    def suspicious_tool_signatures_list(self) -> list[str]:
        return _split_csv(self.suspicious_tool_signatures)

    @property
    def bot_signatures_list(self) -> list[str]:
        return _split_csv(self.bot_signatures)


@lru_cache
def get_settings() -> Settings:
    return Settings()
