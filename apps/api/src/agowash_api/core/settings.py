from functools import lru_cache
from typing import Annotated, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./agowash.db"
    redis_url: str = "redis://localhost:6379/0"

    # Cache store
    cache_default_ttl_seconds: int = 60 * 10
    cache_maxmemory: str = "100mb"
    cache_maxmemory_policy: str = "allkeys-lru"
    cache_scan_batch_size: int = 100

    # Chain relay
    chain_rpc_url: str | None = None
    chain_api_key: str | None = None
    chain_timeout_seconds: float = 30.0
    chain_contract_address: str | None = None

    # Internal API security
    api_key: str = ""

    # Application URLs
    frontend_url: str = "http://localhost:3000"
    api_base_url: str = "http://localhost:8000"

    # Blob store (IPFS)
    ipfs_api_url: str | None = None
    ipfs_gateway_url: str = "https://ipfs.io/ipfs/"
    ipfs_project_id: str | None = None
    ipfs_project_secret: str | None = None
    default_photo_url: str = "https://via.placeholder.com/150"
    bronze_frame_cid: str | None = None
    silver_frame_cid: str | None = None
    gold_frame_cid: str | None = None

    # Loyalty behaviour
    nft_auto_refresh_on_tier_change: bool = False
    broadcast_queue_size: int = 100
    background_failure_log_size: int = 50

    # Free wash expiry watcher
    free_wash_watcher_enabled: bool = False
    free_wash_watcher_interval_seconds: int = 60
    free_wash_watcher_page_size: int = 50

    # Process lifecycle
    shutdown_grace_seconds: float = 10.0
    log_level: str = "INFO"

    # Tracing; spans are exported only when an OTLP endpoint is set
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: Annotated[dict[str, str], NoDecode] = Field(default_factory=dict)
    otel_excluded_urls: str = "healthz,readyz"

    # Email / notification settings
    admin_email: str | None = None
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    smtp_sender_email: str | None = None

    # In-process ledger used when no chain relay is configured
    chain_dev_owner_address: str = "0x0000000000000000000000000000000000000001"
    chain_dev_admin_addresses: Annotated[list[str], NoDecode] = Field(default_factory=list)
    chain_dev_points_per_transaction: int = 100

    @field_validator("chain_dev_admin_addresses", mode="before")
    @classmethod
    def _parse_address_list(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip().lower() for item in value.split(",") if item.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(item).strip().lower() for item in value if str(item).strip()]
        return []

    @field_validator("otel_exporter_otlp_headers", mode="before")
    @classmethod
    def _parse_header_pairs(cls, value: object) -> dict[str, str]:
        if isinstance(value, str):
            pairs = (item.split("=", 1) for item in value.split(",") if "=" in item)
            return {key.strip(): header.strip() for key, header in pairs}
        return dict(value or {})


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
