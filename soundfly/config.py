import tempfile
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # pydantic v2: ignore unknown env vars (e.g., ENV), load from .env
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
    app_name: str = "soundfly-bridge"
    host: str = "127.0.0.1"
    port: int = 8765
    log_level: str = "info"
    # File logging options
    log_file_enabled: bool = False
    log_dir: str = "logs"
    log_file_name: str = "bridge.log"
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5
    # Rotation policy: 'size' or 'time'
    log_rotation: str = "size"
    log_when: str = "midnight"  # 'S','M','H','D','midnight','W0'-'W6'
    log_interval: int = 1
    log_utc: bool = True

    # Hosted site
    website_url: str = "https://soundfly.app"
    # Injected bridge script revision, bump when the page-side protocol changes
    bridge_script_version: int = 14

    # Feature toggles
    background_audio_enabled: bool = True
    admob_enabled: bool = False
    admob_interstitial_id: str = ""
    interstitial_interval: int = 3  # show an interstitial every N page loads
    interstitial_retry_delay: float = 30.0  # seconds before asking again after a failed load

    # YouTube audio extraction
    extraction_strategy: Literal["cobalt", "piped", "manifest"] = "cobalt"
    cobalt_instances: list[str] = ["https://cobalt-api.kwiatekmiki.com"]
    piped_instances: list[str] = [
        "https://pipedapi.kavin.rocks",
        "https://pipedapi.adminforge.de",
        "https://api.piped.private.coffee",
    ]
    manifest_player_clients: list[str] = ["android", "web"]
    extraction_timeout: float = 15.0
    # How long the last working instance stays preferred
    extraction_preference_ttl: float = 1800.0
    # Network sniffing: only responses whose URL contains this substring (empty = all)
    sniff_url_filter: str = "search/audio"

    # Temporary audio downloads (manifest strategy)
    audio_download_dir: str = str(Path(tempfile.gettempdir()) / "soundfly-audio")
    audio_download_max_age_hours: int = 6
    audio_retention_interval_sec: int = 900

    # Audio session keepalive heartbeat
    keepalive_interval: float = 20.0

    # Optional diagnostics/token protection
    diag_token: str | None = None


settings = Settings()
