"""Configuration management for the uciforms engine."""

import re
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_url: Optional[str] = Field(
        default=None, description="Model-driven app URL used by scenarios"
    )

    # Browser Configuration
    browser_headless: bool = Field(
        default=True, description="Run browser in headless mode"
    )
    browser_timeout: int = Field(
        default=30000, ge=1000, description="Default browser action timeout (ms)"
    )
    browser_viewport_width: int = Field(
        default=1920, ge=800, description="Browser viewport width"
    )
    browser_viewport_height: int = Field(
        default=1080, ge=600, description="Browser viewport height"
    )
    storage_state_path: Optional[Path] = Field(
        default=None,
        description="Playwright storage state with an authenticated session",
    )

    # Control resolution
    control_probe_timeout_ms: int = Field(
        default=5000, ge=100, le=60000, description="Visibility probe per role candidate"
    )
    strict_labels: bool = Field(
        default=False,
        description="Fail when several controls share a label instead of taking the first",
    )
    verify_timeout_ms: int = Field(
        default=5000, ge=100, description="Bound for read-back verification"
    )

    # Option matching and scroll-search
    option_probe_timeout_ms: int = Field(
        default=1000, ge=50, le=10000, description="Probe per tier on direct entry"
    )
    scroll_probe_timeout_ms: int = Field(
        default=500, ge=50, le=10000, description="Exact probe after each scroll"
    )
    scroll_prefix_probe_timeout_ms: int = Field(
        default=300, ge=50, le=10000, description="Prefix probe after each scroll"
    )
    listbox_timeout_ms: int = Field(
        default=10000, ge=100, description="Wait for an option list to open"
    )
    lookup_scroll_pages: int = Field(
        default=8, ge=0, le=100, description="Scroll pages before escalating a lookup"
    )
    type_delay_ms: int = Field(
        default=20, ge=0, le=1000, description="Per-key delay when typing"
    )
    click_retries: int = Field(
        default=2, ge=0, le=10, description="Retries for a commit click that raced a re-render"
    )

    # Network settle heuristic
    network_settle_timeout_ms: int = Field(
        default=3000, ge=0, description="Upper bound for the search-response settle wait"
    )
    search_api_pattern: str = Field(
        default=r"/api/data/v9\.\d+/.+",
        description="URL pattern of the backing search calls",
    )

    # Lookup dialog escalation
    dialog_trigger_probe_ms: int = Field(
        default=1000, ge=50, description="Probe for the 'look up more records' trigger"
    )
    dialog_open_timeout_ms: int = Field(
        default=15000, ge=100, description="Wait for the lookup dialog to open"
    )
    dialog_row_timeout_ms: int = Field(
        default=5000, ge=100, description="Probe per tier for a dialog row"
    )
    dialog_commit_probe_ms: int = Field(
        default=1500, ge=50, description="Wait after double-click before the confirm fallback"
    )
    dialog_close_timeout_ms: int = Field(
        default=5000, ge=100, description="Wait for the dialog to close after commit"
    )

    # Calendar navigation
    calendar_open_timeout_ms: int = Field(
        default=10000, ge=100, description="Wait for the calendar popup"
    )
    calendar_safety_margin: int = Field(
        default=24, ge=0, le=240, description="Extra month hops beyond the computed distance"
    )
    calendar_unknown_hop_budget: int = Field(
        default=480, ge=1, description="Hop budget when the heading cannot be parsed"
    )

    # Grid views
    grid_max_scrolls: int = Field(
        default=30, ge=0, le=500, description="Scroll steps when searching a grid"
    )
    grid_scroll_step_px: int = Field(
        default=800, ge=50, description="Pixels per grid scroll step"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: str = Field(
        default="text",
        description="Log format (json or text)",
    )
    log_file: Optional[str] = Field(
        default=None, description="Log file path"
    )

    @field_validator("log_level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator("log_format")
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        if v not in ["json", "text"]:
            raise ValueError(f"Invalid log format: {v}")
        return v

    @field_validator("search_api_pattern")
    def validate_search_api_pattern(cls, v: str) -> str:
        """Reject patterns that do not compile."""
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"Invalid search API pattern: {v}") from exc
        return v


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    # Load .env file if it exists
    env_file = Path(".env")
    if env_file.exists():
        load_dotenv(env_file)

    return Settings()
