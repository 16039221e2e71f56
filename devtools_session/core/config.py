"""Session configuration using pydantic-settings."""
from pathlib import Path

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class BrowserConfig(BaseModel):
    """Browser connection configuration."""

    cdp_port: int = 9333
    connect_retries: int = 5
    retry_delay: float = 2.0
    headless: bool = True
    launch: bool = False


class SessionConfig(BaseModel):
    """Page registry and selection defaults."""

    default_timeout_ms: int = 5000
    navigation_timeout_ms: int = 10000
    include_devtools_pages: bool = False
    include_all_pages: bool = False
    background_error_limit: int = 50


class WaitConfig(BaseModel):
    """Settle thresholds used after mutating actions.

    Every ``*_ms`` value is a base duration; the CPU multiplier scales the
    DOM-related ones and the network multiplier scales the navigation one.
    """

    cpu_multiplier: float = Field(default=1.0, gt=0)
    network_multiplier: float = Field(default=1.0, gt=0)
    stable_dom_timeout_ms: int = 3000
    stable_dom_for_ms: int = 100
    expect_navigation_in_ms: int = 100
    navigation_timeout_ms: int = 3000


class Settings(BaseSettings):
    """Application settings loaded from YAML or environment."""

    browser: BrowserConfig = BrowserConfig()
    session: SessionConfig = SessionConfig()
    wait: WaitConfig = WaitConfig()

    @classmethod
    def from_yaml(cls, path: Path) -> "Settings":
        """Load settings from a YAML file.

        Args:
            path: Path to the YAML configuration file.

        Returns:
            Settings instance with loaded configuration.
        """
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)
