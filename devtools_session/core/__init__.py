"""Core utilities: configuration, logging, and errors."""
from .config import Settings, BrowserConfig, SessionConfig, WaitConfig
from .logging import BackgroundErrorSink, setup_logging

__all__ = [
    "Settings",
    "BrowserConfig",
    "SessionConfig",
    "WaitConfig",
    "BackgroundErrorSink",
    "setup_logging",
]
