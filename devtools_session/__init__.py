"""Session and state core for browser-automation tool servers."""
from .core.config import Settings
from .response.assembler import ToolResponse
from .session import Session

__all__ = ["Session", "Settings", "ToolResponse"]
