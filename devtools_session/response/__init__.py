"""Response assembly and file persistence."""
from .assembler import ImageContent, SnapshotParams, TextContent, ToolResponse
from .files import ImageFormat, save_file, save_temporary_file, screenshot_quality

__all__ = [
    "ImageContent",
    "SnapshotParams",
    "TextContent",
    "ToolResponse",
    "ImageFormat",
    "save_file",
    "save_temporary_file",
    "screenshot_quality",
]
