"""Wait primitives: text appearance and post-action settling."""
from .engine import WaitEngine
from .settle import WaitForHelper
from .text import race_first, wait_for_text_on_page

__all__ = ["WaitEngine", "WaitForHelper", "race_first", "wait_for_text_on_page"]
