"""
Source providers turning an input path into contract units
"""

from .local import DEFAULT_EXTENSIONS, LocalSourceProvider

__all__ = ["DEFAULT_EXTENSIONS", "LocalSourceProvider"]
