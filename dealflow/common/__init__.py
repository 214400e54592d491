"""
Common utilities and shared modules.
"""

from .url_utils import normalize_website_key

__all__ = [
    "normalize_website_key",
]
