"""
Shared URL normalization utilities.

Duplicate detection keys on the company website, so every module that
compares websites (resolver, storage, API filters) must derive the key here.
"""

import re
from typing import Optional

_SCHEME_PATTERN = re.compile(r'^[a-z][a-z0-9+.-]*://')


def normalize_website_key(url: Optional[str]) -> str:
    """
    Reduce a website to the key used for duplicate lookup.

    Normalizations applied:
    - Strip surrounding whitespace
    - Lower-case
    - Drop the scheme (http://, https://, ...)
    - Drop a leading "www."
    - Drop trailing slashes

    Args:
        url: Website as submitted

    Returns:
        Normalized key ("" for empty input)

    Examples:
        >>> normalize_website_key("https://www.Acme.io/")
        'acme.io'
        >>> normalize_website_key("acme.io/pricing")
        'acme.io/pricing'
    """
    if not url:
        return ""

    key = url.strip().lower()
    key = _SCHEME_PATTERN.sub("", key)
    if key.startswith("www."):
        key = key[4:]

    return key.rstrip("/")
