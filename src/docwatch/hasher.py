"""
Fingerprints for normalized content and URL identity keys.
"""

import hashlib


def content_hash(content: str) -> str:
    """SHA-256 hex digest of the UTF-8 encoded content. Used for equality only."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def url_key(url: str) -> str:
    """SHA-1 hex digest of the URL, the identity key of snapshot records."""
    return hashlib.sha1(url.encode("utf-8")).hexdigest()
