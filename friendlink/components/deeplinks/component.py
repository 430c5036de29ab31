"""
Deep links component - canonical invitation URIs.

Renders `<scheme>://invite/<identifier>` for both invite codes and QR
identifiers. The URI shape is identical for both; callers tell them apart
by which endpoint they hit, never by the link.
"""

from __future__ import annotations

import re
from urllib.parse import urlparse

INVITE_HOST = "invite"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.-]*$")


def is_valid_identifier(identifier: str) -> bool:
    return bool(identifier) and _IDENTIFIER_RE.match(identifier) is not None


class DeepLinkFormatter:
    """Formats and parses invite deep links for one configured scheme."""

    def __init__(self, scheme: str):
        if not _SCHEME_RE.match(scheme):
            raise ValueError(f"Invalid deep link scheme: {scheme!r}")
        self._scheme = scheme

    @property
    def scheme(self) -> str:
        return self._scheme

    @property
    def prefix(self) -> str:
        return f"{self._scheme}://{INVITE_HOST}/"

    def format(self, identifier: str) -> str:
        if not is_valid_identifier(identifier):
            raise ValueError("Identifier must be a non-empty URL-safe token")
        return f"{self.prefix}{identifier}"

    def parse(self, uri: str) -> str | None:
        """Return the identifier carried by a link of this scheme, else None."""
        parsed = urlparse(uri.strip())
        if parsed.scheme != self._scheme or parsed.netloc != INVITE_HOST:
            return None

        identifier = parsed.path.strip("/")
        if not is_valid_identifier(identifier):
            return None
        return identifier

    def extract_identifier(self, value: str) -> str:
        """Accept either a bare identifier or a full deep link."""
        value = value.strip()
        if "://" in value:
            return self.parse(value) or ""
        return value
