"""
Exception types carried as values on fetch and cache results.

These are not raised across component boundaries; they are stored in the
``error`` field of result objects so callers can inspect the failure kind.
"""

from __future__ import annotations


class MetaLinkException(Exception):
    """Base exception for metalink failures."""
    pass


class ClosedError(MetaLinkException):
    """Raised (as a value) when a closed fetcher, store or client is used."""
    pass


class RedirectError(MetaLinkException):
    """Base for redirect resolution failures."""

    def __init__(self, message: str, url: str | None = None) -> None:
        super().__init__(message)
        self.url = url


class TooManyRedirectsError(RedirectError):
    """The chain is longer than ``max_redirects``."""
    pass


class RedirectLoopError(RedirectError):
    """A Location header points back at the URL that produced it."""
    pass


class InvalidRedirectError(RedirectError):
    """A Location header that does not resolve to an http(s) URL."""
    pass
