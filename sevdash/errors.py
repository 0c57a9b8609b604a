"""
Error taxonomy
==============

Parse errors are fatal to one load attempt. Fetch errors are retried by the
load policy in `fetcher.py`. Cache errors are never fatal: the cache store
logs them and the load continues as a cache miss.
"""

from __future__ import annotations
from typing import Optional


class SevdashError(Exception):
    """Base class for every error raised by sevdash."""


# ---------------- Parse stage ----------------
class ParseError(SevdashError, ValueError):
    pass

class EmptyInputError(ParseError):
    """Fewer than two non-blank lines (header + one data line) were found."""

class NoValidRowsError(ParseError):
    """Every data row was dropped by tokenizing or validation."""


# ---------------- Fetch stage ----------------
class FetchError(SevdashError):
    """A single fetch attempt failed.

    `url` is the candidate that failed, when known.
    """
    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url

class HttpError(FetchError):
    def __init__(self, status: int, url: Optional[str] = None) -> None:
        super().__init__(f"HTTP {status}", url=url)
        self.status = status

class FetchTimeoutError(FetchError, TimeoutError):
    pass

class EmptyBodyError(FetchError):
    pass


# ---------------- Cache ----------------
class CacheError(SevdashError):
    pass

class CacheReadError(CacheError):
    pass

class CacheWriteError(CacheError):
    pass
