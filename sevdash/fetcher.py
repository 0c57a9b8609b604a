"""Sheet fetcher: sequential candidate URLs, per-attempt timeout, round retries.
- Candidates are tried strictly in order (export endpoint, then published CSV)
- A failed round waits `retry_delay` and starts over, up to `max_retries` rounds
- The last error seen is what the caller gets
- gviz JSON responses are unwrapped to CSV text
"""
from __future__ import annotations
import logging
import time
import requests
from typing import Callable, Optional

from .config import DashboardConfig
from .csv_parser import gviz_to_csv, is_gviz_response
from .errors import EmptyBodyError, FetchError, FetchTimeoutError, HttpError, ParseError

log = logging.getLogger('sevdash.fetch')


class SheetFetcher:
    def __init__(self, config: Optional[DashboardConfig] = None,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep) -> None:
        self.config = config or DashboardConfig()
        self.session = session or requests.Session()
        self._sleep = sleep

    def fetch(self, url: str, timeout: Optional[float] = None) -> str:
        """One GET with its own timeout. Returns the body text."""
        timeout = self.config.timeout if timeout is None else timeout
        log.info('[API] start %s', url)
        try:
            resp = self.session.get(url, timeout=timeout)
        except requests.Timeout as e:
            raise FetchTimeoutError(f"Timed out after {timeout}s", url) from e
        except requests.RequestException as e:
            raise FetchError(f"Request failed: {e}", url) from e
        if not 200 <= resp.status_code < 300:
            raise HttpError(resp.status_code, url)
        text = resp.text or ""
        if not text.strip():
            raise EmptyBodyError("Empty response body", url)
        if is_gviz_response(text):
            log.info('[API] gviz response; unwrapping')
            try:
                text = gviz_to_csv(text)
            except ParseError as e:
                raise FetchError(f"Unreadable gviz response: {e}", url) from e
        return text

    def load_text(self) -> str:
        """Fetch the sheet, walking every candidate on each round.

        Raises the last FetchError once all rounds are exhausted.
        """
        urls = self.config.candidate_urls()
        if not urls:
            raise FetchError("no candidate URLs configured")
        rounds = max(1, int(self.config.max_retries))
        last_error: Optional[FetchError] = None
        for attempt in range(1, rounds + 1):
            for url in urls:
                try:
                    text = self.fetch(url)
                    log.info('[API] ok attempt=%d url=%s (%d chars)', attempt, url, len(text))
                    return text
                except FetchError as e:
                    last_error = e
                    log.warning('[API] attempt %d failed url=%s: %s', attempt, url, e)
            if attempt < rounds:
                log.info('[API] all candidates failed; retrying in %.1fs (attempt %d/%d)',
                         self.config.retry_delay, attempt + 1, rounds)
                self._sleep(self.config.retry_delay)
        log.error('[API] giving up after %d attempt(s)', rounds)
        raise last_error  # type: ignore[misc]
