"""Catalog sources: local files and http(s) endpoints"""

import logging
import time
from pathlib import Path
from typing import Optional

import httpx

from opencredit.config import settings
from opencredit.domain.exceptions import ConfigLoadError

logger = logging.getLogger(__name__)


def is_remote(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


def read_source(source: str, client: Optional[httpx.Client] = None) -> str:
    """
    Return the raw catalog text behind a path or URL.

    Raises:
        ConfigLoadError: Missing/unreadable file or failed fetch
    """
    if is_remote(source):
        return RemoteCatalogClient(client=client).fetch(source)
    return read_file(source)


def read_file(source: str) -> str:
    path = Path(source)
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigLoadError("Catalog file not found", source) from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigLoadError(f"Catalog file unreadable: {e}", source) from e


class RemoteCatalogClient:
    """Fetches a catalog document over HTTP with exponential backoff retry"""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_base: Optional[float] = None,
        sleep=time.sleep,
    ):
        self.client = client
        self.timeout = timeout or settings.catalog_timeout_seconds
        self.max_retries = max(1, max_retries if max_retries is not None else settings.catalog_fetch_retries)
        self.backoff_base = backoff_base if backoff_base is not None else settings.catalog_backoff_base
        self._sleep = sleep

    def fetch(self, url: str) -> str:
        """
        GET the document body.

        Retry strategy:
        - Retries on 5xx responses and network failures
        - 4xx responses fail immediately
        - Backoff is base * 2^(attempt - 1) between attempts
        """
        if self.client is not None:
            return self._fetch_with(self.client, url)
        with httpx.Client(timeout=self.timeout) as client:
            return self._fetch_with(client, url)

    def _fetch_with(self, client: httpx.Client, url: str) -> str:
        attempt = 0
        while True:
            try:
                response = client.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.text

            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                attempt += 1
                if status < 500 or attempt >= self.max_retries:
                    raise ConfigLoadError(f"Catalog fetch failed with HTTP {status}", url) from e
                logger.warning(
                    "Catalog fetch failed, retrying",
                    extra={"source": url, "status": status, "attempt": attempt},
                )

            except httpx.TimeoutException as e:
                attempt += 1
                if attempt >= self.max_retries:
                    raise ConfigLoadError(f"Catalog fetch timed out after {self.timeout}s", url) from e
                logger.warning("Catalog fetch timed out, retrying", extra={"source": url, "attempt": attempt})

            except httpx.RequestError as e:
                attempt += 1
                if attempt >= self.max_retries:
                    raise ConfigLoadError(f"Catalog fetch failed: {e}", url) from e
                logger.warning("Catalog fetch error, retrying", extra={"source": url, "attempt": attempt})

            self._sleep(self.backoff_base * (2 ** (attempt - 1)))
