"""HTTP fetcher for calendar pages."""
import logging

import requests

from processor.errors import FetchFailure

logger = logging.getLogger(__name__)


class PageFetcher:
    """Plain GET with an identifying User-Agent; failures are not retried."""

    USER_AGENT = 'ManoaEventsSync/1.0 (+https://github.com/manoa-compass/manoa-events-sync)'

    def __init__(self, timeout: int = 20):
        """
        Initialize the fetcher.

        Args:
            timeout: HTTP request timeout in seconds (default: 20)
        """
        self.timeout = timeout

    def fetch(self, url: str) -> str:
        """
        Fetch a page.

        Args:
            url: Absolute URL to fetch

        Returns:
            Response body as text

        Raises:
            FetchFailure: On network errors or any non-2xx response
        """
        logger.info(f"Fetching URL: {url}")
        try:
            response = requests.get(
                url,
                headers={'User-Agent': self.USER_AGENT},
                timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error(f"Error fetching {url}: {e}")
            raise FetchFailure(url, reason=str(e)) from e

        if not 200 <= response.status_code < 300:
            logger.error(f"Error fetching {url}: status {response.status_code}")
            raise FetchFailure(url, status_code=response.status_code, reason=response.reason or '')

        return response.text
