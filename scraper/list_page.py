"""Parser for the Manoa calendar index page."""
import logging
from typing import Dict, List
from urllib.parse import parse_qs, urljoin, urlparse

from bs4 import BeautifulSoup

from processor.models import CandidateRef

logger = logging.getLogger(__name__)

BASE_URL = 'https://www.hawaii.edu/calendar/manoa/'


class ListPageParser:
    """Extract event detail links from the calendar's event table."""

    EVENT_LINK_SELECTOR = 'table tr > td:nth-of-type(2) a'
    ID_PARAM = 'et_id'

    def __init__(self, base_url: str = BASE_URL):
        self.base_url = base_url

    def parse(self, html_content: str) -> List[CandidateRef]:
        """
        Parse the index page into event candidates.

        Args:
            html_content: HTML of the calendar index page

        Returns:
            CandidateRefs in first-seen order, one per external id
        """
        soup = BeautifulSoup(html_content, 'html.parser')
        candidates: Dict[str, CandidateRef] = {}

        for link in soup.select(self.EVENT_LINK_SELECTOR):
            href = link.get('href')
            if not href:
                logger.warning(f"Skipping event link without href: '{link.get_text(strip=True)}'")
                continue

            url = urljoin(self.base_url, href.strip())
            values = parse_qs(urlparse(url).query).get(self.ID_PARAM)
            external_id = values[0].strip() if values else ''
            if not external_id:
                logger.warning(f"Found link without {self.ID_PARAM}: {url}")
                continue

            if external_id not in candidates:
                candidates[external_id] = CandidateRef(url=url, external_id=external_id)

        logger.info(f"Found {len(candidates)} unique event links on list page")
        return list(candidates.values())
