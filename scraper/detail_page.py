"""Parser for individual Manoa calendar event pages."""
import copy
import logging
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from processor.contact_info import ContactInfoExtractor
from processor.datetime_normalizer import ALL_DAY_PATTERN, DateTimeNormalizer
from processor.errors import IncompleteRecord, MissingContainer
from processor.line_classifier import KeywordLineClassifier, LineClassifier, split_lines
from processor.models import AttendanceType, EventRecord
from scraper.list_page import BASE_URL
from scraper.node_walk import is_tag, iter_sibling_tokens, tokens_to_lines

logger = logging.getLogger(__name__)

LABEL_TAGS = ('strong', 'b')
BLOCK_TAGS = ('p', 'div', 'ul', 'ol', 'table', 'section', 'h1', 'h2', 'h3', 'h4')


class DetailPageParser:
    """
    Turn one event detail page into an EventRecord.

    The page keeps everything inside ``#event-display``: an ``h2`` title,
    loose text and ``<br>`` lines with the date/time and location up to an
    ``<hr>`` (or the first paragraph), then paragraphs. Some paragraphs are
    labelled blocks led by a bold "Event Sponsor", "More Information" or
    "Ticket Information".
    """

    CONTAINER_SELECTOR = '#event-display'

    SECTION_LABELS = {
        'sponsor': re.compile(r'^(?:Event\s+)?Sponsor', re.IGNORECASE),
        'info': re.compile(r'^More\s+Information', re.IGNORECASE),
        'ticket': re.compile(r'^Ticket\s+Information', re.IGNORECASE),
    }
    NON_DESCRIPTION_SECTIONS = ('sponsor', 'info')

    VIRTUAL_KEYWORDS = re.compile(
        r'\b(?:zoom|online|virtual|webinar|hybrid|webcast|livestream|live stream|join meeting)\b',
        re.IGNORECASE
    )
    VIRTUAL_URL_PATTERN = re.compile(
        r'https?://(?:[\w-]+\.)*(?:zoom\.us/(?:j|my|w|s|meeting)/[\w?=&./-]+'
        r'|teams\.microsoft\.com/l/meetup-join/[^\s"<>]+'
        r'|meet\.google\.com/[\w-]+'
        r'|webex\.com/[^\s"<>]+)',
        re.IGNORECASE
    )
    URL_PATTERN = re.compile(r'^https?://', re.IGNORECASE)
    EVENT_PAGE_LINK_TEXT = re.compile(r'more info|website|details|event page|register', re.IGNORECASE)
    COST_PATTERN = re.compile(
        r'\$\s?\d+(?:\.\d{2})?'
        r'|\bfree admission\b|\badmission is free\b|\bfree event\b'
        r'|\bfree and open to the public\b|\bno charge\b',
        re.IGNORECASE
    )
    COST_CONTEXT_CHARS = 40

    def __init__(
        self,
        classifier: Optional[LineClassifier] = None,
        normalizer: Optional[DateTimeNormalizer] = None,
        contact_extractor: Optional[ContactInfoExtractor] = None,
        base_url: str = BASE_URL
    ):
        self.classifier = classifier or KeywordLineClassifier()
        self.normalizer = normalizer or DateTimeNormalizer()
        self.contact_extractor = contact_extractor or ContactInfoExtractor()
        self.base_url = base_url

    def parse(self, html_content: str, source_url: str, external_id: str) -> EventRecord:
        """
        Parse a detail page.

        Args:
            html_content: HTML of the event page
            source_url: URL the page was fetched from
            external_id: Event id taken from the URL's et_id parameter

        Returns:
            Complete EventRecord (``last_scraped_at`` is set on save)

        Raises:
            MissingContainer: The page has no ``#event-display`` element
            IncompleteRecord: Title or start date/time could not be resolved
        """
        soup = BeautifulSoup(html_content, 'html.parser')
        container = soup.select_one(self.CONTAINER_SELECTOR)
        if container is None:
            logger.error(f"[{external_id}] Could not find main container {self.CONTAINER_SELECTOR}")
            raise MissingContainer(external_id, self.CONTAINER_SELECTOR)

        heading = container.find(['h2', 'h1'])
        title = ' '.join(heading.get_text(' ').split()) if heading else ''
        if not title:
            logger.warning(f"[{external_id}] Title not found.")

        date_text, raw_location, all_day_hint = self._date_and_location(heading, external_id)
        when = self.normalizer.normalize(date_text, all_day_hint=all_day_hint, fallback_url=source_url)

        sections = self._find_sections(container)
        description = self._description(container)

        sponsor_section = sections.get('sponsor')
        organizer_sponsor = self._text_after_label(sponsor_section) if sponsor_section is not None else None
        if sponsor_section is None:
            logger.warning(f"[{external_id}] 'Event Sponsor' section not found.")

        info_section = sections.get('info')
        info_text = ''
        event_page_url = None
        if info_section is not None:
            info_text = self._text_after_label(info_section) or ''
            event_page_url = self._event_page_url(info_section)
        else:
            logger.warning(f"[{external_id}] 'More Information' section not found.")
        contact = self.contact_extractor.extract(info_section, event_page_url)

        cost = self._cost(sections.get('ticket'), info_text)

        virtual_url = self._virtual_url(raw_location, info_section, description)
        has_virtual = bool(virtual_url) or any(
            self.VIRTUAL_KEYWORDS.search(text)
            for text in (raw_location, description, info_text) if text
        )
        location = self._physical_location(raw_location)
        attendance_type, location = self._attendance(location, has_virtual, external_id)

        missing = []
        if not title:
            missing.append('title')
        if when.start is None:
            missing.append('start_date_time')
        if missing:
            logger.error(
                f"[{external_id}] Missing {', '.join(missing)}. Skipping save for {source_url}"
            )
            raise IncompleteRecord(external_id, missing)

        return EventRecord(
            event_id=external_id,
            source_url=source_url,
            title=title,
            start_date_time=when.start,
            end_date_time=when.end,
            all_day=when.is_all_day,
            location=location,
            location_virtual_url=virtual_url,
            attendance_type=attendance_type,
            description=description,
            organizer_sponsor=organizer_sponsor,
            contact_name=contact.name,
            contact_phone=contact.phone,
            contact_email=contact.email,
            cost_admission=cost,
            event_page_url=event_page_url
        )

    def _date_and_location(
        self, heading: Optional[Tag], external_id: str
    ) -> Tuple[str, Optional[str], bool]:
        """Collect the lines under the title and split them into date and location text."""
        if heading is None:
            return '', None, False

        lines = tokens_to_lines(iter_sibling_tokens(heading, stop=is_tag('hr', 'p')))
        if not lines:
            logger.warning(f"[{external_id}] Could not extract date/time/location text after title.")
            return '', None, False

        date_lines, location_lines = split_lines(lines, self.classifier)
        date_text = ' '.join(date_lines)
        raw_location = ', '.join(location_lines) or None
        all_day_hint = any(ALL_DAY_PATTERN.search(line) for line in date_lines)

        logger.debug(f"[{external_id}] Date/time text: '{date_text}', location text: '{raw_location}'")
        return date_text, raw_location, all_day_hint

    def _find_sections(self, container: Tag) -> Dict[str, Tag]:
        sections: Dict[str, Tag] = {}
        for element in container.find_all(['p', 'div']):
            name = self._section_name(element)
            if name and name not in sections:
                sections[name] = element
        return sections

    def _section_name(self, element: Tag) -> Optional[str]:
        """Return the label key when ``element`` itself starts with a bold label."""
        lead = _leading_label(element)
        if lead is None:
            return None
        lead_text = lead.get_text(' ', strip=True)
        for name, pattern in self.SECTION_LABELS.items():
            if lead_text and pattern.match(lead_text):
                return name
        return None

    def _text_after_label(self, section: Tag) -> Optional[str]:
        block = copy.copy(section)
        lead = _leading_label(block)
        if lead is not None:
            lead.decompose()
        text = ' '.join(block.get_text(' ').split()).lstrip(':').strip()
        return text or None

    def _description(self, container: Tag) -> Optional[str]:
        excluded = {
            id(element) for element in container.find_all(['p', 'div'])
            if self._section_name(element) in self.NON_DESCRIPTION_SECTIONS
        }
        paragraphs: List[str] = []
        for paragraph in container.find_all('p'):
            if id(paragraph) in excluded or any(id(parent) in excluded for parent in paragraph.parents):
                continue
            text = ' '.join(paragraph.get_text(' ').split())
            if text:
                paragraphs.append(text)
        return '\n\n'.join(paragraphs) or None

    def _event_page_url(self, info_section: Tag) -> Optional[str]:
        links = [
            link for link in info_section.find_all('a', href=True)
            if not link['href'].strip().lower().startswith('mailto:')
        ]
        for link in links:
            if self.EVENT_PAGE_LINK_TEXT.search(link.get_text(' ', strip=True)):
                return urljoin(self.base_url, link['href'].strip())
        if links:
            return urljoin(self.base_url, links[0]['href'].strip())
        return None

    def _cost(self, ticket_section: Optional[Tag], info_text: str) -> Optional[str]:
        if ticket_section is not None:
            cost = self._text_after_label(ticket_section)
            if cost:
                return cost
            logger.warning("Found 'Ticket Information' section but cost text was empty.")
            return None

        match = self.COST_PATTERN.search(info_text)
        if not match:
            return None
        return _context_window(info_text, match.start(), match.end(), self.COST_CONTEXT_CHARS)

    def _virtual_url(
        self, raw_location: Optional[str], info_section: Optional[Tag], description: Optional[str]
    ) -> Optional[str]:
        match = self.VIRTUAL_URL_PATTERN.search(raw_location or '')
        if match:
            return match.group(0)

        if info_section is not None:
            for link in info_section.find_all('a', href=True):
                match = self.VIRTUAL_URL_PATTERN.search(link['href'])
                if match:
                    return match.group(0)

        match = self.VIRTUAL_URL_PATTERN.search(description or '')
        return match.group(0) if match else None

    def _physical_location(self, raw_location: Optional[str]) -> Optional[str]:
        """Drop URL and virtual-keyword parts from the location text."""
        if not raw_location:
            return None
        parts = [
            part.strip() for part in raw_location.split(',')
            if part.strip()
            and not self.VIRTUAL_KEYWORDS.search(part)
            and not self.URL_PATTERN.match(part.strip())
        ]
        return ', '.join(parts) or None

    def _attendance(
        self, location: Optional[str], has_virtual: bool, external_id: str
    ) -> Tuple[AttendanceType, Optional[str]]:
        if has_virtual:
            if location:
                return AttendanceType.HYBRID, location
            return AttendanceType.ONLINE, None

        if not location:
            logger.warning(
                f"[{external_id}] No physical location and no virtual indicators found. "
                f"Defaulting to IN_PERSON."
            )
        return AttendanceType.IN_PERSON, location


def _context_window(text: str, start: int, end: int, width: int) -> str:
    """Return the match plus up to ``width`` characters each side, cut at word edges."""
    left = max(0, start - width)
    right = min(len(text), end + width)
    snippet_start = left
    if left > 0:
        space = text.find(' ', left, start)
        snippet_start = space + 1 if space != -1 else start
    snippet_end = right
    if right < len(text):
        space = text.rfind(' ', end, right)
        snippet_end = space if space != -1 else end
    return text[snippet_start:snippet_end].strip(' ,;')


def _leading_label(element: Tag) -> Optional[Tag]:
    """
    Return the ``strong``/``b`` that opens ``element``, looking through inline
    wrappers but not into nested blocks.
    """
    for node in element.children:
        if isinstance(node, Comment):
            continue
        if isinstance(node, NavigableString):
            if node.strip():
                return None
            continue
        if not isinstance(node, Tag):
            continue
        if node.name in LABEL_TAGS:
            return node
        if node.name in BLOCK_TAGS:
            return None
        return _leading_label(node)
    return None
