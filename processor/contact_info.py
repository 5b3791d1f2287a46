"""Contact details from an event's "More Information" block."""
import copy
import logging
import re
from typing import Optional

from bs4 import Tag

from processor.models import ContactInfo

logger = logging.getLogger(__name__)


class ContactInfoExtractor:
    """Pull contact name, phone and email out of a "More Information" block."""

    PHONE_PATTERN = re.compile(r'\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}')
    LABEL_PATTERN = re.compile(r'^More Information:?', re.IGNORECASE)
    URL_PATTERN = re.compile(r'^https?://', re.IGNORECASE)
    PUNCTUATION_ONLY = re.compile(r'^[\s,.;:|/-]*$')

    def extract(self, info_block: Optional[Tag], event_page_url: Optional[str] = None) -> ContactInfo:
        """
        Extract contact details.

        Args:
            info_block: The "More Information" element, or None
            event_page_url: Resolved event page link; removed from the name

        Returns:
            ContactInfo with any fields that could be found
        """
        contact = ContactInfo()
        if info_block is None:
            return contact

        email_link = info_block.find('a', href=re.compile(r'^mailto:', re.IGNORECASE))
        if email_link:
            address = email_link['href'][len('mailto:'):].split('?')[0].strip()
            contact.email = address or None

        # Work on a copy so the caller's tree keeps its mailto link.
        name_block = copy.copy(info_block)
        for link in name_block.find_all('a', href=re.compile(r'^mailto:', re.IGNORECASE)):
            link.decompose()
        text = ' '.join(name_block.get_text(' ').split())

        full_text = ' '.join(info_block.get_text(' ').split())
        phone_match = self.PHONE_PATTERN.search(full_text)
        if phone_match:
            contact.phone = re.sub(r'\D', '', phone_match.group(0))
            text = text.replace(phone_match.group(0), '')

        if contact.email:
            text = text.replace(contact.email, '')
        if event_page_url:
            text = text.replace(event_page_url, '')

        contact.name = self._clean_name(text)
        return contact

    def _clean_name(self, text: str) -> Optional[str]:
        text = self.LABEL_PATTERN.sub('', text.strip()).strip()
        text = re.sub(r'\s+,', ',', text)
        text = re.sub(r',+', ',', text)
        text = ' '.join(text.split()).strip(' ,')

        if not text or self.PUNCTUATION_ONLY.match(text) or self.URL_PATTERN.match(text):
            return None
        return text
