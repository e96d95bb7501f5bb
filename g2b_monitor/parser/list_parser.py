"""
Results table parser for G2B bid announcements.

This module turns the rendered results table into ``Announcement`` records.
The page is read in one script evaluation; all row interpretation happens
in Python.
"""

from typing import List, Dict, Any, Optional, Sequence
from urllib.parse import urljoin
import logging
import re

from ..models import Announcement, UNKNOWN_AGENCY

logger = logging.getLogger(__name__)

MIN_COLUMNS = 5
DATE_PATTERN = re.compile(r'^\d{4}/\d{2}/\d{2}')
BID_NUMBER_PATTERN = re.compile(r'bidno=(\d+)&')
TITLE_SELECTORS = ['div.tl a', 'td.tl a', 'a']
NO_DATA_MARKERS = ['데이터가 존재하지', '조회된 데이터가 없습니다']
AGENCY_COLUMN_MARKER = '수요기관'

ROWS_SCRIPT = """
([titleSelectors, noDataMarkers]) => {
    const bodyText = document.body ? document.body.innerText : '';
    const rows = Array.from(document.querySelectorAll('table tbody tr')).map(row => {
        const cells = Array.from(row.querySelectorAll('td')).map(c => (c.textContent || '').trim());
        let anchor = null;
        for (const selector of titleSelectors) {
            anchor = row.querySelector(selector);
            if (anchor) break;
        }
        return {
            cells,
            title: anchor ? (anchor.textContent || '').trim() : null,
            href: anchor ? (anchor.href || anchor.getAttribute('href') || '') : null,
        };
    });
    return {
        no_data: noDataMarkers.some(marker => bodyText.includes(marker)),
        rows,
    };
}
"""


def derive_id(link: str, title: str, date: str) -> str:
    """
    Stable identifier for an announcement.

    The numeric ``bidno`` query value when the link carries one, otherwise
    ``title_date``. The fallback is not guaranteed unique: two same-day
    announcements with identical titles share it.
    """
    match = BID_NUMBER_PATTERN.search(link or "")
    if match:
        return match.group(1)
    return f"{title}_{date}"


class ResultExtractor:
    """Extracts announcements from the results page."""

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize extractor.

        Args:
            config: Full configuration dictionary (uses ``target.agency_name``)
        """
        self.config = config
        agency_name = config.get('target', {}).get('agency_name')
        self.agency_markers = [m for m in (agency_name, AGENCY_COLUMN_MARKER) if m]
        self.title_selectors = TITLE_SELECTORS

    def extract(self, frame) -> List[Announcement]:
        """
        Read announcements from the content frame (or page).

        Args:
            frame: Playwright Frame or Page holding the results table

        Returns:
            Announcements in table order; empty when the table has no data
        """
        data = frame.evaluate(ROWS_SCRIPT, [self.title_selectors, NO_DATA_MARKERS]) or {}
        rows = data.get('rows') or []

        if data.get('no_data'):
            logger.info("Page reports no data for the current filters")
        logger.debug(f"Found {len(rows)} table rows")

        base_url = getattr(frame, 'url', '') or ''
        announcements = self.parse_rows(rows, base_url if isinstance(base_url, str) else '')
        logger.info(f"Found {len(announcements)} announcements.")
        return announcements

    def parse_rows(self, rows: Sequence[Dict[str, Any]], base_url: str = '') -> List[Announcement]:
        """Convert raw row data into announcements, skipping decoration rows."""
        announcements = []
        for idx, row in enumerate(rows):
            announcement = self.parse_row(row, base_url)
            if announcement is None:
                if idx < 3:
                    logger.debug(f"Row {idx} skipped")
                continue
            announcements.append(announcement)
        return announcements

    def parse_row(self, row: Dict[str, Any], base_url: str = '') -> Optional[Announcement]:
        cells = [self._clean_text(c) for c in row.get('cells') or []]
        if len(cells) < MIN_COLUMNS:
            return None

        title = self._clean_text(row.get('title'))
        if not title:
            return None

        link = row.get('href') or ''
        if base_url and link:
            link = urljoin(base_url, link)

        date = next((c for c in cells if DATE_PATTERN.match(c)), '')
        agency = next(
            (c for c in cells if any(marker in c for marker in self.agency_markers)),
            UNKNOWN_AGENCY,
        )

        return Announcement(
            id=derive_id(link, title, date),
            title=title,
            link=link,
            date=date,
            agency=agency,
        )

    @staticmethod
    def _clean_text(text: Optional[str]) -> str:
        if not text:
            return ""
        return re.sub(r'\s+', ' ', text).strip()
