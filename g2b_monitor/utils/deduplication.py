"""
Change detection against the persistent store.

Diffs freshly extracted announcements against stored ids and inserts the
ones that have not been seen before.
"""

from typing import List, Dict, Any
import logging

from ..models import Announcement
from ..storage import BaseStore, StoreError

logger = logging.getLogger(__name__)


class ChangeDetector:
    """
    Inserts unseen announcements and reports which ones were new.

    Lookups run one at a time so that two rows sharing an id within the
    same batch cannot both be inserted.
    """

    def __init__(self, store: BaseStore):
        self.store = store
        self.stats: Dict[str, int] = {
            'checked': 0,
            'existing': 0,
            'inserted': 0,
            'errors': 0,
        }

    def detect_new(self, announcements: List[Announcement]) -> List[Announcement]:
        """
        Persist announcements whose id is not in the store yet.

        Args:
            announcements: Announcements extracted during this run

        Returns:
            The newly inserted announcements, in input order
        """
        new_items: List[Announcement] = []

        for item in announcements:
            self.stats['checked'] += 1

            try:
                existing = self.store.find_by_id(item.id)
            except StoreError as e:
                # Ambiguous lookup: skip rather than risk a double insert
                logger.error(f"Error checking store for {item.id}: {e}")
                self.stats['errors'] += 1
                continue

            if existing:
                self.stats['existing'] += 1
                logger.debug(f"Already stored: {item.id}")
                continue

            logger.info(f"New item found: {item.title}")
            try:
                self.store.insert(item.to_record().to_dict())
            except StoreError as e:
                logger.error(f"Error inserting {item.id}: {e}")
                self.stats['errors'] += 1
                continue

            self.stats['inserted'] += 1
            new_items.append(item)

        return new_items

    def get_stats(self) -> Dict[str, Any]:
        return dict(self.stats)
