"""
Monitor engine for the G2B bid portal.

This module orchestrates one monitoring run: browse to the filtered results
table, extract announcements, persist the unseen ones and notify about them.
"""

import time
from typing import Dict, List, Any, Optional
import logging

from .browser import BrowserManager
from .navigator import NavigationContext, NavigationError, Navigator
from ..models import Announcement, RunReport, ScrapeResult, ScrapeStatus
from ..notifier import DiscordNotifier
from ..parser import ResultExtractor
from ..storage import BaseStore, StoreError, SupabaseStore
from ..utils import MonitorLogger
from ..utils.deduplication import ChangeDetector

logger = logging.getLogger(__name__)


class MonitorEngine:
    """
    Runs a single scrape, diff and notify cycle.

    Handles:
    - Browser session lifetime
    - Navigation and extraction
    - Change detection against the store
    - Notification and the ``is_sent`` flag
    """

    def __init__(
        self,
        config: Dict[str, Any],
        store: Optional[BaseStore] = None,
        notifier: Optional[DiscordNotifier] = None,
        navigator: Optional[Navigator] = None,
    ):
        """
        Initialize monitor engine.

        Args:
            config: Configuration dictionary
            store: Store to diff against (built from ``store`` config if omitted)
            notifier: Notification sink (built from ``notifier`` config if omitted)
            navigator: Navigation driver (built from config if omitted)
        """
        self.config = config
        self.logger = MonitorLogger(__name__)

        self.browser_manager = BrowserManager(config.get('crawler', {}))
        self.navigator = navigator or Navigator(config)
        self.extractor = ResultExtractor(config)
        self.store = store or SupabaseStore(config.get('store', {}))
        self.notifier = notifier or DiscordNotifier(config.get('notifier', {}))
        self.detector = ChangeDetector(self.store)

    def scrape(self) -> ScrapeResult:
        """
        Browse to the results table and extract announcements.

        Never raises for navigation or page errors; the outcome is carried
        in the result's ``status``.

        Returns:
            ScrapeResult with announcements in table order
        """
        result = ScrapeResult()
        ctx: Optional[NavigationContext] = None

        try:
            with self.browser_manager as browser:
                ctx = NavigationContext(page=browser.get_page())
                self.navigator.run(ctx)
                result.announcements = self.extractor.extract(ctx.target)
            result.complete(ScrapeStatus.COMPLETED)

        except NavigationError as e:
            logger.error(f"Navigation failed: {e}")
            result.announcements = []
            result.complete(ScrapeStatus.NAVIGATION_FAILED)

        except Exception as e:
            self.logger.log_error(e, "Scraping failed")
            result.announcements = []
            result.complete(ScrapeStatus.ERROR)

        if ctx is not None:
            result.final_state = ctx.state.value
            result.degraded_steps = list(ctx.degraded_steps)

        if result.degraded_steps:
            logger.warning(f"Degraded steps: {', '.join(result.degraded_steps)}")
        return result

    def run(self) -> RunReport:
        """
        Run one full monitoring cycle.

        Returns:
            RunReport with per-run counters
        """
        start_time = time.time()
        self.logger.log_run_start(self.config.get('target', {}).get('agency_name', 'G2B'))

        result = self.scrape()
        report = RunReport(status=result.status, extracted=result.total_count)

        if not result.announcements:
            logger.info("No announcements extracted; nothing to store or notify.")
        else:
            new_items = self.detector.detect_new(result.announcements)
            report.new = len(new_items)
            report.skipped_errors = self.detector.get_stats()['errors']

            if new_items:
                report.notified = self.notify(new_items)
                if report.notified:
                    report.marked_sent = self.mark_sent(new_items)
            else:
                logger.info("No new announcements found.")

        self.logger.log_run_complete(report.to_dict(), time.time() - start_time)
        return report

    def notify(self, items: List[Announcement]) -> bool:
        logger.info(f"Sending notification for {len(items)} new items...")
        return self.notifier.send(items)

    def mark_sent(self, items: List[Announcement]) -> int:
        """Flip ``is_sent`` for delivered items; returns how many were marked."""
        ids = [item.id for item in items]
        try:
            self.store.mark_sent(ids)
        except StoreError as e:
            logger.error(f"Error marking items as sent: {e}")
            return 0
        return len(ids)
