"""
Browser management for Playwright-based navigation.

This module provides a wrapper around Playwright for managing the single
browser session used by a monitoring run.
"""

from typing import Optional, Dict, Any
from playwright.sync_api import (
    sync_playwright,
    Browser,
    BrowserContext,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
)
import logging

logger = logging.getLogger(__name__)


class BrowserManager:
    """
    Manages the Playwright browser instance.

    Provides context manager interface so the session is released on every
    exit path.
    """

    def __init__(self, config: Dict[str, Any]):
        """
        Initialize browser manager.

        Args:
            config: ``crawler`` configuration section with a ``browser`` block
        """
        self.config = config.get('browser', {})
        self.headless = self.config.get('headless', True)
        self.timeout = self.config.get('timeout', 30000)
        self.viewport = self.config.get('viewport', {'width': 1920, 'height': 1080})
        self.user_agent = self.config.get('user_agent')

        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def start(self) -> Page:
        """
        Start browser and create a new page.

        Returns:
            Playwright Page object
        """
        try:
            logger.info("Starting browser...")

            self.playwright = sync_playwright().start()

            self.browser = self.playwright.chromium.launch(
                headless=self.headless,
                args=[
                    '--no-sandbox',
                    '--disable-setuid-sandbox',
                    '--disable-popup-blocking',
                    '--disable-dev-shm-usage',
                ]
            )

            context_options = {
                'viewport': self.viewport,
                'locale': 'ko-KR',
                'timezone_id': 'Asia/Seoul'
            }

            if self.user_agent:
                context_options['user_agent'] = self.user_agent

            self.context = self.browser.new_context(**context_options)
            self.context.set_default_timeout(self.timeout)

            self.page = self.context.new_page()

            logger.info("Browser started successfully")
            return self.page

        except Exception as e:
            logger.error(f"Failed to start browser: {e}")
            self.close()
            raise

    def close(self) -> None:
        """Close browser and cleanup resources."""
        try:
            if self.context:
                self.context.close()
                self.context = None
                self.page = None

            if self.browser:
                self.browser.close()
                self.browser = None

            if self.playwright:
                self.playwright.stop()
                self.playwright = None

            logger.info("Browser closed successfully")

        except Exception as e:
            logger.error(f"Error closing browser: {e}")

    def get_page(self) -> Page:
        """
        Get the current page or start the browser.

        Returns:
            Playwright Page object
        """
        if not self.page:
            if self.context:
                self.page = self.context.new_page()
            else:
                self.page = self.start()

        return self.page

    @staticmethod
    def click_expecting_new_page(page, click, timeout: float = 5.0) -> Optional[Page]:
        """
        Run ``click`` and wait for a tab opened by ``page``.

        Args:
            page: Page whose opener relationship identifies the new tab
            click: Zero-argument callable performing the click
            timeout: Seconds to wait for the new tab

        Returns:
            The new Page, or None if no tab was opened in time
        """
        try:
            with page.context.expect_page(
                predicate=lambda new_page: new_page.opener() == page,
                timeout=timeout * 1000,
            ) as new_page_info:
                click()
            new_page = new_page_info.value
        except PlaywrightTimeoutError:
            return None

        new_page.wait_for_load_state('domcontentloaded')
        return new_page

    @staticmethod
    def take_screenshot(page, path: str, full_page: bool = True) -> bool:
        """
        Take a screenshot of ``page``.

        Args:
            page: Page to capture
            path: Path to save screenshot
            full_page: Whether to capture full page

        Returns:
            True if the file was written
        """
        try:
            page.screenshot(path=path, full_page=full_page)
            logger.info(f"Screenshot saved to: {path}")
            return True
        except Exception as e:
            logger.error(f"Failed to take screenshot: {e}")
            return False
