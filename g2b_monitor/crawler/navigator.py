"""
Navigation state machine for the G2B portal.

Drives the portal from the home page to a rendered, filtered results table:
menu traversal, arrival verification, content-frame discovery, filter entry
and search. Every step except arrival verification degrades gracefully.
"""

import calendar
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from .browser import BrowserManager
from .frames import FrameLocator, frame_text
from .locator import CLEAR_SCRIPT, CLICK_SCRIPT, ElementLocator
from .popups import PopupDismisser
from .signatures import (
    AGENCY_LABEL,
    AGENCY_LABEL_SELECTOR,
    BID_MENU,
    CLICKABLE_SELECTOR,
    CONTENT_FRAME,
    DATE_INPUT_SELECTOR,
    DATE_START_INPUT,
    FILTER_TOGGLE,
    FILTER_TOGGLE_SELECTOR,
    SEARCH_BUTTON,
    SEARCH_BUTTON_EXCLUDE,
    SEARCH_BUTTON_FALLBACK,
    SEARCH_BUTTON_SELECTOR,
    SUB_MENU,
)
from ..utils import MonitorLogger, PollStrategy, poll_until, with_retry
from ..parser.list_parser import NO_DATA_MARKERS

logger = logging.getLogger(__name__)

# Inputs that only exist on the announcement search form
MARKER_INPUT_SELECTORS = [
    'input[id*="inqrBgnDt"]',
    'input[name="taskClCd"]',
    'input[id*="dminInstCd"]',
]
AGENCY_INPUT_SELECTORS = [
    'input[id*="ibxSrchDmstCd"]',
    'input[id*="txtPrcrmntInsttNm"]',
    'input[id*="prcrmntInsttNm"]',
]
AGENCY_TRIGGER_SELECTOR = 'button, a, img[alt*="검색"], img[src*="search"], input[type="image"], .w2trigger'
LOOKUP_FRAME_PROBE = 'input[id*="ibxSrchDmstCd"]'
LOOKUP_INPUT_SELECTOR = 'input[id*="ibxSrchDmstCd"], input[id*="txtPrcrmntInsttNm"]'
LOOKUP_RESULT_SELECTOR = 'tr.gridBodyRow a, .gridBody a, .gridBody span[class*="click"], td a'
ROLE_ATTRIBUTE = 'data-g2b-role'

MARKERS_PRESENT_SCRIPT = "(selectors) => selectors.some(s => !!document.querySelector(s))"

FIRST_VISIBLE_SCRIPT = """
(selectors) => {
    for (const s of selectors) {
        const el = document.querySelector(s);
        if (el) return el.offsetParent !== null;
    }
    return false;
}
"""

# Resolve the data cell paired with a label cell, then tag its text input
# and lookup trigger so they can be addressed by attribute.
MARK_AGENCY_FIELD_SCRIPT = """
(el, [attribute, token, triggerSelector]) => {
    let cell = null;
    const th = el.closest('th');
    if (th && th.nextElementSibling) {
        cell = th.nextElementSibling;
    } else {
        const td = el.closest('td');
        if (td && td.nextElementSibling) cell = td.nextElementSibling;
    }
    if (!cell) cell = (el.parentElement && el.parentElement.parentElement) || el.closest('tr');
    if (!cell) return null;

    const input = cell.querySelector('input[type="text"]');
    const trigger = cell.querySelector(triggerSelector);
    if (input) input.setAttribute(attribute, token + '-input');
    if (trigger) trigger.setAttribute(attribute, token + '-trigger');
    return {
        has_input: !!input,
        input_locked: input
            ? (!!input.disabled || input.classList.contains('w2input_disabled') || !!input.readOnly)
            : false,
        has_trigger: !!trigger,
    };
}
"""

RESULTS_RENDERED_SCRIPT = """
(markers) => {
    const body = document.body ? document.body.innerText : '';
    return document.querySelectorAll('table tbody tr td a').length > 0
        || markers.some(m => body.includes(m));
}
"""


class NavState(str, Enum):
    """Ordered states of the navigation flow."""
    STARTED = "started"
    LANDED = "landed"
    MENU_OPENED = "menu_opened"
    SUBMENU_OPENED = "submenu_opened"
    ARRIVAL_VERIFIED = "arrival_verified"
    CONTENT_FRAME_FOUND = "content_frame_found"
    FILTERS_EXPANDED = "filters_expanded"
    AGENCY_FILTER_SET = "agency_filter_set"
    DATE_RANGE_SET = "date_range_set"
    SEARCH_TRIGGERED = "search_triggered"
    RESULTS_READY = "results_ready"


class NavigationError(Exception):
    """Arrival at the search application could not be verified."""

    def __init__(self, message: str, page_text: str = ""):
        super().__init__(message)
        self.page_text = page_text


@dataclass
class NavigationContext:
    """
    Mutable state threaded through the navigation steps.

    ``page`` is the working page and is replaced when the portal opens the
    search application in a new tab.
    """

    page: Any
    content_frame: Any = None
    lookup_frame: Any = None
    state: NavState = NavState.STARTED
    degraded_steps: List[str] = field(default_factory=list)
    history: List[NavState] = field(default_factory=list)

    @property
    def target(self):
        """Frame holding the search form and results, or the page itself."""
        return self.content_frame if self.content_frame is not None else self.page

    def advance(self, state: NavState) -> None:
        self.state = state
        self.history.append(state)

    def degrade(self, state: NavState) -> None:
        if state.value not in self.degraded_steps:
            self.degraded_steps.append(state.value)

    def switch_page(self, page) -> None:
        self.page = page
        self.content_frame = None
        self.lookup_frame = None


def months_before(day: date, months: int) -> date:
    """Same calendar day ``months`` earlier, clamped to the month's length."""
    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def format_date(day: date) -> str:
    return day.strftime('%Y/%m/%d')


class Navigator:
    """
    Runs the navigation states in order against a ``NavigationContext``.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        locator: Optional[ElementLocator] = None,
        frame_locator: Optional[FrameLocator] = None,
        popups: Optional[PopupDismisser] = None,
        today: Callable[[], date] = date.today,
    ):
        self.config = config
        self.website = config.get('website', {})
        self.target = config.get('target', {})
        crawler_config = config.get('crawler', {})
        self.wait = crawler_config.get('wait', {})
        self.screenshot_path = crawler_config.get('screenshot_path', 'debug_search_result.png')
        self.navigation_timeout = self.wait.get('navigation_timeout', 60000)

        self.logger = MonitorLogger(__name__)
        self.locator = locator or ElementLocator()
        self.frame_locator = frame_locator or FrameLocator(
            attempts=self.wait.get('frame_attempts', 10),
            interval=self.wait.get('frame_interval', 1.0),
        )
        self.popups = popups or PopupDismisser(self.locator, pause=self.wait.get('popup_pause', 0.5))
        self.today = today

    # --- driver ---

    def run(self, ctx: NavigationContext) -> NavigationContext:
        """
        Drive ``ctx`` to ``RESULTS_READY``.

        Raises:
            NavigationError: if arrival at the search form cannot be verified
        """
        self.open_portal(ctx)
        self._attempt(ctx, NavState.MENU_OPENED, self.open_menu)
        self._attempt(ctx, NavState.SUBMENU_OPENED, self.open_submenu)
        self.verify_arrival(ctx)
        self.find_content_frame(ctx)
        self._attempt(ctx, NavState.FILTERS_EXPANDED, self.expand_filters)
        self._attempt(ctx, NavState.AGENCY_FILTER_SET, self.set_agency_filter)
        self._attempt(ctx, NavState.DATE_RANGE_SET, self.set_date_range)
        self._attempt(ctx, NavState.SEARCH_TRIGGERED, self.trigger_search)
        ctx.advance(NavState.RESULTS_READY)
        self.logger.log_step(NavState.RESULTS_READY.value)
        return ctx

    def _attempt(self, ctx: NavigationContext, state: NavState, step: Callable[[NavigationContext], bool]) -> None:
        """Run a non-fatal step; failures are recorded and the flow moves on."""
        try:
            succeeded = step(ctx)
            reason = "no matching element"
        except Exception as e:
            succeeded = False
            reason = str(e)

        if not succeeded:
            ctx.degrade(state)
            self.logger.log_degraded(state.value, reason)
        else:
            self.logger.log_step(state.value)
        ctx.advance(state)

    def _poll(self, predicate, timeout_key: str, default: float, description: str):
        strategy = PollStrategy.from_config(self.wait, timeout_key, default)
        return poll_until(
            predicate,
            timeout=strategy.timeout,
            interval=strategy.interval,
            description=description,
        )

    # --- 1. Landed ---

    @with_retry(max_attempts=2, initial_delay=2.0)
    def _goto(self, page, url: str) -> None:
        page.goto(url, wait_until='networkidle', timeout=self.navigation_timeout)

    def open_portal(self, ctx: NavigationContext) -> None:
        url = self.website.get('home_url', 'https://www.g2b.go.kr/')
        self.logger.log_page_visit(url)
        self._goto(ctx.page, url)
        self.popups.dismiss(ctx.page)
        ctx.advance(NavState.LANDED)
        self.logger.log_step(NavState.LANDED.value)

    # --- 2. MenuOpened ---

    def open_menu(self, ctx: NavigationContext) -> bool:
        # The menu lives in the global navigation bar, so chrome is not excluded here.
        menu = self.locator.find(
            list(ctx.page.frames), CLICKABLE_SELECTOR, BID_MENU,
            require_visible=False, exclude_chrome=False,
        )
        if menu is None:
            logger.warning('Could not find "입찰정보" menu. Proceeding anyway...')
            return False

        logger.info(f'Found "입찰정보" menu: {menu.describe()}. Clicking...')
        menu.click()
        return True

    # --- 3. SubMenuOpened ---

    def open_submenu(self, ctx: NavigationContext) -> bool:
        submenu = self._poll(
            lambda: self.locator.find(
                list(ctx.page.frames), CLICKABLE_SELECTOR, SUB_MENU,
                require_visible=False, exclude_chrome=False,
            ),
            'menu_timeout', 2.0, 'announcement sub-menu',
        )
        if submenu is None:
            logger.warning('Could not find "공고현황" menu button.')
            return False

        logger.info(f"Found sub-menu {submenu.describe()}. Clicking...")
        new_page = BrowserManager.click_expecting_new_page(
            ctx.page, submenu.click, timeout=self.wait.get('new_tab_timeout', 5.0)
        )
        if new_page is not None:
            logger.info('New tab/window opened. Switching context...')
            ctx.switch_page(new_page)
            new_page.bring_to_front()
        return True

    # --- 4. ArrivalVerified ---

    def has_marker_inputs(self, page) -> bool:
        """True if any frame of ``page`` holds one of the search-form marker inputs."""
        for frame in list(page.frames):
            try:
                if frame.evaluate(MARKERS_PRESENT_SCRIPT, MARKER_INPUT_SELECTORS):
                    return True
            except Exception as e:
                logger.debug(f"Marker check failed: {e}")
        return False

    def _page_title(self, page) -> str:
        try:
            return page.title()
        except Exception as e:
            logger.debug(f"Could not read page title: {e}")
            return ""

    def verify_arrival(self, ctx: NavigationContext) -> None:
        """
        Confirm the search form is loaded, falling back to the direct URL.

        Raises:
            NavigationError: if neither the menu path nor the direct URL
                reached the search form
        """
        verified = bool(self._poll(lambda: self.has_marker_inputs(ctx.page),
                                   'arrival_timeout', 3.0, 'search form markers'))
        title = self._page_title(ctx.page)
        logger.info(f"Current Page Title: {title}")

        home_title = self.website.get('home_title', '나라장터')
        if not verified and title == home_title:
            direct_url = self.website.get('direct_search_url')
            logger.error(f'Still on main page (title: {title}) and search form inputs not found.')
            logger.info(f"Menu navigation failed. Attempting direct URL: {direct_url}")
            try:
                self._goto(ctx.page, direct_url)
            except Exception as e:
                logger.error(f"Direct URL navigation failed: {e}")
            else:
                verified = bool(self._poll(lambda: self.has_marker_inputs(ctx.page),
                                           'direct_url_timeout', 4.0, 'search form markers after direct URL'))

        if not verified:
            stub = frame_text(ctx.page)[:200]
            logger.error(f"Page stub: {stub}")
            raise NavigationError("Navigation verification failed: search inputs not found", page_text=stub)

        logger.info("Verified arrival on search page (found search inputs).")
        ctx.advance(NavState.ARRIVAL_VERIFIED)
        self.logger.log_step(NavState.ARRIVAL_VERIFIED.value)
        self.popups.dismiss(ctx.page)

    # --- 5. ContentFrameFound ---

    def find_content_frame(self, ctx: NavigationContext) -> None:
        logger.info('Searching for content frame containing "공고명"...')
        ctx.content_frame = self.frame_locator.find(ctx.page, CONTENT_FRAME)
        ctx.advance(NavState.CONTENT_FRAME_FOUND)
        self.logger.log_step(NavState.CONTENT_FRAME_FOUND.value)

    # --- 6. FiltersExpanded ---

    def agency_input_visible(self, frame) -> bool:
        try:
            return bool(frame.evaluate(FIRST_VISIBLE_SCRIPT, AGENCY_INPUT_SELECTORS))
        except Exception as e:
            logger.debug(f"Agency input check failed: {e}")
            return False

    def expand_filters(self, ctx: NavigationContext) -> bool:
        frame = ctx.target
        if self.agency_input_visible(frame):
            logger.info("Detailed search inputs are already visible.")
            return True

        toggle = self.locator.find(frame, FILTER_TOGGLE_SELECTOR, FILTER_TOGGLE, require_visible=False)
        if toggle is None:
            logger.warning('Could not find "상세조건" button.')
            return False

        logger.info(f"Clicking filter toggle {toggle.describe()} (matched {toggle.signature})")
        toggle.click()
        if not self._poll(lambda: self.agency_input_visible(frame), 'filter_timeout', 2.0, 'agency input'):
            logger.info("Agency input still hidden after expanding filters")
        return True

    # --- 7. AgencyFilterSet ---

    def set_agency_filter(self, ctx: NavigationContext) -> bool:
        frame = ctx.target
        code = str(self.target.get('agency_code', ''))

        label = self.locator.find(frame, AGENCY_LABEL_SELECTOR, AGENCY_LABEL, require_visible=False)
        if label is None:
            logger.warning('Could not find "수요기관" label outside the global navigation.')
            return False

        token = uuid.uuid4().hex[:12]
        field_info = label.evaluate(MARK_AGENCY_FIELD_SCRIPT, [ROLE_ATTRIBUTE, token, AGENCY_TRIGGER_SELECTOR])
        if not field_info:
            logger.warning("Could not resolve the data cell next to the agency label.")
            return False

        if field_info.get('has_input') and not field_info.get('input_locked'):
            logger.info("Found agency input box directly. Typing...")
            agency_input = frame.locator(f'[{ROLE_ATTRIBUTE}="{token}-input"]')
            agency_input.evaluate(CLEAR_SCRIPT)
            agency_input.press_sequentially(code)
            agency_input.press('Enter')
            return True

        if field_info.get('has_input'):
            logger.info("Agency input is disabled/read-only. Switching to trigger button...")

        if not field_info.get('has_trigger'):
            logger.warning('Could not find agency input or trigger near "수요기관" label.')
            return False

        logger.info("Clicking agency lookup trigger...")
        frame.locator(f'[{ROLE_ATTRIBUTE}="{token}-trigger"]').evaluate(CLICK_SCRIPT)

        lookup = self._poll(lambda: self.find_lookup_frame(ctx.page), 'lookup_timeout', 2.0, 'lookup popup frame')
        if lookup is not None:
            logger.info(f"Popup frame identified: {lookup.name}")
            ctx.lookup_frame = lookup
        return self.fill_lookup(lookup if lookup is not None else frame, code)

    def find_lookup_frame(self, page):
        """Frame that looks like the agency lookup popup, if one is open."""
        for frame in list(page.frames):
            name = frame.name or ''
            if 'popup' not in name and 'frame' not in name:
                continue
            try:
                if frame.locator(LOOKUP_FRAME_PROBE).count() > 0:
                    return frame
            except Exception as e:
                logger.debug(f"Lookup check failed in frame {name}: {e}")
        return None

    def fill_lookup(self, scope, code: str) -> bool:
        """Type the agency code into the lookup form and pick the first hit."""
        lookup_input = scope.locator(LOOKUP_INPUT_SELECTOR).first
        if lookup_input.count() == 0:
            logger.warning("No agency lookup input found.")
            return False

        logger.info("Found lookup input. Typing...")
        lookup_input.evaluate(CLEAR_SCRIPT)
        lookup_input.click(click_count=3)
        lookup_input.press_sequentially(code)
        lookup_input.press('Enter')

        results = scope.locator(LOOKUP_RESULT_SELECTOR)
        if not self._poll(lambda: results.count() > 0, 'lookup_timeout', 2.0, 'lookup results'):
            logger.warning("No clickable result found in popup.")
            return False

        logger.info("Clicking first result in popup...")
        results.first.evaluate(CLICK_SCRIPT)
        return True

    # --- 8. DateRangeSet ---

    def start_date(self) -> str:
        months = int(self.target.get('lookback_months', 6))
        return format_date(months_before(self.today(), months))

    def set_date_range(self, ctx: NavigationContext) -> bool:
        start = self.start_date()
        logger.info(f"Setting date range start to {start}...")

        date_input = self.locator.find(
            ctx.target, DATE_INPUT_SELECTOR, DATE_START_INPUT,
            require_visible=False, exclude_chrome=False,
        )
        if date_input is None:
            logger.warning("Could not find date start input automatically.")
            return False

        logger.info(f"Found date input [ID: {date_input.snapshot.id}]. Setting to {start}")
        # Tab fires the form's own change handlers
        date_input.fill_and_submit(start, key='Tab')
        return True

    # --- 9. SearchTriggered ---

    def trigger_search(self, ctx: NavigationContext) -> bool:
        frame = ctx.target
        clicked = False
        try:
            button = self.locator.find(
                frame, SEARCH_BUTTON_SELECTOR, SEARCH_BUTTON,
                require_visible=False, exclude=SEARCH_BUTTON_EXCLUDE,
            )
            if button is not None:
                logger.info(f"Clicking search button: {button.describe()}")
                button.click()
                clicked = True
            else:
                logger.warning("Could not identify a main search button.")
                fallback = frame.locator(SEARCH_BUTTON_FALLBACK).first
                if fallback.count() > 0:
                    logger.info("Fallback: clicking first button in .btn_area")
                    fallback.evaluate(CLICK_SCRIPT)
                    clicked = True

            if clicked:
                self.wait_for_results(ctx)
        finally:
            BrowserManager.take_screenshot(ctx.page, self.screenshot_path)

        return clicked

    def wait_for_results(self, ctx: NavigationContext) -> bool:
        try:
            ctx.page.wait_for_load_state('networkidle', timeout=self.wait.get('results_timeout', 5.0) * 1000)
        except PlaywrightTimeoutError:
            logger.debug("Network did not go idle after search")

        rendered = self._poll(
            lambda: ctx.target.evaluate(RESULTS_RENDERED_SCRIPT, NO_DATA_MARKERS),
            'results_timeout', 5.0, 'results table',
        )
        if not rendered:
            logger.warning("Results did not render within the wait budget")
        return bool(rendered)
