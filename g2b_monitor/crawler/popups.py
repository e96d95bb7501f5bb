"""
Popup dismissal.

The portal opens notice popups on load and again after navigating into the
search application; each is closed through its close control.
"""

import time
from typing import Iterable
import logging

from .frames import describe_frame
from .locator import ElementLocator, LocatedElement
from .signatures import POPUP_CANDIDATE_SELECTOR, POPUP_CLOSE, Signature

logger = logging.getLogger(__name__)


class PopupDismisser:
    """Clicks every visible close control in every frame."""

    def __init__(
        self,
        locator: ElementLocator = None,
        pause: float = 0.5,
        signature: Signature = POPUP_CLOSE,
        selector: str = POPUP_CANDIDATE_SELECTOR,
    ):
        self.locator = locator or ElementLocator()
        self.pause = pause
        self.signature = signature
        self.selector = selector

    def dismiss(self, page) -> int:
        """
        Close visible popups in all frames of ``page``.

        Returns:
            Number of close controls clicked
        """
        logger.info("Attempting to close visible popups...")
        closed = 0
        try:
            frames: Iterable = list(page.frames)
        except Exception as e:
            logger.warning(f"Error listing frames for popups: {e}")
            return 0

        for frame in frames:
            closed += self._dismiss_in_frame(frame)

        if closed:
            logger.info(f"Closed {closed} popup control(s)")
        return closed

    def _dismiss_in_frame(self, frame) -> int:
        closed = 0
        for element in self.locator.snapshot(frame, self.selector, self.signature.needles):
            if not element.visible or not self.signature.matches(element):
                continue

            target = LocatedElement(frame, self.selector, element, self.signature.name)
            try:
                clicked = target.click_if_visible()
            except Exception as e:
                # Cross-origin or detached frame
                logger.debug(f"Skipping popup control #{element.index}: {e}")
                continue

            if not clicked:
                # Removed or hidden by an earlier close
                logger.debug(f"Popup control #{element.index} no longer visible")
                continue

            logger.info(
                f"Closed popup in frame '{describe_frame(frame)}': {element.text[:40] or element.alt or 'Icon'}"
            )
            closed += 1
            time.sleep(self.pause)
        return closed
