"""
Frame discovery.

Frames on the portal load after the parent document reports "loaded", so
the search is a bounded polling loop over every frame's visible text.
"""

from typing import Any, Optional
import logging

from .signatures import CONTENT_FRAME, TextSignature
from ..utils.polling import poll_until

logger = logging.getLogger(__name__)

BODY_TEXT_SCRIPT = "() => document.body ? document.body.innerText : ''"


def frame_text(frame) -> str:
    """Visible text of a frame, or '' if it cannot be read."""
    try:
        return frame.evaluate(BODY_TEXT_SCRIPT) or ""
    except Exception as e:
        logger.debug(f"Could not read text of frame '{describe_frame(frame)}': {e}")
        return ""


def describe_frame(frame) -> str:
    name = getattr(frame, 'name', '') or 'Unnamed'
    url = getattr(frame, 'url', '')
    return f"{name} ({url})" if url else str(name)


class FrameLocator:
    """Finds the frame whose text matches a signature."""

    def __init__(self, attempts: int = 10, interval: float = 1.0):
        self.attempts = attempts
        self.interval = interval

    def match(self, page, signature: TextSignature) -> Optional[Any]:
        """Single pass over the page's frames."""
        for frame in list(page.frames):
            if signature.matches(frame_text(frame)):
                return frame
        return None

    def find(self, page, signature: TextSignature = CONTENT_FRAME, fallback_to_page: bool = True):
        """
        Poll all frames of ``page`` for one matching ``signature``.

        Never raises. If nothing matches within the attempt budget the page
        itself is returned (or None when ``fallback_to_page`` is False).
        """
        frame = poll_until(
            lambda: self.match(page, signature),
            interval=self.interval,
            attempts=self.attempts,
            description=f"frame matching {signature.name}",
        )
        if frame is not None:
            logger.info(f"Found frame: {describe_frame(frame)}")
            return frame

        if fallback_to_page:
            logger.info("No specific frame matched. Using main page as target.")
            return page
        return None
