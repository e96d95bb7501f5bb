"""Crawler and monitor engine for the G2B portal."""

from .engine import MonitorEngine
from .browser import BrowserManager
from .navigator import Navigator, NavigationContext, NavigationError, NavState
from .locator import ElementLocator
from .frames import FrameLocator
from .popups import PopupDismisser

__all__ = [
    "MonitorEngine",
    "BrowserManager",
    "Navigator",
    "NavigationContext",
    "NavigationError",
    "NavState",
    "ElementLocator",
    "FrameLocator",
    "PopupDismisser",
]
