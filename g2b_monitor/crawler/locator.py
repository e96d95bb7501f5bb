"""
Resilient element location across frames.

Given an ordered list of signatures and one or more frames, returns the
first element satisfying a signature, honouring visibility, enabled state
and the global-chrome exclusion.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Sequence, Union
import logging

from .signatures import (
    ElementSnapshot,
    GLOBAL_CHROME_SELECTOR,
    KEY_ATTRIBUTE,
    Signature,
    take_snapshots,
)

logger = logging.getLogger(__name__)

CLICK_SCRIPT = "el => el.click()"
CLEAR_SCRIPT = "el => { el.value = ''; }"

# null: element gone; false: no rendered box at click time; true: clicked
CLICK_KEYED_SCRIPT = """
([attribute, key, requireVisible]) => {
    const el = document.querySelector(`[${attribute}="${key}"]`);
    if (!el) return null;
    if (requireVisible && el.offsetParent === null) return false;
    el.click();
    return true;
}
"""


@dataclass
class LocatedElement:
    """An element found by the locator, addressable through Playwright."""

    scope: Any
    selector: str
    snapshot: ElementSnapshot
    signature: str = ""

    @property
    def locator(self):
        """
        Playwright locator for exactly the snapshotted element.

        The element carries the key attribute written during the snapshot,
        so the locator does not depend on document positions, which shift
        when other nodes are removed.
        """
        if not self.snapshot.key:
            raise LookupError(f"Element #{self.snapshot.index} of '{self.selector}' has no key")
        return self.scope.locator(f'[{KEY_ATTRIBUTE}="{self.snapshot.key}"]')

    @property
    def scope_name(self) -> str:
        name = getattr(self.scope, 'name', '')
        return name if isinstance(name, str) and name else 'main'

    def describe(self) -> str:
        s = self.snapshot
        return f"<{s.tag} id='{s.id}' class='{s.class_name}'> '{s.label[:40]}' in {self.scope_name}"

    def _click_keyed(self, require_visible: bool):
        return self.scope.evaluate(CLICK_KEYED_SCRIPT, [KEY_ATTRIBUTE, self.snapshot.key, require_visible])

    def click(self) -> None:
        """
        Click through the DOM; overlays on the portal intercept pointer clicks.

        Raises:
            LookupError: if the element has left the document
        """
        if self._click_keyed(False) is None:
            raise LookupError(f"Element {self.describe()} is gone")

    def click_if_visible(self) -> bool:
        """Click only if the element is still attached and rendered right now."""
        return bool(self._click_keyed(True))

    def clear(self) -> None:
        self.locator.evaluate(CLEAR_SCRIPT)

    def type_text(self, text: str) -> None:
        self.locator.press_sequentially(text)

    def press(self, key: str) -> None:
        self.locator.press(key)

    def fill_and_submit(self, text: str, key: str = 'Enter') -> None:
        """Clear the field, type ``text`` and press ``key``."""
        self.clear()
        self.type_text(text)
        self.press(key)

    def evaluate(self, script: str, arg: Any = None) -> Any:
        return self.locator.evaluate(script, arg)


class ElementLocator:
    """
    Finds elements by prioritized signatures.

    Signatures are tried in order; for each one, scopes are scanned in order
    and elements in document order. The first candidate that matches and
    passes the state checks wins.
    """

    def __init__(self, chrome_selector: str = GLOBAL_CHROME_SELECTOR):
        self.chrome_selector = chrome_selector

    def snapshot(self, scope, selector: str, needles: Sequence[str] = ()) -> List[ElementSnapshot]:
        """Snapshot a scope, treating unreadable frames as empty."""
        try:
            return take_snapshots(scope, selector, self.chrome_selector, needles)
        except Exception as e:
            logger.debug(f"Could not read elements from frame: {e}")
            return []

    @staticmethod
    def is_candidate(
        element: ElementSnapshot,
        require_visible: bool = True,
        require_enabled: bool = False,
        require_editable: bool = False,
        exclude: Sequence[Signature] = (),
        exclude_chrome: bool = True,
    ) -> bool:
        if require_visible and not element.visible:
            return False
        if require_enabled and not element.enabled:
            return False
        if require_editable and not element.editable:
            return False
        if exclude_chrome and element.in_chrome:
            return False
        return not any(sig.matches(element) for sig in exclude)

    def select(
        self,
        elements: Sequence[ElementSnapshot],
        signatures: Sequence[Signature],
        **checks,
    ) -> Optional[tuple]:
        """
        Pick the first element matching the highest-priority signature.

        Returns:
            ``(snapshot, signature)`` or None
        """
        candidates = [e for e in elements if self.is_candidate(e, **checks)]
        for signature in signatures:
            for element in candidates:
                if signature.matches(element):
                    return element, signature
        return None

    def find(
        self,
        scopes: Union[Any, Iterable[Any]],
        selector: str,
        signatures: Union[Signature, Sequence[Signature]],
        require_visible: bool = True,
        require_enabled: bool = False,
        require_editable: bool = False,
        exclude: Sequence[Signature] = (),
        exclude_chrome: bool = True,
    ) -> Optional[LocatedElement]:
        """
        Locate the first element matching any signature.

        Args:
            scopes: A frame/page, or an iterable of frames (e.g. ``page.frames``)
            selector: CSS selector list enumerating candidate elements
            signatures: One signature or an ordered list of them
            require_visible: Skip elements without a rendered box
            require_enabled: Skip disabled elements
            require_editable: Skip disabled or read-only elements
            exclude: Signatures that veto a candidate
            exclude_chrome: Skip elements under global navigation containers

        Returns:
            LocatedElement or None
        """
        if isinstance(signatures, Signature):
            signatures = [signatures]
        if not isinstance(scopes, (list, tuple)):
            scopes = [scopes]

        checks = dict(
            require_visible=require_visible,
            require_enabled=require_enabled,
            require_editable=require_editable,
            exclude=exclude,
            exclude_chrome=exclude_chrome,
        )

        needles = {n for sig in list(signatures) + list(exclude) for n in sig.needles}
        snapshots = [(scope, self.snapshot(scope, selector, sorted(needles))) for scope in scopes]
        for signature in signatures:
            for scope, elements in snapshots:
                picked = self.select(elements, [signature], **checks)
                if picked:
                    element, matched = picked
                    located = LocatedElement(scope, selector, element, matched.name)
                    logger.debug(f"Located {located.describe()} via {matched.name}")
                    return located
        return None
