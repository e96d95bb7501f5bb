"""
Element and frame signatures.

The portal exposes no stable, semantically named selectors, so every
"find X" step matches on human-readable text and attribute fragments.
Elements are read out of the page as ``ElementSnapshot`` records in a
single script evaluation; signatures are plain predicates over those
records and over frame text, so each one can be checked without a browser.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence, Tuple

# Containers holding site-wide navigation; their links and buttons reuse the
# same labels and classes as the content area.
GLOBAL_CHROME_SELECTOR = '.gnb, #header, .top_menu'

KEY_ATTRIBUTE = 'data-g2b-key'

# Every snapshotted element is tagged with ``<token>-<index>`` so it can be
# addressed later even after other nodes have been removed.
SNAPSHOT_SCRIPT = """
([selector, chrome, attribute, token, needles]) => Array.from(document.querySelectorAll(selector)).map((el, index) => {
    const className = typeof el.className === 'string' ? el.className : (el.getAttribute('class') || '');
    const fullText = el.textContent || '';
    const key = token + '-' + index;
    el.setAttribute(attribute, key);
    return {
        index,
        key,
        tag: el.tagName.toLowerCase(),
        text: fullText.trim().slice(0, 300),
        text_hits: needles.filter(n => fullText.includes(n)),
        id: el.id || '',
        class_name: className,
        alt: el.getAttribute('alt') || '',
        name: el.getAttribute('name') || '',
        value: typeof el.value === 'string' ? el.value : '',
        visible: el.offsetParent !== null,
        disabled: !!el.disabled || el.classList.contains('w2input_disabled'),
        read_only: !!el.readOnly,
        in_chrome: chrome ? !!el.closest(chrome) : false,
    };
})
"""


@dataclass(frozen=True)
class ElementSnapshot:
    """Read-only view of one element, captured at a point in time."""

    index: int
    key: str = ""
    tag: str = ""
    text: str = ""
    id: str = ""
    class_name: str = ""
    alt: str = ""
    name: str = ""
    value: str = ""
    visible: bool = True
    disabled: bool = False
    read_only: bool = False
    in_chrome: bool = False
    # Substring needles found in the untruncated textContent
    text_hits: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ElementSnapshot":
        fields = cls.__dataclass_fields__
        values = {k: v for k, v in data.items() if k in fields}
        values['text_hits'] = tuple(values.get('text_hits') or ())
        return cls(**values)

    @property
    def label(self) -> str:
        """Best human-readable label: text, then value, then alt."""
        return self.text or self.value or self.alt

    @property
    def enabled(self) -> bool:
        return not self.disabled

    @property
    def editable(self) -> bool:
        return not self.disabled and not self.read_only


def take_snapshots(
    scope,
    selector: str,
    chrome_selector: str = GLOBAL_CHROME_SELECTOR,
    needles: Sequence[str] = (),
) -> List[ElementSnapshot]:
    """
    Capture every element matching ``selector`` in a frame or page.

    Args:
        scope: Playwright Frame or Page
        selector: CSS selector list
        chrome_selector: Containers whose descendants are flagged ``in_chrome``
        needles: Substrings to look for in each element's full text
    """
    token = uuid.uuid4().hex[:12]
    raw = scope.evaluate(SNAPSHOT_SCRIPT, [selector, chrome_selector, KEY_ATTRIBUTE, token, list(needles)])
    return [ElementSnapshot.from_dict(item) for item in raw or []]


class Signature:
    """Named predicate over an ``ElementSnapshot``."""

    name = "signature"

    def matches(self, element: ElementSnapshot) -> bool:
        raise NotImplementedError

    @property
    def needles(self) -> Tuple[str, ...]:
        """Substrings that must be searched for in full element text."""
        return ()

    def __or__(self, other: "Signature") -> "AnyOf":
        return AnyOf(self, other)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class _ValuesSignature(Signature):
    attribute = "text"

    def __init__(self, *values: str, name: str = None):
        if not values:
            raise ValueError(f"{self.__class__.__name__} needs at least one value")
        self.values: Tuple[str, ...] = values
        self.name = name or f"{self.__class__.__name__}({', '.join(values)})"

    def _subject(self, element: ElementSnapshot) -> str:
        return getattr(element, self.attribute) or ""


class TextEquals(_ValuesSignature):
    """Trimmed text equals one of the values."""

    def matches(self, element):
        return self._subject(element) in self.values


class LabelEquals(TextEquals):
    """Text, value or alt (first non-empty) equals one of the values."""

    def _subject(self, element):
        return element.label


class TextContains(_ValuesSignature):
    """Text contains one of the values."""

    def matches(self, element):
        text = self._subject(element)
        if any(value in text for value in self.values):
            return True
        return self.attribute == 'text' and any(value in element.text_hits for value in self.values)

    @property
    def needles(self):
        return self.values if self.attribute == 'text' else ()


class AltEquals(TextEquals):
    attribute = "alt"


class IdContains(TextContains):
    attribute = "id"


class ClassContains(TextContains):
    attribute = "class_name"


class NameContains(TextContains):
    attribute = "name"


class AnyOf(Signature):
    """Matches when any member signature matches."""

    def __init__(self, *signatures: Signature, name: str = None):
        flat: List[Signature] = []
        for signature in signatures:
            if isinstance(signature, AnyOf) and name is None:
                flat.extend(signature.signatures)
            else:
                flat.append(signature)
        self.signatures = tuple(flat)
        self.name = name or " | ".join(s.name for s in self.signatures)

    def matches(self, element):
        return any(s.matches(element) for s in self.signatures)

    def matching(self, element: ElementSnapshot) -> List[Signature]:
        return [s for s in self.signatures if s.matches(element)]

    @property
    def needles(self):
        return tuple(n for s in self.signatures for n in s.needles)


class TextSignature:
    """Predicate over a frame's visible text."""

    name = "text-signature"

    def matches(self, text: str) -> bool:
        raise NotImplementedError

    def __and__(self, other: "TextSignature") -> "TextSignature":
        return _Combined(all, (self, other), f"({self.name} AND {other.name})")

    def __or__(self, other: "TextSignature") -> "TextSignature":
        return _Combined(any, (self, other), f"({self.name} OR {other.name})")

    def __repr__(self) -> str:
        return f"<TextSignature {self.name}>"


class ContainsAll(TextSignature):
    def __init__(self, *markers: str):
        self.markers = markers
        self.name = " AND ".join(markers)

    def matches(self, text):
        return bool(text) and all(m in text for m in self.markers)


class ContainsAny(TextSignature):
    def __init__(self, *markers: str):
        self.markers = markers
        self.name = " OR ".join(markers)

    def matches(self, text):
        return bool(text) and any(m in text for m in self.markers)


class _Combined(TextSignature):
    def __init__(self, combine, parts: Iterable[TextSignature], name: str):
        self.combine = combine
        self.parts: Sequence[TextSignature] = tuple(parts)
        self.name = name

    def matches(self, text):
        return self.combine(p.matches(text) for p in self.parts)


# --- Site vocabulary ---

CLICKABLE_SELECTOR = 'a, button, span, li'
POPUP_CANDIDATE_SELECTOR = 'a, button, div, span, img'

POPUP_CLOSE = AnyOf(
    TextEquals('닫기', '창닫기', name='close-text'),
    TextContains('오늘 하루 열지', name='dont-show-today'),
    AltEquals('닫기', '창닫기', name='close-icon-alt'),
    ClassContains('close', name='close-class'),
    name='closeable-popup',
)

BID_MENU = TextEquals('입찰정보', name='bid-info-menu')
# "물품" (goods) also leads to the announcement list
SUB_MENU = TextEquals('공고현황', '물품', name='announcement-submenu')

CONTENT_FRAME = ContainsAll('공고명') & ContainsAny('수요기관', '발주기관')

FILTER_TOGGLE_SELECTOR = 'a, button, span, label, [id*="btnSearchToggle"]'
FILTER_TOGGLE = [
    TextEquals('상세조건', '상세조건 열기', '검색조건 더보기', name='filter-toggle-text'),
    IdContains('btnSearchToggle', name='filter-toggle-id'),
]

AGENCY_LABEL_SELECTOR = 'label, th, td, span, b, strong'
AGENCY_LABEL = TextEquals('수요기관', '발주기관', name='agency-label')

DATE_INPUT_SELECTOR = 'input'
DATE_START_INPUT = AnyOf(
    IdContains('fromBidDt', 'inqrBgnDt', 'from', 'From', 'Start', 'Beg'),
    NameContains('fromBidDt'),
    name='date-start-input',
)

SEARCH_BUTTON_SELECTOR = 'a, button, input[type="submit"], .btn_search, .w2trigger'
SEARCH_BUTTON = AnyOf(
    IdContains('btnS0001', 'btnSearch', 'S0001', name='search-id'),
    LabelEquals('검색', '조회', name='search-text'),
    ClassContains('btn_search', 'search', name='search-class'),
    name='search-button',
)
SEARCH_BUTTON_EXCLUDE = [
    IdContains('gnb', 'global', 'header', 'Global', name='global-id'),
    ClassContains('gnb', 'top', name='global-class'),
    TextContains('해당 검색어', name='keyword-suggestion'),
]
SEARCH_BUTTON_FALLBACK = '.btn_area .btn_search, .btn_area a.btn_blue'
