import pytest
from unittest.mock import MagicMock, PropertyMock, patch

from g2b_monitor.crawler.frames import FrameLocator, frame_text
from g2b_monitor.crawler.locator import CLICK_KEYED_SCRIPT
from g2b_monitor.crawler.popups import PopupDismisser
from g2b_monitor.crawler.signatures import SNAPSHOT_SCRIPT


@pytest.fixture(autouse=True)
def no_sleep():
    with patch('g2b_monitor.crawler.popups.time.sleep') as sleep:
        yield sleep


def text_frame(text, name="frame"):
    frame = MagicMock()
    frame.name = name
    frame.url = f"https://www.g2b.go.kr/{name}"
    frame.evaluate.return_value = text
    return frame


def popup_frame(elements, name="main", click_error=None):
    """
    Frame holding a small live DOM.

    Elements may carry a ``group``; clicking an element with ``closes`` set
    removes every element of that group, as closing a popup does.
    """
    frame = MagicMock()
    frame.name = name
    frame.url = ""
    frame.clicked = []
    live = [dict(e) for e in elements]
    keyed = {}

    def evaluate(script, arg=None):
        if script == SNAPSHOT_SCRIPT:
            token = arg[3]
            rows = []
            for i, e in enumerate(live):
                key = f"{token}-{i}"
                keyed[key] = e
                row = {k: v for k, v in e.items() if k not in ('group', 'closes', 'hides')}
                rows.append(dict(row, index=i, key=key))
            return rows
        if script == CLICK_KEYED_SCRIPT:
            _, key, require_visible = arg
            if click_error:
                raise click_error
            el = keyed.get(key)
            if el is None or not any(e is el for e in live):
                return None
            if require_visible and not el.get('visible'):
                return False
            frame.clicked.append(el.get('text') or el.get('alt'))
            if el.get('closes'):
                live[:] = [e for e in live if e.get('group') != el['group']]
            for other in live:
                if el.get('hides') and other.get('group') == el['hides']:
                    other['visible'] = False
            return True
        return None

    frame.evaluate.side_effect = evaluate
    return frame


class TestFrameLocator:

    def test_frame_text_swallows_errors(self):
        frame = MagicMock()
        frame.evaluate.side_effect = Exception("detached")
        assert frame_text(frame) == ""

    def test_finds_matching_frame(self):
        page = MagicMock()
        target = text_frame("공고명 수요기관 입찰마감", name="content")
        page.frames = [text_frame("메인"), target]

        assert FrameLocator(attempts=3, interval=0.1).find(page) is target

    def test_waits_for_late_frame(self, no_sleep):
        page = MagicMock()
        late = text_frame("공고명 발주기관", name="late")
        type(page).frames = PropertyMock(side_effect=[
            [text_frame("로딩중")],
            [text_frame("로딩중")],
            [text_frame("로딩중"), late],
        ])

        assert FrameLocator(attempts=5, interval=1.0).find(page) is late
        assert no_sleep.call_count == 2

    def test_falls_back_to_page(self, no_sleep):
        page = MagicMock()
        page.frames = [text_frame("공고명만 있음")]

        assert FrameLocator(attempts=10, interval=1.0).find(page) is page
        # Sleeps between attempts only
        assert no_sleep.call_count == 9

    def test_no_fallback_returns_none(self):
        page = MagicMock()
        page.frames = []
        assert FrameLocator(attempts=2, interval=0.1).find(page, fallback_to_page=False) is None


class TestPopupDismisser:

    def test_clicks_visible_close_controls(self, no_sleep):
        page = MagicMock()
        frame = popup_frame([
            {'text': '닫기', 'visible': True},
            {'text': '닫기', 'visible': False},
            {'text': '공지', 'visible': True},
            {'tag': 'img', 'alt': '창닫기', 'visible': True},
        ])
        page.frames = [frame]

        assert PopupDismisser(pause=0.5).dismiss(page) == 2
        assert no_sleep.call_count == 2
        assert frame.clicked == ['닫기', '창닫기']

    def test_closing_one_popup_does_not_shift_targets(self):
        page = MagicMock()
        frame = popup_frame([
            {'text': '닫기', 'visible': True, 'group': 'notice', 'closes': True},
            {'text': '오늘 하루 열지 않음', 'visible': True, 'group': 'notice', 'closes': True},
            {'text': '로그아웃', 'visible': True},
            {'tag': 'img', 'alt': '창닫기', 'visible': True, 'group': 'event', 'closes': True},
        ])
        page.frames = [frame]

        assert PopupDismisser().dismiss(page) == 2
        assert frame.clicked == ['닫기', '창닫기']
        assert '로그아웃' not in frame.clicked

    def test_control_hidden_before_click_is_skipped(self, no_sleep):
        page = MagicMock()
        frame = popup_frame([
            {'text': '닫기', 'visible': True, 'group': 'outer', 'hides': 'inner'},
            {'text': '창닫기', 'visible': True, 'group': 'inner'},
        ])
        page.frames = [frame]

        assert PopupDismisser().dismiss(page) == 1
        assert frame.clicked == ['닫기']
        assert no_sleep.call_count == 1

    def test_click_failures_are_skipped(self):
        page = MagicMock()
        broken = popup_frame([{'text': '닫기', 'visible': True}], click_error=Exception("detached"))
        healthy = popup_frame([{'text': '오늘 하루 열지 않음', 'visible': True}], name="popup")
        page.frames = [broken, healthy]

        assert PopupDismisser().dismiss(page) == 1

    def test_unreadable_frames_are_skipped(self):
        page = MagicMock()
        frame = MagicMock()
        frame.evaluate.side_effect = Exception("cross-origin")
        page.frames = [frame]

        assert PopupDismisser().dismiss(page) == 0

    def test_no_popups(self):
        page = MagicMock()
        page.frames = [popup_frame([])]
        assert PopupDismisser().dismiss(page) == 0
